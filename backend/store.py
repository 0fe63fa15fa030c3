# backend/store.py
from typing import Any, Dict, List, Optional, Sequence, Tuple
from datetime import datetime, timezone

from backend.db import DB
from backend.models import Comment


def _utc_iso(dt: Optional[datetime] = None) -> str:
    dt = dt or datetime.now(timezone.utc)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _row_to_comment(r: Dict[str, Any]) -> Comment:
    return Comment(
        id=r["id"],
        comment_id=r["comment_id"],
        original_text=r["original_text"],
        summary=r["summary"] or "",
        sentiment=r["sentiment"],
        confidence=float(r["confidence"] or 0.0),
        processed=bool(r["processed"]),
        upload_session=r["upload_session"],
        created_at=datetime.fromisoformat(r["created_at"].replace("Z", "+00:00")),
    )


class Store:
    """Comment records in SQLite. Every read is scoped to one upload session."""

    def __init__(self, db: DB):
        self.db = db

    async def init(self):
        await self.db.connect()

    async def close(self):
        await self.db.close()

    async def insert_many(self, records: Sequence[Comment]) -> List[Comment]:
        q = """
        insert into comments(comment_id, original_text, summary, sentiment, confidence,
                             processed, upload_session, created_at, updated_at)
        values(?,?,?,?,?,?,?,?,?)
        """
        now = _utc_iso()
        rows = [
            (
                c.comment_id, c.original_text, c.summary, c.sentiment, c.confidence,
                int(c.processed), c.upload_session, _utc_iso(c.created_at), now,
            )
            for c in records
        ]
        ids = await self.db.insert_many(q, rows)
        return [c.model_copy(update={"id": i}) for c, i in zip(records, ids)]

    async def find_unprocessed(self, session: str) -> List[Comment]:
        rows = await self.db.run(
            "select * from comments where upload_session=? and processed=0 order by id",
            session,
        )
        return [_row_to_comment(r) for r in rows]

    async def find_processed(self, session: str) -> List[Comment]:
        rows = await self.db.run(
            "select * from comments where upload_session=? and processed=1 order by id",
            session,
        )
        return [_row_to_comment(r) for r in rows]

    async def count(self, session: str, processed: Optional[bool] = None) -> int:
        if processed is None:
            return await self.db.run_one("select count(*) from comments where upload_session=?", session)
        return await self.db.run_one(
            "select count(*) from comments where upload_session=? and processed=?",
            session, int(processed),
        )

    async def count_by_sentiment(self, session: str) -> Dict[str, int]:
        rows = await self.db.run(
            """
            select sentiment, count(*) as n from comments
            where upload_session=? and processed=1
            group by sentiment
            """,
            session,
        )
        return {r["sentiment"]: int(r["n"]) for r in rows}

    async def update_enrichment(self, key: int, *, sentiment: str, confidence: float, summary: str) -> None:
        changed = await self.db.exec(
            """
            update comments
               set sentiment=?, confidence=?, summary=?, processed=1, updated_at=?
             where id=?
            """,
            sentiment, float(confidence), summary, _utc_iso(), key,
        )
        if changed == 0:
            raise LookupError(f"comment {key} not found")

    async def list_comments(
        self,
        session: str,
        *,
        page: int = 1,
        limit: int = 10,
        sentiment: Optional[str] = None,
        search: Optional[str] = None,
    ) -> Tuple[List[Comment], int]:
        where = ["upload_session=?"]
        params: List[Any] = [session]
        if sentiment:
            where.append("sentiment=?")
            params.append(sentiment)
        if search:
            # instr over lower() keeps LIKE wildcards in the search term literal
            where.append("(instr(lower(original_text), lower(?)) > 0 or instr(lower(summary), lower(?)) > 0)")
            params += [search, search]
        clause = " and ".join(where)

        total = await self.db.run_one(f"select count(*) from comments where {clause}", *params)
        offset = (max(1, page) - 1) * limit
        rows = await self.db.run(
            f"select * from comments where {clause} order by created_at desc, id desc limit ? offset ?",
            *params, limit, offset,
        )
        return [_row_to_comment(r) for r in rows], int(total or 0)
