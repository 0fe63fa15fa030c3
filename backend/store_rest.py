# backend/store_rest.py
from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence, Tuple
from datetime import datetime, timezone

from backend.db_rest import SupabaseREST
from backend.models import SENTIMENTS, Comment

TABLE = "comments"


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
        summary=r.get("summary") or "",
        sentiment=r.get("sentiment") or "neutral",
        confidence=float(r.get("confidence") or 0.0),
        processed=bool(r.get("processed")),
        upload_session=r["upload_session"],
        created_at=datetime.fromisoformat(str(r["created_at"]).replace("Z", "+00:00")),
    )


def _ilike_term(search: str) -> str:
    # PostgREST reserves , ( ) inside or=(...) lists
    cleaned = "".join(ch for ch in search if ch not in ",()*")
    return f"*{cleaned}*"


class StoreREST:
    """Same contract as backend.store.Store, backed by a PostgREST `comments` table."""

    page_size = 1000

    def __init__(self, rest: SupabaseREST):
        self.rest = rest

    async def init(self):
        return

    async def close(self):
        return

    async def insert_many(self, records: Sequence[Comment]) -> List[Comment]:
        payload = [
            {
                "comment_id": c.comment_id,
                "original_text": c.original_text,
                "summary": c.summary,
                "sentiment": c.sentiment,
                "confidence": c.confidence,
                "processed": c.processed,
                "upload_session": c.upload_session,
                "created_at": _utc_iso(c.created_at),
            }
            for c in records
        ]
        rows = await self.rest.insert(TABLE, payload, return_representation=True)
        return [_row_to_comment(r) for r in rows]

    async def _find(self, session: str, processed: bool) -> List[Comment]:
        # PostgREST caps each response (db-max-rows), so walk pages until one comes back empty
        out: List[Comment] = []
        while True:
            rows = await self.rest.select(
                TABLE,
                {
                    "select": "*",
                    "upload_session": f"eq.{session}",
                    "processed": f"is.{str(processed).lower()}",
                    "order": "id.asc",
                    "limit": str(self.page_size),
                    "offset": str(len(out)),
                },
            )
            if not rows:
                return out
            out.extend(_row_to_comment(r) for r in rows)

    async def find_unprocessed(self, session: str) -> List[Comment]:
        return await self._find(session, False)

    async def find_processed(self, session: str) -> List[Comment]:
        return await self._find(session, True)

    async def _count(self, filters: Dict[str, str]) -> int:
        params = {"select": "id", "limit": "1", **filters}
        _, total = await self.rest.select_with_count(TABLE, params)
        return total

    async def count(self, session: str, processed: Optional[bool] = None) -> int:
        filters = {"upload_session": f"eq.{session}"}
        if processed is not None:
            filters["processed"] = f"is.{str(processed).lower()}"
        return await self._count(filters)

    async def count_by_sentiment(self, session: str) -> Dict[str, int]:
        out: Dict[str, int] = {}
        for s in SENTIMENTS:
            n = await self._count(
                {"upload_session": f"eq.{session}", "processed": "is.true", "sentiment": f"eq.{s}"}
            )
            if n:
                out[s] = n
        return out

    async def update_enrichment(self, key: int, *, sentiment: str, confidence: float, summary: str) -> None:
        rows = await self.rest.update(
            TABLE,
            {"id": f"eq.{key}"},
            {
                "sentiment": sentiment,
                "confidence": float(confidence),
                "summary": summary,
                "processed": True,
                "updated_at": _utc_iso(),
            },
            return_representation=True,
        )
        if not rows:
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
        params: Dict[str, str] = {
            "select": "*",
            "upload_session": f"eq.{session}",
            "order": "created_at.desc,id.desc",
            "limit": str(limit),
            "offset": str((max(1, page) - 1) * limit),
        }
        if sentiment:
            params["sentiment"] = f"eq.{sentiment}"
        if search:
            term = _ilike_term(search)
            params["or"] = f"(original_text.ilike.{term},summary.ilike.{term})"
        rows, total = await self.rest.select_with_count(TABLE, params)
        return [_row_to_comment(r) for r in rows], total
