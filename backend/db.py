# backend/db.py
from __future__ import annotations

import asyncio
import os
from typing import Any, Iterable, List, Optional

import aiosqlite

SCHEMA = """
CREATE TABLE IF NOT EXISTS comments (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    comment_id TEXT NOT NULL,
    original_text TEXT NOT NULL CHECK (length(original_text) > 0),
    summary TEXT NOT NULL DEFAULT '',
    sentiment TEXT NOT NULL DEFAULT 'neutral'
        CHECK (sentiment IN ('positive','negative','neutral')),
    confidence REAL NOT NULL DEFAULT 0,
    processed INTEGER NOT NULL DEFAULT 0,
    upload_session TEXT NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_comments_comment_id ON comments(comment_id);
CREATE INDEX IF NOT EXISTS idx_comments_session ON comments(upload_session);
CREATE INDEX IF NOT EXISTS idx_comments_session_sentiment ON comments(upload_session, sentiment);
CREATE INDEX IF NOT EXISTS idx_comments_session_processed ON comments(upload_session, processed);
"""


class DB:
    def __init__(self, path: Optional[str] = None):
        self.path = path or os.getenv("DB_PATH", "./comments.sqlite")
        self.conn: aiosqlite.Connection | None = None
        # one writer at a time on the shared connection; a commit from one
        # coroutine must never land inside another's open transaction
        self._write_lock: asyncio.Lock | None = None

    async def connect(self):
        if self.conn:
            return
        parent = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(parent, exist_ok=True)
        self.conn = await aiosqlite.connect(self.path)
        self.conn.row_factory = aiosqlite.Row
        self._write_lock = asyncio.Lock()
        await self.conn.execute("PRAGMA journal_mode=WAL;")
        await self.conn.executescript(SCHEMA)
        await self.conn.commit()

    def _require(self) -> aiosqlite.Connection:
        if self.conn is None or self._write_lock is None:
            raise RuntimeError("DB not connected; call connect() first")
        return self.conn

    async def run(self, q: str, *args: Any) -> List[dict]:
        async with self._require().execute(q, args) as cur:
            rows = await cur.fetchall()
        return [dict(r) for r in rows]

    async def run_one(self, q: str, *args: Any) -> Any:
        async with self._require().execute(q, args) as cur:
            row = await cur.fetchone()
        return row[0] if row else None

    async def exec(self, q: str, *args: Any) -> int:
        conn = self._require()
        async with self._write_lock:
            cur = await conn.execute(q, args)
            await conn.commit()
        return cur.rowcount

    async def insert_many(self, q: str, rows: Iterable[tuple]) -> List[int]:
        """Insert rows in one transaction; returns the new row ids in order."""
        conn = self._require()
        ids: List[int] = []
        async with self._write_lock:
            try:
                for params in rows:
                    cur = await conn.execute(q, params)
                    ids.append(cur.lastrowid)
                await conn.commit()
            except Exception:
                await conn.rollback()
                raise
        return ids

    async def close(self):
        if self.conn:
            await self.conn.close()
            self.conn = None
            self._write_lock = None
