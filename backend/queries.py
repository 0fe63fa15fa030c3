# backend/queries.py
"""
Point-in-time views over one upload session. Read-only; safe to poll while a
run is still writing, callers just see a smaller processed count.
"""
from __future__ import annotations

import asyncio

from backend.models import ProcessingStatus, SessionStatistics


def progress_percent(processed: int, total: int) -> int:
    if total <= 0:
        return 0
    # half rounds up
    return int(100 * processed / total + 0.5)


async def get_status(store, session_id: str) -> ProcessingStatus:
    total, processed = await asyncio.gather(
        store.count(session_id),
        store.count(session_id, processed=True),
    )
    return ProcessingStatus(
        total=total,
        processed=processed,
        is_complete=total > 0 and total == processed,
        progress=progress_percent(processed, total),
    )


async def get_statistics(store, session_id: str) -> SessionStatistics:
    total, processed, by_sentiment = await asyncio.gather(
        store.count(session_id),
        store.count(session_id, processed=True),
        store.count_by_sentiment(session_id),
    )
    return SessionStatistics(
        total=total,
        processed=processed,
        positive=by_sentiment.get("positive", 0),
        negative=by_sentiment.get("negative", 0),
        neutral=by_sentiment.get("neutral", 0),
    )
