# tests/test_queries.py
import asyncio

from backend.queries import get_statistics, get_status, progress_percent


def test_progress_rounding():
    assert progress_percent(0, 0) == 0
    assert progress_percent(1, 3) == 33
    assert progress_percent(2, 3) == 67
    assert progress_percent(1, 8) == 13  # 12.5 rounds up
    assert progress_percent(5, 5) == 100


def test_empty_session_all_zero(sqlite_store):
    async def scenario():
        await sqlite_store.init()
        try:
            return await get_status(sqlite_store, "nope"), await get_statistics(sqlite_store, "nope")
        finally:
            await sqlite_store.close()

    status, stats = asyncio.run(scenario())
    assert (status.total, status.processed, status.is_complete, status.progress) == (0, 0, False, 0)
    assert stats.model_dump() == {"total": 0, "processed": 0, "positive": 0, "negative": 0, "neutral": 0}


def test_counts_only_processed_sentiments(sqlite_store, make_comments):
    async def scenario():
        await sqlite_store.init()
        try:
            saved = await sqlite_store.insert_many(make_comments("s1", ["a", "b", "c", "d", "e"]))
            await sqlite_store.insert_many(make_comments("other", ["x"]))
            await sqlite_store.update_enrichment(saved[0].id, sentiment="positive", confidence=0.9, summary="a")
            await sqlite_store.update_enrichment(saved[1].id, sentiment="positive", confidence=0.8, summary="b")
            await sqlite_store.update_enrichment(saved[2].id, sentiment="negative", confidence=0.7, summary="c")
            return await get_status(sqlite_store, "s1"), await get_statistics(sqlite_store, "s1")
        finally:
            await sqlite_store.close()

    status, stats = asyncio.run(scenario())
    assert (status.total, status.processed, status.is_complete, status.progress) == (5, 3, False, 60)
    # unprocessed rows default to neutral but are not counted
    assert stats.model_dump() == {"total": 5, "processed": 3, "positive": 2, "negative": 1, "neutral": 0}


def test_status_serializes_camel_case(sqlite_store, make_comments):
    async def scenario():
        await sqlite_store.init()
        try:
            saved = await sqlite_store.insert_many(make_comments("s1", ["only"]))
            await sqlite_store.update_enrichment(saved[0].id, sentiment="neutral", confidence=0.5, summary="only")
            return await get_status(sqlite_store, "s1")
        finally:
            await sqlite_store.close()

    body = asyncio.run(scenario()).model_dump(by_alias=True)
    assert body == {"total": 1, "processed": 1, "isComplete": True, "progress": 100}
