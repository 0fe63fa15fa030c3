# backend/enrich/pipeline.py
from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Set

from backend.enrich.client import EnrichmentClient
from backend.models import Comment, RunReport

_LOG = logging.getLogger(__name__)

ONDEMAND = "ondemand"
BACKGROUND = "background"

Sleep = Callable[[float], Awaitable[Any]]


def batches(items: Sequence[Comment], size: int) -> List[Sequence[Comment]]:
    if size < 1:
        raise ValueError("batch size must be >= 1")
    return [items[i:i + size] for i in range(0, len(items), size)]


class SessionLocks:
    """One asyncio.Lock per upload session, dropped once nobody holds or waits on it."""

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}
        self._users: Dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, session_id: str):
        lock = self._locks.setdefault(session_id, asyncio.Lock())
        self._users[session_id] = self._users.get(session_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[session_id] -= 1
            if self._users[session_id] == 0:
                del self._users[session_id]
                del self._locks[session_id]

    def is_running(self, session_id: str) -> bool:
        lock = self._locks.get(session_id)
        return bool(lock and lock.locked())


class BatchScheduler:
    """
    Enrich every unprocessed comment of a session in fixed-size batches.

    Items inside a batch run concurrently and each one absorbs its own failure;
    batches run one after another with `delay_s` of idle time between them,
    which caps the outbound rate at roughly batch_size / delay_s requests/s.
    """

    def __init__(
        self,
        store,
        client: EnrichmentClient,
        *,
        batch_size: int,
        delay_s: float,
        locks: Optional[SessionLocks] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        if batch_size < 1:
            raise ValueError("batch size must be >= 1")
        self.store = store
        self.client = client
        self.batch_size = batch_size
        self.delay_s = delay_s
        self.locks = locks or SessionLocks()
        self._sleep = sleep

    async def _enrich_one(self, comment: Comment) -> bool:
        try:
            result = await self.client.enrich(comment.original_text)
            await self.store.update_enrichment(
                comment.id,
                sentiment=result.sentiment,
                confidence=result.confidence,
                summary=result.summary,
            )
            return True
        except Exception:
            # record stays processed=False and is picked up by a later run
            _LOG.exception("Error processing comment %s (%s)", comment.id, comment.comment_id)
            return False

    async def run_session(self, session_id: str, on_start: Optional[Callable[[], None]] = None) -> int:
        async with self.locks.hold(session_id):
            if on_start is not None:
                on_start()
            # fetch errors propagate: the whole run fails with nothing processed
            pending = await self.store.find_unprocessed(session_id)
            if not pending:
                _LOG.info("session %s: nothing to process", session_id)
                return 0

            groups = batches(pending, self.batch_size)
            processed = 0
            for n, batch in enumerate(groups, start=1):
                results = await asyncio.gather(*(self._enrich_one(c) for c in batch))
                processed += sum(1 for ok in results if ok)
                _LOG.info(
                    "session %s: batch %d/%d done, processed %d/%d",
                    session_id, n, len(groups), processed, len(pending),
                )
                if n < len(groups):
                    await self._sleep(self.delay_s)

            _LOG.info("session %s: run finished, processed %d comments", session_id, processed)
            return processed


class EnrichmentEngine:
    """
    Owns the two scheduler presets (on-demand and post-upload background),
    the per-session locks they share, and supervision of background runs.
    """

    def __init__(
        self,
        store,
        client: EnrichmentClient,
        *,
        ondemand_batch_size: int = 5,
        ondemand_delay_s: float = 1.0,
        background_batch_size: int = 3,
        background_delay_s: float = 2.0,
        sleep: Sleep = asyncio.sleep,
        max_reports: int = 1000,
    ):
        self.store = store
        self.client = client
        self.max_reports = max_reports
        self.locks = SessionLocks()
        self._schedulers = {
            ONDEMAND: BatchScheduler(
                store, client, batch_size=ondemand_batch_size, delay_s=ondemand_delay_s,
                locks=self.locks, sleep=sleep,
            ),
            BACKGROUND: BatchScheduler(
                store, client, batch_size=background_batch_size, delay_s=background_delay_s,
                locks=self.locks, sleep=sleep,
            ),
        }
        self._reports: Dict[str, RunReport] = {}
        self._tasks: Set[asyncio.Task] = set()

    @classmethod
    def from_settings(cls, store, settings, **kw) -> "EnrichmentEngine":
        return cls(
            store,
            EnrichmentClient(settings.enrichment_config()),
            ondemand_batch_size=settings.ONDEMAND_BATCH_SIZE,
            ondemand_delay_s=settings.ONDEMAND_DELAY_S,
            background_batch_size=settings.BACKGROUND_BATCH_SIZE,
            background_delay_s=settings.BACKGROUND_DELAY_S,
            **kw,
        )

    def scheduler(self, mode: str = ONDEMAND) -> BatchScheduler:
        try:
            return self._schedulers[mode]
        except KeyError:
            raise ValueError(f"unknown run mode: {mode!r}") from None

    def _publish(self, report: RunReport) -> None:
        report.started_at = datetime.now(timezone.utc)
        self._reports.pop(report.session_id, None)
        self._reports[report.session_id] = report
        while len(self._reports) > self.max_reports:
            del self._reports[next(iter(self._reports))]

    async def run_session(self, session_id: str, mode: str = ONDEMAND) -> int:
        scheduler = self.scheduler(mode)
        report = RunReport(session_id=session_id, mode=mode, started_at=datetime.now(timezone.utc))
        try:
            # the report only replaces the previous one once this run holds the session lock
            report.processed = await scheduler.run_session(session_id, on_start=lambda: self._publish(report))
            return report.processed
        except Exception as e:
            report.error = str(e) or type(e).__name__
            raise
        finally:
            report.finished_at = datetime.now(timezone.utc)

    def spawn_background(self, session_id: str) -> asyncio.Task:
        """Start a background run without awaiting it; outcome is logged and kept in last_run()."""
        task = asyncio.create_task(self.run_session(session_id, BACKGROUND), name=f"enrich:{session_id}")
        self._tasks.add(task)
        task.add_done_callback(self._on_background_done)
        _LOG.info("Starting background processing for session: %s", session_id)
        return task

    def _on_background_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            _LOG.warning("background run %s cancelled", task.get_name())
            return
        exc = task.exception()
        if exc is not None:
            _LOG.error("background run %s failed: %s", task.get_name(), exc, exc_info=exc)
        else:
            _LOG.info("background run %s completed, processed %d comments", task.get_name(), task.result())

    def last_run(self, session_id: str) -> Optional[RunReport]:
        return self._reports.get(session_id)

    def is_running(self, session_id: str) -> bool:
        return self.locks.is_running(session_id)

    async def drain(self) -> None:
        """Wait for every outstanding background run (shutdown, tests)."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
