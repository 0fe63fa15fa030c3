# tests/conftest.py
import os
import tempfile

# settings are read at import time; point everything at throwaway, offline defaults
_TMP = tempfile.mkdtemp(prefix="comment-insights-tests-")
os.environ["STORE_BACKEND"] = "sqlite"
os.environ["DB_PATH"] = os.path.join(_TMP, "app.sqlite")
os.environ["HUGGING_FACE_API_KEY"] = ""
os.environ["ONDEMAND_DELAY_S"] = "0"
os.environ["BACKGROUND_DELAY_S"] = "0"

from typing import Dict, List, Optional, Set  # noqa: E402

import pytest  # noqa: E402

from backend.db import DB  # noqa: E402
from backend.models import Comment  # noqa: E402
from backend.store import Store  # noqa: E402


class InMemoryStore:
    """Store double: same async contract as backend.store.Store, plus failure injection."""

    def __init__(self):
        self.rows: Dict[int, Comment] = {}
        self.fail_updates_for: Set[int] = set()
        self.fail_fetch = False
        self.updates: List[int] = []
        self._next = 1

    async def init(self):
        return

    async def close(self):
        return

    async def insert_many(self, records):
        out = []
        for c in records:
            saved = c.model_copy(update={"id": self._next})
            self.rows[self._next] = saved
            out.append(saved)
            self._next += 1
        return out

    async def find_unprocessed(self, session):
        if self.fail_fetch:
            raise ConnectionError("store unreachable")
        return [c for c in self.rows.values() if c.upload_session == session and not c.processed]

    async def find_processed(self, session):
        return [c for c in self.rows.values() if c.upload_session == session and c.processed]

    async def count(self, session, processed: Optional[bool] = None):
        return sum(
            1 for c in self.rows.values()
            if c.upload_session == session and (processed is None or c.processed == processed)
        )

    async def count_by_sentiment(self, session):
        out: Dict[str, int] = {}
        for c in self.rows.values():
            if c.upload_session == session and c.processed:
                out[c.sentiment] = out.get(c.sentiment, 0) + 1
        return out

    async def update_enrichment(self, key, *, sentiment, confidence, summary):
        if key in self.fail_updates_for:
            raise IOError(f"write failed for {key}")
        self.updates.append(key)
        self.rows[key] = self.rows[key].model_copy(
            update={"sentiment": sentiment, "confidence": confidence, "summary": summary, "processed": True}
        )


def _make_comments(session: str, texts: List[str]) -> List[Comment]:
    return [
        Comment(comment_id=f"c{i}", original_text=t, upload_session=session)
        for i, t in enumerate(texts, start=1)
    ]


@pytest.fixture
def memory_store():
    return InMemoryStore()


@pytest.fixture
def sqlite_store(tmp_path):
    # connect inside each test's own event loop
    return Store(DB(str(tmp_path / "comments.sqlite")))


@pytest.fixture
def make_comments():
    return _make_comments
