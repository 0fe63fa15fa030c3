# backend/ingest/csv_intake.py
from __future__ import annotations

import io
import logging
import re
import time
import uuid
from typing import Dict, List, Tuple

import pandas as pd

from backend.models import Comment

LOG = logging.getLogger(__name__)

ID_COLUMNS = ("comment_id", "commentid", "id")
TEXT_COLUMNS = ("comment_text", "commenttext", "text", "comment")


class IntakeError(ValueError):
    """Uploaded file produced no usable comments."""


def normalize_header(header: str) -> str:
    return re.sub(r"[^a-z0-9]", "_", str(header).lower().strip())


def new_session_id() -> str:
    # millisecond timestamp keeps sessions sortable; suffix avoids same-ms clashes
    return f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:6]}"


def _first_filled(row: Dict[str, str], columns) -> str:
    for c in columns:
        v = row.get(c)
        if v and v.strip():
            return v
    return ""


def parse_comments_csv(data: bytes) -> List[Dict[str, str]]:
    """
    Parse an uploaded CSV into [{commentId, originalText}] rows.
    Header names are normalized; rows without comment text are skipped.
    """
    try:
        df = pd.read_csv(io.BytesIO(data), dtype=str, keep_default_na=False, skip_blank_lines=True)
    except pd.errors.EmptyDataError:
        raise IntakeError("No valid comments found in CSV file") from None
    except (pd.errors.ParserError, UnicodeDecodeError) as e:
        raise IntakeError(f"CSV parsing error: {e}") from e

    df.columns = [normalize_header(c) for c in df.columns]

    out: List[Dict[str, str]] = []
    for row in df.to_dict(orient="records"):
        text = _first_filled(row, TEXT_COLUMNS).strip()
        if not text:
            continue
        comment_id = _first_filled(row, ID_COLUMNS).strip() or f"comment_{len(out) + 1}"
        out.append({"commentId": comment_id, "originalText": text})

    if not out:
        raise IntakeError("No valid comments found in CSV file")
    return out


async def intake(store, data: bytes) -> Tuple[str, List[Comment]]:
    """Parse, assign a fresh session and bulk-insert unprocessed comments."""
    rows = parse_comments_csv(data)
    session_id = new_session_id()
    records = [
        Comment(comment_id=r["commentId"], original_text=r["originalText"], upload_session=session_id)
        for r in rows
    ]
    saved = await store.insert_many(records)
    LOG.info("session %s: stored %d comments", session_id, len(saved))
    return session_id, saved
