# app/main.py
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional
import logging
import math

from fastapi import FastAPI, File, HTTPException, Query, UploadFile
from fastapi.middleware.cors import CORSMiddleware

from app.settings import settings
from backend.enrich.pipeline import EnrichmentEngine
from backend.ingest.csv_intake import IntakeError, intake
from backend.queries import get_statistics, get_status
from backend.store_factory import get_store
from backend.wordcloud import top_words

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
_LOG = logging.getLogger(__name__)

# ---------- App + globals ----------
app = FastAPI(title="Comment Insights API", description="Upload, enrich and explore stakeholder comments")

# dashboard frontend is served from another origin
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

store = get_store()
engine = EnrichmentEngine.from_settings(store, settings)


# ---------- lifecycle ----------
@app.on_event("startup")
async def startup() -> None:
    await store.init()


@app.on_event("shutdown")
async def shutdown() -> None:
    await engine.drain()
    await store.close()


# ---------- basics ----------
@app.get("/health")
async def health():
    return {"ok": True, "ts": datetime.now(timezone.utc).isoformat()}


# ---------- intake ----------
@app.post("/api/upload")
async def upload(csvFile: Optional[UploadFile] = File(None)):
    if csvFile is None:
        raise HTTPException(400, "No CSV file uploaded")

    data = await csvFile.read()
    try:
        session_id, saved = await intake(store, data)
    except IntakeError as e:
        raise HTTPException(400, str(e))
    except Exception:
        _LOG.exception("Upload error")
        raise HTTPException(500, "Failed to upload and process CSV file")

    # fire-and-forget; progress is visible through /api/status
    engine.spawn_background(session_id)

    return {
        "success": True,
        "message": f"Successfully uploaded {len(saved)} comments",
        "uploadSession": session_id,
        "totalComments": len(saved),
    }


# ---------- enrichment ----------
@app.post("/api/process/{upload_session}")
async def process(upload_session: str):
    try:
        processed = await engine.run_session(upload_session)
    except Exception:
        _LOG.exception("Processing error for session %s", upload_session)
        raise HTTPException(500, "Failed to process comments with AI")

    if processed == 0:
        return {
            "message": "No comments to process or all comments already processed",
            "processedCount": 0,
        }
    return {
        "success": True,
        "message": f"Processed {processed} comments",
        "processedCount": processed,
    }


# ---------- reads ----------
@app.get("/api/comments/{upload_session}")
async def comments(
    upload_session: str,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    sentiment: Optional[str] = None,
    search: Optional[str] = None,
):
    if sentiment == "all":
        sentiment = None
    try:
        rows, total = await store.list_comments(
            upload_session, page=page, limit=limit, sentiment=sentiment, search=search or None
        )
    except Exception:
        _LOG.exception("Get comments error")
        raise HTTPException(500, "Failed to retrieve comments")

    return {
        "success": True,
        "comments": [c.to_api() for c in rows],
        "pagination": {
            "currentPage": page,
            "totalPages": math.ceil(total / limit),
            "totalItems": total,
            "itemsPerPage": limit,
        },
    }


@app.get("/api/statistics/{upload_session}")
async def statistics(upload_session: str):
    try:
        stats = await get_statistics(store, upload_session)
    except Exception:
        _LOG.exception("Get statistics error")
        raise HTTPException(500, "Failed to retrieve statistics")
    return {"success": True, "statistics": stats.model_dump()}


@app.get("/api/wordcloud/{upload_session}")
async def wordcloud(upload_session: str, n: int = Query(50, ge=1, le=500)):
    try:
        processed = await store.find_processed(upload_session)
    except Exception:
        _LOG.exception("Get word cloud error")
        raise HTTPException(500, "Failed to generate word cloud data")
    words = top_words(processed, n=n)
    return {"success": True, "wordCloudData": [{"text": w.text, "value": w.count} for w in words]}


@app.get("/api/status/{upload_session}")
async def status(upload_session: str):
    try:
        st = await get_status(store, upload_session)
    except Exception:
        _LOG.exception("Get status error")
        raise HTTPException(500, "Failed to retrieve processing status")

    report = engine.last_run(upload_session)
    body = st.model_dump(by_alias=True)
    body["running"] = engine.is_running(upload_session)
    body["lastError"] = report.error if report else None
    return {"success": True, "status": body}
