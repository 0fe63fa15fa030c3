# backend/models.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

Sentiment = Literal["positive", "negative", "neutral"]
SENTIMENTS = ("positive", "negative", "neutral")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Comment(BaseModel):
    """
    One stakeholder comment. Created unprocessed at intake, then updated once
    by the enrichment run (processed=False -> True). Never deleted here.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: Optional[int] = None  # storage key, assigned by the store
    comment_id: str = Field(alias="commentId")
    original_text: str = Field(alias="originalText", min_length=1)
    summary: str = ""
    sentiment: Sentiment = "neutral"
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    processed: bool = False
    upload_session: str = Field(alias="uploadSession")
    created_at: datetime = Field(default_factory=_utc_now, alias="createdAt")

    def to_api(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class ProcessingStatus(BaseModel):
    total: int
    processed: int
    is_complete: bool = Field(serialization_alias="isComplete")
    progress: int


class SessionStatistics(BaseModel):
    total: int = 0
    processed: int = 0
    positive: int = 0
    negative: int = 0
    neutral: int = 0


@dataclass
class RunReport:
    session_id: str
    mode: str
    started_at: datetime
    processed: int = 0
    finished_at: Optional[datetime] = None
    error: Optional[str] = None
