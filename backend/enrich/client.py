# backend/enrich/client.py
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from backend.enrich.fallback import fallback_sentiment, fallback_summary

_LOG = logging.getLogger(__name__)

# ordinal label space of the three-class sentiment model
_LABELS = {
    "label_0": "negative",
    "label_1": "neutral",
    "label_2": "positive",
    "negative": "negative",
    "neutral": "neutral",
    "positive": "positive",
}

SHORT_TEXT_CHARS = 100
SUMMARY_MIN_LENGTH = 30
SUMMARY_MAX_LENGTH = 150


@dataclass(frozen=True)
class EnrichmentConfig:
    api_key: str
    sentiment_model: str = "cardiffnlp/twitter-roberta-base-sentiment-latest"
    summarization_model: str = "facebook/bart-large-cnn"
    base_url: str = "https://api-inference.huggingface.co/models"
    timeout_s: float = 30.0


@dataclass
class SentimentResult:
    sentiment: str
    confidence: float


@dataclass
class EnrichmentResult:
    sentiment: str
    confidence: float
    summary: str
    succeeded: bool = True


def _clamp01(x: float) -> float:
    return max(0.0, min(1.0, float(x)))


def parse_sentiment_payload(data: Any) -> SentimentResult:
    """
    Inference API replies with [[{label, score}, ...]] (sometimes unnested).
    Raises ValueError on anything else so the caller can fall back.
    """
    if not isinstance(data, list) or not data:
        raise ValueError(f"unexpected sentiment payload: {data!r}")
    scores = data[0] if isinstance(data[0], list) else data
    if not scores or not all(isinstance(s, dict) for s in scores):
        raise ValueError(f"unexpected sentiment payload: {data!r}")

    top = max(scores, key=lambda s: float(s.get("score", 0.0)))
    label = str(top.get("label", "")).strip().lower()
    if label not in _LABELS:
        raise ValueError(f"unknown sentiment label: {top.get('label')!r}")
    return SentimentResult(sentiment=_LABELS[label], confidence=_clamp01(top.get("score", 0.0)))


def parse_summary_payload(data: Any) -> Optional[str]:
    if isinstance(data, list) and data and isinstance(data[0], dict):
        text = data[0].get("summary_text")
        if isinstance(text, str) and text.strip():
            return text.strip()
    return None


class EnrichmentClient:
    """
    Sentiment + summary for one comment via the hosted inference API.
    Every remote failure (transport, non-2xx, timeout, bad JSON) is absorbed
    and replaced by the local heuristics in backend.enrich.fallback.
    """

    def __init__(self, config: EnrichmentConfig, *, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = config
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": "application/json",
        }

    async def _post_model(self, model: str, payload: Dict[str, Any]) -> Any:
        url = f"{self.config.base_url}/{model}"
        timeout = httpx.Timeout(self.config.timeout_s, connect=10.0)
        async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
            r = await asyncio.wait_for(
                client.post(url, json=payload, headers=self._headers()),
                timeout=self.config.timeout_s,
            )
            r.raise_for_status()
            return r.json()

    async def classify_sentiment(self, text: str) -> SentimentResult:
        if not self.config.api_key:
            _LOG.debug("No HUGGING_FACE_API_KEY set, using keyword sentiment.")
            return SentimentResult(*fallback_sentiment(text))
        try:
            data = await self._post_model(
                self.config.sentiment_model,
                {"inputs": text, "options": {"wait_for_model": True}},
            )
            return parse_sentiment_payload(data)
        except Exception as e:
            _LOG.warning("sentiment call failed, using fallback: %s", str(e) or type(e).__name__)
            return SentimentResult(*fallback_sentiment(text))

    async def summarize(self, text: str) -> str:
        if len(text) < SHORT_TEXT_CHARS:
            return text
        if not self.config.api_key:
            _LOG.debug("No HUGGING_FACE_API_KEY set, using extractive summary.")
            return fallback_summary(text)
        try:
            data = await self._post_model(
                self.config.summarization_model,
                {
                    "inputs": text,
                    "parameters": {
                        "max_length": SUMMARY_MAX_LENGTH,
                        "min_length": SUMMARY_MIN_LENGTH,
                        "do_sample": False,
                    },
                    "options": {"wait_for_model": True},
                },
            )
        except Exception as e:
            _LOG.warning("summarization call failed, using fallback: %s", str(e) or type(e).__name__)
            return fallback_summary(text)
        return parse_summary_payload(data) or fallback_summary(text)

    async def enrich(self, text: str) -> EnrichmentResult:
        try:
            sentiment, summary = await asyncio.gather(
                self.classify_sentiment(text),
                self.summarize(text),
            )
        except Exception:
            _LOG.exception("enrichment failed for text of length %d", len(text or ""))
            return EnrichmentResult(sentiment="neutral", confidence=0.0, summary=text, succeeded=False)

        return EnrichmentResult(
            sentiment=sentiment.sentiment,
            confidence=_clamp01(sentiment.confidence),
            summary=summary,
        )
