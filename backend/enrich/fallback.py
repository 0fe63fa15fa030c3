# backend/enrich/fallback.py
from typing import List, Tuple
import re

POSITIVE_WORDS = [
    "excellent", "good", "great", "amazing", "wonderful", "fantastic",
    "love", "perfect", "outstanding", "satisfied", "happy",
]
NEGATIVE_WORDS = [
    "terrible", "bad", "awful", "horrible", "hate", "worst",
    "disappointing", "poor", "unacceptable", "frustrated", "angry",
]

_SENTENCE_SPLIT = re.compile(r"[.!?]+")


def _keyword_hits(text: str, words: List[str]) -> int:
    # each keyword counts once, substring match
    return sum(1 for w in words if w in text)


def _keyword_confidence(hits: int) -> float:
    return round(min(0.8, 0.5 + hits * 0.1), 2)


def fallback_sentiment(text: str) -> Tuple[str, float]:
    lowered = (text or "").lower()
    pos = _keyword_hits(lowered, POSITIVE_WORDS)
    neg = _keyword_hits(lowered, NEGATIVE_WORDS)

    if pos > neg:
        return "positive", _keyword_confidence(pos)
    if neg > pos:
        return "negative", _keyword_confidence(neg)
    return "neutral", 0.5


def fallback_summary(text: str) -> str:
    """First two sentences, or the text itself when it has two or fewer."""
    sentences = [s.strip() for s in _SENTENCE_SPLIT.split(text) if s.strip()]
    if len(sentences) <= 2:
        return text
    return ". ".join(sentences[:2]) + "."
