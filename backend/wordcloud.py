# backend/wordcloud.py
from collections import Counter
from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Union
import re

from backend.models import Comment

STOP_WORDS = frozenset([
    'the', 'and', 'or', 'but', 'in', 'on', 'at', 'to', 'for', 'of', 'with', 'by',
    'from', 'up', 'about', 'into', 'through', 'during', 'before', 'after', 'above',
    'below', 'between', 'among', 'this', 'that', 'these', 'those', 'i', 'me', 'my',
    'myself', 'we', 'our', 'ours', 'ourselves', 'you', 'your', 'yours', 'yourself',
    'yourselves', 'he', 'him', 'his', 'himself', 'she', 'her', 'hers', 'herself',
    'it', 'its', 'itself', 'they', 'them', 'their', 'theirs', 'themselves', 'what',
    'which', 'who', 'whom', 'this', 'that', 'these', 'those', 'am', 'is', 'are',
    'was', 'were', 'be', 'been', 'being', 'have', 'has', 'had', 'having', 'do',
    'does', 'did', 'doing', 'a', 'an', 'the', 'and', 'but', 'if', 'or', 'because',
    'as', 'until', 'while', 'very', 'can', 'will', 'just', 'should', 'now',
])

MIN_WORD_LEN = 4
_NON_WORD = re.compile(r"[^\w\s]")


@dataclass(frozen=True)
class WordCount:
    text: str
    count: int


def _original_text(record: Union[Comment, Mapping[str, Any]]) -> str:
    if isinstance(record, Comment):
        return record.original_text
    return record.get("originalText") or record.get("original_text") or ""


def tokenize(text: str) -> List[str]:
    words = _NON_WORD.sub("", text.lower()).split()
    return [w for w in words if len(w) >= MIN_WORD_LEN and w not in STOP_WORDS]


def top_words(records: Iterable[Union[Comment, Mapping[str, Any]]], n: int = 50) -> List[WordCount]:
    counts: Counter = Counter()
    for r in records:
        counts.update(tokenize(_original_text(r)))
    # most_common keeps first-seen order among equal counts
    return [WordCount(text=w, count=c) for w, c in counts.most_common(max(0, n))]
