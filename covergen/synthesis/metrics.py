import math
import re
from typing import List, Tuple

from pydantic import BaseModel, ConfigDict

WORDS_PER_MINUTE = 200

_TAG_RE = re.compile(r"<[^>]*>")
_WS_RE = re.compile(r"\s+")
_NON_WORD_RE = re.compile(r"[^\w]", re.ASCII)
_PARAGRAPH_TAG_RE = re.compile(r"<p(?:\s[^>]*)?>", re.IGNORECASE)
_BLANK_LINE_RE = re.compile(r"\n\s*\n|\r\n\s*\r\n")

_ENTITIES: Tuple[Tuple[str, str], ...] = (
    ("&nbsp;", " "),
    ("&amp;", "&"),
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&quot;", '"'),
    ("&#39;", "'"),
)


class ContentMetrics(BaseModel):
    model_config = ConfigDict(frozen=True)

    word_count: int
    character_count: int
    avg_word_length: float
    reading_time_minutes: int
    paragraph_count: int
    content_hash: int
    clean_content: str
    words: Tuple[str, ...]


def clean_text(text: str) -> str:
    cleaned = _TAG_RE.sub(" ", text)
    for entity, replacement in _ENTITIES:
        cleaned = cleaned.replace(entity, replacement)
    return _WS_RE.sub(" ", cleaned).strip()


def utf16_units(text: str) -> List[int]:
    """Code units as a browser string sees them (surrogate pairs split)."""
    data = text.encode("utf-16-le", "surrogatepass")
    return [int.from_bytes(data[i : i + 2], "little") for i in range(0, len(data), 2)]


def content_hash(text: str) -> int:
    h = 0
    for unit in utf16_units(text):
        h = (h * 31 + unit) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return abs(h)


def extract_words(cleaned: str) -> List[str]:
    words = []
    for token in cleaned.lower().split():
        token = _NON_WORD_RE.sub("", token)
        if token:
            words.append(token)
    return words


def count_paragraphs(raw: str) -> int:
    tags = _PARAGRAPH_TAG_RE.findall(raw)
    if tags:
        return len(tags)
    segments = [seg for seg in _BLANK_LINE_RE.split(raw) if seg.strip()]
    return max(len(segments), 1)


def round_half_up(value: float, digits: int = 1) -> float:
    factor = 10**digits
    return math.floor(value * factor + 0.5) / factor


def analyze(raw_text: str) -> ContentMetrics:
    cleaned = clean_text(raw_text)
    words = extract_words(cleaned)
    word_count = len(words)
    avg = sum(len(w) for w in words) / word_count if word_count else 0.0
    return ContentMetrics(
        word_count=word_count,
        character_count=len(utf16_units(cleaned)),
        avg_word_length=round_half_up(avg),
        reading_time_minutes=math.ceil(word_count / WORDS_PER_MINUTE),
        paragraph_count=count_paragraphs(raw_text),
        content_hash=content_hash(cleaned),
        clean_content=cleaned,
        words=tuple(words),
    )
