"""Session title extraction from the first meaningful prompt."""

from __future__ import annotations

import re

from ccview.models import SessionRecord, TextItem

MAX_TITLE_LENGTH = 100
UNTITLED = "Untitled Session"

# IDE/system wrappers that never make a good title
_NOISE_TAGS = ("ide_selection", "ide_opened_file", "system-reminder")
_NOISE_RE = re.compile(
    "|".join(rf"<{tag}>[\s\S]*?</{tag}>" for tag in _NOISE_TAGS)
)
_WS_RE = re.compile(r"\s+")


def clean_text(text: str) -> str:
    """Strip IDE/system tags and collapse whitespace."""
    return _WS_RE.sub(" ", _NOISE_RE.sub(" ", text)).strip()


def _first_text(content: object) -> str | None:
    if isinstance(content, str):
        return clean_text(content) or None
    if isinstance(content, list):
        for item in content:
            text = item.text if isinstance(item, TextItem) else None
            if text is None and isinstance(item, dict) and item.get("type") == "text":
                text = item.get("text")
            if isinstance(text, str) and text:
                cleaned = clean_text(text)
                if cleaned:
                    return cleaned
    return None


def extract_session_title(records: list[SessionRecord]) -> str:
    """Title from a queued prompt if present, else the first user text."""
    for record in records:
        raw = record.raw
        if record.kind == "queue-operation" and raw.get("operation") == "enqueue":
            text = _first_text(raw.get("content"))
            if text:
                return text[:MAX_TITLE_LENGTH].strip()

    for record in records:
        if record.kind == "user":
            text = _first_text(record.content)
            if text:
                return text[:MAX_TITLE_LENGTH].strip()

    return UNTITLED
