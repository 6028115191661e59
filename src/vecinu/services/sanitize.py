"""Plain-text sanitization for user-generated content."""

from __future__ import annotations

import html
import re

import bleach

_SCRIPT_STYLE_RE = re.compile(r"<(script|style)\b[^>]*>[\s\S]*?</\1\s*>", re.IGNORECASE)


def sanitize_text(value: str | None) -> str:
    """Strip all HTML from ``value`` and return trimmed plain text.

    Script and style elements are removed along with their contents; other
    tags are dropped but their text is kept.
    """
    if not value:
        return ""
    text = _SCRIPT_STYLE_RE.sub("", value)
    text = bleach.clean(text, tags=[], attributes={}, strip=True)
    return html.unescape(text).strip()


def sanitize_optional(value: str | None) -> str | None:
    """Sanitize ``value`` and collapse empty results to ``None``."""
    if value is None:
        return None
    return sanitize_text(value) or None
