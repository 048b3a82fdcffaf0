from __future__ import annotations

import bleach


_ALLOWED_TAGS = [
    "a",
    "b",
    "br",
    "code",
    "em",
    "i",
    "li",
    "ol",
    "p",
    "pre",
    "strong",
    "ul",
]

_ALLOWED_ATTRS = {
    "a": ["href", "title"],
}

_ALLOWED_PROTOCOLS = ["http", "https", "mailto"]


def sanitize_feedback(value: str | None) -> str:
    """Clean reviewer-written text before it is shown to the submission author."""
    if not value:
        return ""
    return bleach.clean(
        str(value),
        tags=_ALLOWED_TAGS,
        attributes=_ALLOWED_ATTRS,
        protocols=_ALLOWED_PROTOCOLS,
        strip=True,
    ).strip()
