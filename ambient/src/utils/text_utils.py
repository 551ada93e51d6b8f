"""
Ambient Memory - Text Utilities
================================
Query normalisation and housekeeping-traffic detection for incoming
messages, plus the document truncation helper used by the retriever.

These utilities are consumed primarily by ``AmbientMemory`` and
``MultiSourceRetriever`` and must remain stateless and side-effect-free.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from ambient.config.context_templates import DEFAULT_NOISE_MARKERS, DEFAULT_NOISE_PREFIXES, DEFAULT_ROLE_MARKERS


# ── Leading "[...]" tag (timestamps, channel labels) ──────────────────
# Non-greedy: only the first bracketed group is removed.
_LEADING_TAG_RE = re.compile(r"^\[.*?\]\s*")


def _role_marker_re(role_markers: Iterable[str]) -> re.Pattern[str] | None:
    alternatives = "|".join(re.escape(marker) for marker in role_markers if marker)
    if not alternatives:
        return None
    return re.compile(rf"^(?:{alternatives}):\s*", re.IGNORECASE)


# ── Public API ─────────────────────────────────────────────────────────

def normalize_query(raw_message: str, min_length: int = 2, role_markers: Iterable[str] = DEFAULT_ROLE_MARKERS) -> str:
    """
    Turn a raw incoming message into a clean search query.

    Steps:
        1. Strip one leading bracketed tag (``[2024-05-01 10:00] ...``).
        2. Strip one leading case-insensitive role marker (``System: ...``).
        3. Trim surrounding whitespace.

    Args:
        raw_message:  Message text as received.
        min_length:   Shortest query worth searching for.
        role_markers: Role names whose ``"<role>:"`` prefix is removed.

    Returns:
        The cleaned query, or ``""`` when nothing searchable remains.

    Examples::

        "[12:01] System: deploy status?" → "deploy status?"
        "[ts]  x"                        → ""   (shorter than 2)
    """
    if not raw_message:
        return ""

    query = _LEADING_TAG_RE.sub("", raw_message, count=1)
    role_re = _role_marker_re(role_markers)
    if role_re is not None:
        query = role_re.sub("", query, count=1)
    query = query.strip()

    if len(query) < min_length:
        return ""
    return query


def is_noise(raw_message: str, markers: Iterable[str] = DEFAULT_NOISE_MARKERS, prefixes: Iterable[str] = DEFAULT_NOISE_PREFIXES) -> bool:
    """
    Return True if *raw_message* is housekeeping traffic.

    Case-insensitive.  A message is noise when it contains any of
    *markers* anywhere, or starts with any of *prefixes*.  Runs on the
    raw text, before any stripping.
    """
    lower = raw_message.lower()
    if any(marker.lower() in lower for marker in markers if marker):
        return True
    return any(lower.startswith(prefix.lower()) for prefix in prefixes if prefix)


def truncate(text: str, limit: int) -> str:
    """Return the first *limit* characters of *text*."""
    return text[:limit]
