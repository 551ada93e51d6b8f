"""
Ambient Memory - Context Assembler
===================================
Merges candidates from every collection into one bounded context block.

Strategy:
    1. Stable sort ascending by ``adjusted_distance`` (most relevant first).
    2. Render each candidate as ``"[source] text"``.
    3. Greedy packing: a line is appended only if it fits whole in the
       budget left after the header.  The first line that would overflow
       stops accumulation; lower-ranked lines are dropped, never cut.
    4. Prefix the header when at least one line fit.

The returned string, header included, never exceeds ``max_chars``.
"""

from __future__ import annotations

from collections.abc import Iterable

from ambient.config.context_templates import CONTEXT_HEADER, LINE_SEPARATOR
from ambient.src.core.types import Candidate
from ambient.src.utils.logger import get_logger

logger = get_logger(__name__)

_DEFAULT_MAX_CHARS = 2500


class ContextAssembler:
    """
    Budgeted context packing.

    Parameters
    ----------
    max_chars
        Total output budget in characters, header included.
    header
        Disclaimer prepended to a non-empty block.  ``""`` disables it.
    """

    __slots__ = ("_max_chars", "_header")

    def __init__(self, max_chars: int = _DEFAULT_MAX_CHARS, header: str = CONTEXT_HEADER) -> None:
        self._max_chars = max_chars
        self._header = header


    def assemble(self, candidates: Iterable[Candidate]) -> str:
        """Return the context block, or ``""`` when no candidate fits."""
        ranked = sorted(candidates, key=lambda c: c.adjusted_distance)
        if not ranked:
            return ""

        budget = self._max_chars
        if self._header:
            budget -= len(self._header) + len(LINE_SEPARATOR)

        lines: list[str] = []
        used = 0
        for candidate in ranked:
            line = candidate.line
            separator = len(LINE_SEPARATOR) if lines else 0
            if used + separator + len(line) > budget:
                break
            lines.append(line)
            used += separator + len(line)

        if not lines:
            return ""

        logger.debug("[ASSEMBLE] %d/%d candidate(s) fit in %d chars.", len(lines), len(ranked), self._max_chars)
        body = LINE_SEPARATOR.join(lines)
        if self._header:
            return self._header + LINE_SEPARATOR + body
        return body
