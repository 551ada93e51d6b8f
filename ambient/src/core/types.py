"""
Ambient Memory - Retrieval Types
=================================
Value objects shared by the retriever, the assembler and the settings
layer.  All of them live for a single ``resolve_context`` call.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from ambient.config.context_templates import LINE_TEMPLATE


class Tier(str, Enum):
    """Ranking class of a collection."""

    PRIMARY = "primary"
    FALLBACK = "fallback"


@dataclass(frozen=True, slots=True)
class CollectionSpec:
    """One queried collection with its tier's ceiling and weight."""

    name: str
    tier: Tier
    max_distance: float
    weight: float


@dataclass(frozen=True, slots=True)
class Candidate:
    """
    One retrieved unit of context.

    ``adjusted_distance`` is only used for ordering and is never rendered.
    ``raw_distance`` is ``None`` when the engine returned no score.
    """

    text: str
    source_label: str
    raw_distance: float | None
    tier: Tier
    adjusted_distance: float
    collection: str = ""

    @property
    def line(self) -> str:
        return LINE_TEMPLATE.format(source=self.source_label, text=self.text)
