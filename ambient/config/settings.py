"""
Ambient Memory - Centralized Configuration
===========================================
Uses ``pydantic-settings`` (``BaseSettings``) to load *all* configuration
from environment variables and the project-level ``.env`` file.

Every retrieval tunable lives here rather than in the pipeline code:
timeout, context budget, minimum query length, per-tier distance
ceilings and priority weights, and the ordered collection lists.

Security
--------
- ``GOOGLE_API_KEY`` is typed as ``SecretStr``.  It is only required once
  an embedder is built (``build_embedder``); the raw value is never
  exposed in repr, logs, or tracebacks.

Paths
-----
``VECTOR_DB_PATH`` and ``STORE_PYTHON`` default to locations under
``WORKSPACE_DIR`` and are resolved after the workspace is known.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ambient.config.context_templates import DEFAULT_NOISE_MARKERS, DEFAULT_NOISE_PREFIXES, DEFAULT_ROLE_MARKERS
from ambient.src.core.types import CollectionSpec, Tier


class Settings(BaseSettings):
    """
    Application-wide settings.

    Every field is loaded from environment variables (or ``.env``).

    Attributes
    ----------
    ENV : Literal["dev", "prod"]
        Environment mode controlling logging verbosity.
    WORKSPACE_DIR : Path
        Base workspace directory holding the vector store.
    VECTOR_DB_PATH : Path | None
        LanceDB directory.  Defaults to ``WORKSPACE_DIR / ".vector-db"``.
    STORE_BACKEND : Literal["lancedb", "subprocess"]
        ``lancedb`` queries in-process; ``subprocess`` runs each query in
        the interpreter named by ``STORE_PYTHON``.
    STORE_PYTHON : Path | None
        Interpreter of the vector-store environment.  Defaults to
        ``WORKSPACE_DIR / ".venvs/vector-memory/bin/python3"``.
    SEARCH_TIMEOUT_SECONDS : float
        Hard wall-clock budget for the whole retrieval phase.
    MAX_CONTEXT_CHARS : int
        Maximum length of the assembled context, header included.
    PRIMARY_WEIGHT / FALLBACK_WEIGHT : float
        Distance multipliers; primary must be strictly lower.
    """

    # ── Environment Mode ───────────────────────────────────────────────
    ENV: Literal["dev", "prod"] = "dev"

    # ── Workspace & Store Location ─────────────────────────────────────
    WORKSPACE_DIR: Path = Path("/data/workspace")
    VECTOR_DB_PATH: Path | None = None
    STORE_BACKEND: Literal["lancedb", "subprocess"] = "lancedb"
    STORE_PYTHON: Path | None = None

    # ── Embeddings ─────────────────────────────────────────────────────
    GOOGLE_API_KEY: SecretStr | None = None
    EMBEDDING_MODEL: str = "gemini-embedding-001"
    DISTANCE_TYPE: Literal["l2", "cosine", "dot"] = "l2"

    # ── Retrieval Budget ───────────────────────────────────────────────
    SEARCH_TIMEOUT_SECONDS: float = 5.0
    MAX_CONTEXT_CHARS: int = 2500
    MIN_MESSAGE_LENGTH: int = 2
    MAX_DOCUMENT_CHARS: int = 400
    RESULTS_PER_COLLECTION: int = 15
    SOURCE_METADATA_KEY: str = "source"
    MAX_WORKERS: int = 4

    # ── Collections (priority order: primary list, then fallback list) ─
    PRIMARY_COLLECTIONS: list[str] = ["memory_summaries"]
    FALLBACK_COLLECTIONS: list[str] = ["telegram_memory", "workspace_memory"]
    PRIMARY_MAX_DISTANCE: float = 0.8
    FALLBACK_MAX_DISTANCE: float = 0.8
    PRIMARY_WEIGHT: float = 0.8
    FALLBACK_WEIGHT: float = 1.0

    # ── Query Filtering ────────────────────────────────────────────────
    NOISE_MARKERS: list[str] = list(DEFAULT_NOISE_MARKERS)
    NOISE_PREFIXES: list[str] = list(DEFAULT_NOISE_PREFIXES)
    ROLE_MARKERS: list[str] = list(DEFAULT_ROLE_MARKERS)
    INCLUDE_HEADER: bool = True

    # ── Validators ─────────────────────────────────────────────────────

    @field_validator("SEARCH_TIMEOUT_SECONDS")
    @classmethod
    def _timeout_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"SEARCH_TIMEOUT_SECONDS must be > 0, got {v}")
        return v


    @field_validator("MAX_CONTEXT_CHARS", "MAX_DOCUMENT_CHARS", "RESULTS_PER_COLLECTION", "MIN_MESSAGE_LENGTH")
    @classmethod
    def _count_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"value must be ≥ 1, got {v}")
        return v


    @field_validator("PRIMARY_WEIGHT", "FALLBACK_WEIGHT")
    @classmethod
    def _weight_range(cls, v: float) -> float:
        if not 0 < v <= 1:
            raise ValueError(f"priority weight must be in (0, 1], got {v}")
        return v


    @field_validator("PRIMARY_MAX_DISTANCE", "FALLBACK_MAX_DISTANCE")
    @classmethod
    def _ceiling_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError(f"distance ceiling must be ≥ 0, got {v}")
        return v


    @field_validator("MAX_WORKERS")
    @classmethod
    def _workers_range(cls, v: int) -> int:
        if not 1 <= v <= 16:
            raise ValueError(f"MAX_WORKERS must be 1–16, got {v}")
        return v


    @model_validator(mode="after")
    def _resolve_tiers_and_paths(self) -> Settings:
        if self.PRIMARY_WEIGHT >= self.FALLBACK_WEIGHT:
            raise ValueError(f"PRIMARY_WEIGHT ({self.PRIMARY_WEIGHT}) must be lower than FALLBACK_WEIGHT ({self.FALLBACK_WEIGHT})")

        overlap = set(self.PRIMARY_COLLECTIONS) & set(self.FALLBACK_COLLECTIONS)
        if overlap:
            raise ValueError(f"Collections listed in both tiers: {sorted(overlap)}")

        if self.VECTOR_DB_PATH is None:
            self.VECTOR_DB_PATH = self.WORKSPACE_DIR / ".vector-db"
        if self.STORE_PYTHON is None:
            self.STORE_PYTHON = self.WORKSPACE_DIR / ".venvs" / "vector-memory" / "bin" / "python3"
        return self


    def collection_specs(self) -> list[CollectionSpec]:
        """Return the configured collections in priority order."""
        primary = [CollectionSpec(name, Tier.PRIMARY, self.PRIMARY_MAX_DISTANCE, self.PRIMARY_WEIGHT) for name in self.PRIMARY_COLLECTIONS]
        fallback = [CollectionSpec(name, Tier.FALLBACK, self.FALLBACK_MAX_DISTANCE, self.FALLBACK_WEIGHT) for name in self.FALLBACK_COLLECTIONS]
        return primary + fallback

    # ── Pydantic Settings Configuration ────────────────────────────────
    model_config = SettingsConfigDict(env_file=Path(__file__).resolve().parent.parent / ".env", env_file_encoding="utf-8", extra="ignore")


# ── Singleton Instance ─────────────────────────────────────────────────
# Default configuration for callers that do not build their own:
#     from ambient.config.settings import settings
settings = Settings()
