"""Configuration validation and derived values."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from ambient.config.settings import Settings
from ambient.src.core.types import Tier


def test_defaults_derive_paths_from_workspace() -> None:
    config = Settings(_env_file=None, WORKSPACE_DIR="/srv/ws")
    assert config.VECTOR_DB_PATH == Path("/srv/ws/.vector-db")
    assert config.STORE_PYTHON == Path("/srv/ws/.venvs/vector-memory/bin/python3")


def test_explicit_paths_win() -> None:
    config = Settings(_env_file=None, WORKSPACE_DIR="/srv/ws", VECTOR_DB_PATH="/mnt/db")
    assert config.VECTOR_DB_PATH == Path("/mnt/db")


def test_collection_specs_in_priority_order() -> None:
    specs = Settings(_env_file=None).collection_specs()
    assert [s.name for s in specs] == ["memory_summaries", "telegram_memory", "workspace_memory"]
    assert [s.tier for s in specs] == [Tier.PRIMARY, Tier.FALLBACK, Tier.FALLBACK]
    assert specs[0].weight < specs[1].weight


def test_collections_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PRIMARY_COLLECTIONS", '["digest"]')
    monkeypatch.setenv("FALLBACK_COLLECTIONS", '["slack", "email"]')
    monkeypatch.setenv("MAX_CONTEXT_CHARS", "2000")
    config = Settings(_env_file=None)
    assert [s.name for s in config.collection_specs()] == ["digest", "slack", "email"]
    assert config.MAX_CONTEXT_CHARS == 2000


@pytest.mark.parametrize(
    "overrides",
    [
        {"PRIMARY_WEIGHT": 1.0, "FALLBACK_WEIGHT": 1.0},
        {"PRIMARY_WEIGHT": 0.0},
        {"FALLBACK_WEIGHT": 1.5},
        {"SEARCH_TIMEOUT_SECONDS": 0},
        {"MAX_CONTEXT_CHARS": 0},
        {"PRIMARY_MAX_DISTANCE": -0.1},
        {"PRIMARY_COLLECTIONS": ["shared"], "FALLBACK_COLLECTIONS": ["shared"]},
    ],
)
def test_invalid_configuration_rejected(overrides: dict) -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, **overrides)
