"""Shared fixtures: an in-memory vector store and explicit settings."""

from __future__ import annotations

import threading
import time

import pytest

from ambient.config.settings import Settings
from ambient.src.database.vector_store import MemoryMatch, StoreUnavailableError


def match(document: str, distance: float | None, source: str | None = None) -> MemoryMatch:
    metadata = {"source": source} if source is not None else {}
    return {"document": document, "distance": distance, "metadata": metadata}


class FakeVectorStore:
    """
    Dict-backed ``VectorStore``.

    ``collections`` maps a collection name to its matches (already ranked).
    Names in ``failing`` raise ``StoreUnavailableError``; ``delay`` sleeps
    before every answer.
    """

    def __init__(self, collections: dict[str, list[MemoryMatch]] | None = None, failing: set[str] | None = None, delay: float = 0.0) -> None:
        self.collections = collections or {}
        self.failing = failing or set()
        self.delay = delay
        self.calls: list[tuple[str, str, int]] = []
        self._lock = threading.Lock()

    def query(self, collection: str, text: str, k: int) -> list[MemoryMatch]:
        with self._lock:
            self.calls.append((collection, text, k))
        if self.delay:
            time.sleep(self.delay)
        if collection in self.failing:
            raise StoreUnavailableError(f"{collection} unreachable")
        return list(self.collections.get(collection, []))[:k]


@pytest.fixture
def config() -> Settings:
    return Settings(_env_file=None, ENV="prod", WORKSPACE_DIR="/tmp/ambient-test-workspace", SEARCH_TIMEOUT_SECONDS=2.0)


@pytest.fixture
def fake_store() -> FakeVectorStore:
    return FakeVectorStore()
