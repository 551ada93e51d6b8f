"""Priority weighting, ceilings and per-collection fault isolation."""

from __future__ import annotations

import pytest

from conftest import FakeVectorStore, match

from ambient.src.core.retriever import MultiSourceRetriever
from ambient.src.core.types import CollectionSpec, Tier

SPECS = [
    CollectionSpec("memory_summaries", Tier.PRIMARY, 0.8, 0.8),
    CollectionSpec("telegram_memory", Tier.FALLBACK, 0.8, 1.0),
    CollectionSpec("workspace_memory", Tier.FALLBACK, 0.8, 1.0),
]


def test_queries_collections_in_priority_order_with_overfetch() -> None:
    store = FakeVectorStore()
    MultiSourceRetriever(store, SPECS, results_per_collection=15, max_workers=1).retrieve("deploy")
    assert store.calls == [("memory_summaries", "deploy", 15), ("telegram_memory", "deploy", 15), ("workspace_memory", "deploy", 15)]


def test_primary_weight_applied_only_to_primary_tier() -> None:
    store = FakeVectorStore({"memory_summaries": [match("summary", 0.5)], "telegram_memory": [match("raw", 0.5)]})
    summary, raw = MultiSourceRetriever(store, SPECS).retrieve("q")
    assert summary.tier is Tier.PRIMARY and summary.adjusted_distance == pytest.approx(0.4)
    assert raw.tier is Tier.FALLBACK and raw.adjusted_distance == pytest.approx(0.5)
    assert summary.adjusted_distance < raw.adjusted_distance


def test_distance_ceiling_discards_before_weighting() -> None:
    # 0.85 * 0.8 = 0.68 would pass after weighting; the raw value is what counts.
    store = FakeVectorStore({"memory_summaries": [match("kept", 0.8), match("dropped", 0.85)], "telegram_memory": [match("also dropped", 1.2)]})
    texts = [c.text for c in MultiSourceRetriever(store, SPECS).retrieve("q")]
    assert texts == ["kept"]


def test_per_tier_ceiling() -> None:
    specs = [CollectionSpec("memory_summaries", Tier.PRIMARY, 0.9, 0.8), CollectionSpec("telegram_memory", Tier.FALLBACK, 0.5, 1.0)]
    store = FakeVectorStore({"memory_summaries": [match("summary", 0.7)], "telegram_memory": [match("raw", 0.7)]})
    assert [c.text for c in MultiSourceRetriever(store, specs).retrieve("q")] == ["summary"]


def test_source_label_defaults_to_collection_name() -> None:
    store = FakeVectorStore({"telegram_memory": [match("a", 0.1, source="chat-2024-05.jsonl"), match("b", 0.2), match("c", 0.3, source="")]})
    labels = [c.source_label for c in MultiSourceRetriever(store, SPECS).retrieve("q")]
    assert labels == ["chat-2024-05.jsonl", "telegram_memory", "telegram_memory"]


def test_text_truncated_to_document_limit() -> None:
    store = FakeVectorStore({"workspace_memory": [match("x" * 1000, 0.1)]})
    (candidate,) = MultiSourceRetriever(store, SPECS, max_document_chars=400).retrieve("q")
    assert candidate.text == "x" * 400


def test_missing_distance_kept_with_sentinel() -> None:
    store = FakeVectorStore({"memory_summaries": [match("unscored", None)], "telegram_memory": [match("scored", 0.79)]})
    unscored, scored = MultiSourceRetriever(store, SPECS).retrieve("q")
    assert unscored.raw_distance is None
    assert unscored.adjusted_distance > scored.adjusted_distance


def test_failing_collection_does_not_block_others() -> None:
    store = FakeVectorStore({"memory_summaries": [match("summary", 0.2)], "workspace_memory": [match("workspace", 0.3)]}, failing={"telegram_memory"})
    texts = [c.text for c in MultiSourceRetriever(store, SPECS).retrieve("q")]
    assert texts == ["summary", "workspace"]


def test_all_collections_failing_yields_nothing() -> None:
    store = FakeVectorStore(failing={spec.name for spec in SPECS})
    assert MultiSourceRetriever(store, SPECS).retrieve("q") == []


@pytest.mark.parametrize(
    "bad",
    [
        "not a dict",
        {"document": None, "distance": 0.1, "metadata": {}},
        {"document": "text", "distance": "close", "metadata": {}},
        {"document": "text", "distance": 0.1, "metadata": ["source"]},
        {"document": "text", "distance": float("nan"), "metadata": {}},
        {"document": "text", "distance": float("inf"), "metadata": {}},
    ],
)
def test_malformed_response_discards_that_collection(bad: object) -> None:
    store = FakeVectorStore({"memory_summaries": [match("good", 0.1), bad], "telegram_memory": [match("raw", 0.2)]})
    texts = [c.text for c in MultiSourceRetriever(store, SPECS).retrieve("q")]
    assert texts == ["raw"]


def test_non_list_response_treated_as_malformed() -> None:
    class DictStore:
        def query(self, collection: str, text: str, k: int) -> dict:
            return {"documents": [["x"]]}

    assert MultiSourceRetriever(DictStore(), SPECS).retrieve("q") == []


def test_no_collections() -> None:
    assert MultiSourceRetriever(FakeVectorStore(), []).retrieve("q") == []


def test_weighting_preserves_order_within_tier() -> None:
    distances = [0.05, 0.2, 0.33, 0.6, 0.79]
    store = FakeVectorStore({"memory_summaries": [match(str(d), d) for d in distances]})
    adjusted = [c.adjusted_distance for c in MultiSourceRetriever(store, SPECS).retrieve("q")]
    assert adjusted == sorted(adjusted)
