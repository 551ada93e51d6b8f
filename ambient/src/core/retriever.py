"""
Ambient Memory - Multi-Source Retriever
========================================
Queries every configured collection for one normalised query and turns
the raw matches into ``Candidate`` objects.

Algorithm
---------
1. Collections are queried in priority order (curated summaries first,
   raw transcripts after) on a small thread pool.
2. Each collection is over-fetched (``results_per_collection``) so the
   global sort in the assembler has enough material.
3. Per match: resolve the source label (metadata ``source``, else the
   collection name), truncate the text, drop it when the raw distance
   exceeds the tier ceiling, otherwise weight the distance by the tier.
4. Survivors are returned grouped in collection priority order.

Fault isolation
---------------
A store error on one collection is logged and that collection yields
nothing; the other collections are unaffected.  The overall time budget
is enforced by the caller (``AmbientMemory``), not here.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from numbers import Real

from ambient.config.context_templates import MISSING_DISTANCE
from ambient.src.core.types import Candidate, CollectionSpec
from ambient.src.database.vector_store import MemoryMatch, StoreResponseError, VectorStore
from ambient.src.utils.logger import get_logger
from ambient.src.utils.text_utils import truncate

logger = get_logger(__name__)

_DEFAULT_RESULTS_PER_COLLECTION = 15
_DEFAULT_MAX_DOCUMENT_CHARS = 400
_MAX_WORKERS = 4


class MultiSourceRetriever:
    """
    Priority-ordered, fault-isolated retrieval over several collections.

    Parameters
    ----------
    store
        Any ``VectorStore`` implementation (injected).
    collections
        Collections in priority order, with their tier ceiling and weight.
    results_per_collection
        Over-fetch size requested from each collection.
    max_document_chars
        Matched documents are cut to this many characters.
    source_key
        Metadata key holding the provenance label.
    max_workers
        Thread pool size; collections are queried concurrently.
    """

    __slots__ = ("_store", "_collections", "_k", "_max_chars", "_source_key", "_max_workers")

    def __init__(self, store: VectorStore, collections: Sequence[CollectionSpec], results_per_collection: int = _DEFAULT_RESULTS_PER_COLLECTION, max_document_chars: int = _DEFAULT_MAX_DOCUMENT_CHARS, source_key: str = "source", max_workers: int = _MAX_WORKERS) -> None:
        self._store = store
        self._collections: tuple[CollectionSpec, ...] = tuple(collections)
        self._k = results_per_collection
        self._max_chars = max_document_chars
        self._source_key = source_key
        self._max_workers = max_workers


    def retrieve(self, query: str) -> list[Candidate]:
        """
        Query all collections and return every candidate under its ceiling.

        Returns
        -------
        list[Candidate]
            Unsorted across collections; grouped in priority order.
        """
        if not self._collections:
            return []

        workers = min(self._max_workers, len(self._collections))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="ambient-query") as pool:
            futures = [pool.submit(self._query_collection, spec, query) for spec in self._collections]
            per_collection = [future.result() for future in futures]

        candidates = [candidate for group in per_collection for candidate in group]
        logger.debug("Retrieved %d candidate(s) from %d collection(s).", len(candidates), len(self._collections))
        return candidates


    def _query_collection(self, spec: CollectionSpec, query: str) -> list[Candidate]:
        """Query one collection; any failure yields an empty list."""
        try:
            matches = self._store.query(spec.name, query, self._k)
            if matches is None:
                return []
            if not isinstance(matches, list):
                raise StoreResponseError(f"expected a list of matches, got {type(matches).__name__}")
            candidates = [c for c in (self._to_candidate(spec, match) for match in matches) if c is not None]
        except Exception as exc:
            logger.warning("Collection '%s' query failed: %s", spec.name, exc)
            return []

        logger.debug("Collection '%s': %d match(es) → %d candidate(s).", spec.name, len(matches), len(candidates))
        return candidates


    def _to_candidate(self, spec: CollectionSpec, match: MemoryMatch) -> Candidate | None:
        """
        Convert one raw match; ``None`` when it is over the tier ceiling.

        Raises
        ------
        StoreResponseError
            If the match does not have the documented shape.
        """
        if not isinstance(match, dict):
            raise StoreResponseError(f"match is {type(match).__name__}, expected dict")

        document = match.get("document")
        if not isinstance(document, str):
            raise StoreResponseError("match document is not a string")

        distance = match.get("distance")
        if distance is not None and (isinstance(distance, bool) or not isinstance(distance, Real)):
            raise StoreResponseError(f"match distance is not numeric: {distance!r}")
        if distance is not None and not math.isfinite(distance):
            raise StoreResponseError(f"match distance is not finite: {distance!r}")

        metadata = match.get("metadata") or {}
        if not isinstance(metadata, dict):
            raise StoreResponseError("match metadata is not a mapping")

        if distance is not None and distance > spec.max_distance:
            return None

        label = metadata.get(self._source_key)
        source_label = str(label) if label not in (None, "") else spec.name
        adjusted = MISSING_DISTANCE if distance is None else float(distance) * spec.weight

        return Candidate(text=truncate(document, self._max_chars), source_label=source_label, raw_distance=None if distance is None else float(distance), tier=spec.tier, adjusted_distance=adjusted, collection=spec.name)
