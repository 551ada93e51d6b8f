"""
Ambient Memory - Engine (Fault Boundary)
=========================================
Single entry point that turns an incoming message into a block of
background context from past conversations.

Architecture
------------
``AmbientMemory``
    Stateless pipeline orchestrator.  Flow:
        1. Length guard → too short, nothing to search for
        2. Noise filter → heartbeats, keepalives, cron/hook markers
        3. Normalise query → strip "[tag]" and "System:" prefixes
        4. Retrieve → all collections, bounded by one hard timeout
        5. Assemble → global sort + budgeted packing
        6. Return context (possibly ``""``)

Contract
--------
Best effort, never blocks past the timeout, never throws.  Every
failure (store unavailable, malformed response, timeout) degrades to
``""`` and is logged at DEBUG.  A timed-out retrieval is abandoned and
counts as a failure, never as a partial result.

Usage:
    from ambient.src.core.ambient_engine import AmbientMemory
    memory = AmbientMemory.build_default()
    context = memory.resolve_context("[10:02] What's the deployment process?")
"""

from __future__ import annotations

import asyncio
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError

from ambient.config.context_templates import CONTEXT_HEADER
from ambient.config.settings import Settings, settings
from ambient.src.core.assembler import ContextAssembler
from ambient.src.core.retriever import MultiSourceRetriever
from ambient.src.core.types import Candidate
from ambient.src.database.vector_store import Embedder, StoreUnavailableError, VectorStore, build_store
from ambient.src.utils.logger import get_logger
from ambient.src.utils.text_utils import is_noise, normalize_query

logger = get_logger(__name__)


class AmbientMemory:
    """
    Ambient-memory pipeline: normalise → retrieve → assemble.

    Parameters
    ----------
    store
        Any ``VectorStore`` implementation (injected).
    config
        Explicit configuration.  Defaults to the module-level ``settings``.
    """

    __slots__ = ("_config", "_retriever", "_assembler")

    def __init__(self, store: VectorStore, config: Settings | None = None) -> None:
        self._config: Settings = config or settings
        self._retriever = MultiSourceRetriever(
            store,
            self._config.collection_specs(),
            results_per_collection=self._config.RESULTS_PER_COLLECTION,
            max_document_chars=self._config.MAX_DOCUMENT_CHARS,
            source_key=self._config.SOURCE_METADATA_KEY,
            max_workers=self._config.MAX_WORKERS,
        )
        header = CONTEXT_HEADER if self._config.INCLUDE_HEADER else ""
        self._assembler = ContextAssembler(max_chars=self._config.MAX_CONTEXT_CHARS, header=header)


    @classmethod
    def build_default(cls, config: Settings | None = None, embedder: Embedder | None = None) -> AmbientMemory:
        """Wire the store adapter selected by ``STORE_BACKEND``."""
        config = config or settings
        return cls(build_store(config, embedder=embedder), config)


    def resolve_context(self, message: str) -> str:
        """
        Return relevant background context for *message*, or ``""``.

        Never raises.
        """
        try:
            return self._resolve(message)
        except Exception as exc:
            logger.debug("ambient-memory: failed: %s", exc)
            return ""


    async def aresolve_context(self, message: str) -> str:
        """Async variant of ``resolve_context`` with identical semantics."""
        try:
            return await asyncio.to_thread(self.resolve_context, message)
        except Exception as exc:
            logger.debug("ambient-memory: failed: %s", exc)
            return ""


    def _resolve(self, message: str) -> str:
        config = self._config

        if not message or len(message) < config.MIN_MESSAGE_LENGTH:
            return ""

        if is_noise(message, config.NOISE_MARKERS, config.NOISE_PREFIXES):
            logger.debug("ambient-memory: skipping housekeeping message.")
            return ""

        query = normalize_query(message, min_length=config.MIN_MESSAGE_LENGTH, role_markers=config.ROLE_MARKERS)
        if not query:
            return ""

        t_search = time.perf_counter()
        candidates = self._retrieve_with_timeout(query)
        search_ms = (time.perf_counter() - t_search) * 1000

        context = self._assembler.assemble(candidates)
        if not context:
            logger.debug("ambient-memory: nothing relevant (%d candidate(s), %.1fms).", len(candidates), search_ms)
            return ""

        logger.debug("ambient-memory: injecting %d chars of context (%d candidate(s), %.1fms)", len(context), len(candidates), search_ms)
        return context


    def _retrieve_with_timeout(self, query: str) -> list[Candidate]:
        """
        Run retrieval on a worker thread bounded by ``SEARCH_TIMEOUT_SECONDS``.

        Raises
        ------
        StoreUnavailableError
            If the budget elapses; the worker is abandoned.
        """
        timeout = self._config.SEARCH_TIMEOUT_SECONDS
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="ambient-retrieve")
        try:
            future = executor.submit(self._retriever.retrieve, query)
            try:
                return future.result(timeout=timeout)
            except FuturesTimeoutError as exc:
                future.cancel()
                raise StoreUnavailableError(f"retrieval exceeded {timeout:.1f}s") from exc
        finally:
            executor.shutdown(wait=False, cancel_futures=True)
