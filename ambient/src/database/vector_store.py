"""
Ambient Memory - Vector Store Boundary
=======================================
The only module that talks to the vector database.  Everything above it
sees a single capability::

    store.query(collection, text, k) -> list[MemoryMatch]

where every match is ``{"document": str, "distance": float | None,
"metadata": dict}``, best match first.  A nonexistent or empty
collection yields ``[]``; it is never an error.

Adapters
--------
``LanceVectorStore``
    In-process LanceDB.  Each collection is a table with a ``vector``
    column, a ``text`` column and scalar metadata columns (``source``, …).
    The query is embedded by an injected ``Embedder``.
``SubprocessVectorStore``
    Runs each query in a separate interpreter (the vector-store
    environment) via ``python -m ambient.scripts.store_worker``.
    JSON request on stdin, one JSON response line on stdout.

Design decisions:
  • **Singleton DB connection**: ``_get_connection()`` caches the
    ``lancedb.DBConnection`` per path to avoid file-lock issues.
  • **Read-only**: tables are opened, never created or written.
  • **Dependency Injection**: the embedder is injected, making the
    store testable with deterministic fake embedders.

Usage:
    from ambient.src.database.vector_store import LanceVectorStore, build_embedder

    store = LanceVectorStore(build_embedder(settings), db_path=settings.VECTOR_DB_PATH)
    matches = store.query("memory_summaries", "deployment process", 15)
"""

from __future__ import annotations

import json
import os
import subprocess
import threading
from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable

import lancedb

from ambient.src.utils.logger import get_logger

if TYPE_CHECKING:
    from ambient.config.settings import Settings

logger = get_logger(__name__)

# ── Type Aliases ──────────────────────────────────────────────────────
MatchMetadata = dict[str, str | int | float | bool | None]
MemoryMatch = dict[str, str | float | None | MatchMetadata]

# Columns that are never reported as metadata
_RESERVED_COLUMNS = {"vector", "text", "_distance", "_rowid"}

_DB_LOCK = threading.Lock()
_db_connection_cache: dict[str, lancedb.DBConnection] = {}


# ══════════════════════════════════════════════════════════════════════
#  ERRORS
# ══════════════════════════════════════════════════════════════════════


class AmbientMemoryError(Exception):
    """Base class for ambient-memory failures."""


class StoreUnavailableError(AmbientMemoryError):
    """The store could not be reached: connection, process or timeout failure."""


class StoreResponseError(AmbientMemoryError):
    """The store answered with an unexpected or unparseable shape."""


# ══════════════════════════════════════════════════════════════════════
#  PROTOCOLS
# ══════════════════════════════════════════════════════════════════════


@runtime_checkable
class Embedder(Protocol):
    """Structural type for any LangChain-compatible embedding model."""

    def embed_query(self, text: str) -> list[float]: ...


@runtime_checkable
class VectorStore(Protocol):
    """Nearest-neighbour text queries over named collections."""

    def query(self, collection: str, text: str, k: int) -> list[MemoryMatch]: ...


# ══════════════════════════════════════════════════════════════════════
#  IN-PROCESS: LANCEDB
# ══════════════════════════════════════════════════════════════════════


def _get_connection(db_path: str) -> lancedb.DBConnection:
    """
    Return a **singleton** ``lancedb.DBConnection`` for *db_path*.

    Thread-safe via ``_DB_LOCK``; collections are queried from a
    thread pool and must share one connection.
    """
    if db_path not in _db_connection_cache:
        with _DB_LOCK:
            if db_path not in _db_connection_cache:
                logger.info("Opening new LanceDB connection: %s", db_path)
                _db_connection_cache[db_path] = lancedb.connect(db_path)
    return _db_connection_cache[db_path]


class LanceVectorStore:
    """
    Read-only ``VectorStore`` over a LanceDB directory.

    Parameters
    ----------
    embedder : Embedder
        Any object exposing ``embed_query``.
    db_path
        LanceDB directory.  A missing directory behaves as an empty store.
    distance_type
        ``"l2"``, ``"cosine"`` or ``"dot"``; forwarded to LanceDB search.
    """

    __slots__ = ("embedder", "_db_path", "_distance_type", "_embed_lock", "_last_embedding")

    def __init__(self, embedder: Embedder, db_path: str | Path, distance_type: str = "l2") -> None:
        self.embedder: Embedder = embedder
        self._db_path: str = str(db_path)
        self._distance_type: str = distance_type
        self._embed_lock = threading.Lock()
        self._last_embedding: tuple[str, list[float]] | None = None


    def query(self, collection: str, text: str, k: int) -> list[MemoryMatch]:
        """
        Return up to *k* matches from *collection*, nearest first.

        Raises
        ------
        StoreUnavailableError
            If the database directory cannot be opened or read.
        """
        if not Path(self._db_path).exists():
            logger.debug("Vector DB directory missing: %s", self._db_path)
            return []

        try:
            db = _get_connection(self._db_path)
            if collection not in db.table_names():
                logger.debug("Collection '%s' does not exist, skipping.", collection)
                return []
            table = db.open_table(collection)
            if table.count_rows() == 0:
                logger.debug("Collection '%s' is empty, skipping.", collection)
                return []
        except OSError as exc:
            raise StoreUnavailableError(f"LanceDB unavailable at {self._db_path}: {exc}") from exc

        query_vector = self._embed(text)
        rows = table.search(query_vector).distance_type(self._distance_type).limit(k).to_list()
        logger.debug("Collection '%s' returned %d row(s).", collection, len(rows))
        return [self._to_match(row) for row in rows]


    def _embed(self, text: str) -> list[float]:
        """Embed *text* once per query; concurrent collection lookups share the vector."""
        with self._embed_lock:
            if self._last_embedding is None or self._last_embedding[0] != text:
                self._last_embedding = (text, self.embedder.embed_query(text))
            return self._last_embedding[1]


    @staticmethod
    def _to_match(row: dict) -> MemoryMatch:
        distance = row.get("_distance")
        metadata: MatchMetadata = {key: value for key, value in row.items() if key not in _RESERVED_COLUMNS}
        return {"document": row.get("text", ""), "distance": None if distance is None else float(distance), "metadata": metadata}


    def __repr__(self) -> str:
        return f"LanceVectorStore(db='{self._db_path}', distance_type='{self._distance_type}')"


# ══════════════════════════════════════════════════════════════════════
#  OUT-OF-PROCESS: WORKER INTERPRETER
# ══════════════════════════════════════════════════════════════════════


class SubprocessVectorStore:
    """
    ``VectorStore`` that delegates every query to a separate interpreter.

    Protocol: one JSON request on stdin, one JSON response line on stdout::

        → {"collection": str, "text": str, "k": int, "db_path": str, "distance_type": str, "embedding_model": str}
        ← {"ok": true, "result": [MemoryMatch, ...]}
        ← {"ok": false, "error": "..."}

    The API key travels in the child's ``GOOGLE_API_KEY`` environment
    variable, never in the request body.  Log output from the worker may
    precede the response; the last line that starts with ``{`` is the
    response.
    """

    __slots__ = ("_python", "_db_path", "_distance_type", "_timeout", "_embedding_model", "_api_key")

    def __init__(self, python_executable: str | Path, db_path: str | Path, distance_type: str = "l2", timeout: float = 5.0, embedding_model: str | None = None, api_key: str | None = None) -> None:
        self._python: str = str(python_executable)
        self._db_path: str = str(db_path)
        self._distance_type: str = distance_type
        self._timeout: float = timeout
        self._embedding_model: str | None = embedding_model
        self._api_key: str | None = api_key


    def query(self, collection: str, text: str, k: int) -> list[MemoryMatch]:
        request = {"collection": collection, "text": text, "k": k, "db_path": self._db_path, "distance_type": self._distance_type}
        if self._embedding_model:
            request["embedding_model"] = self._embedding_model

        env = {**os.environ, "PYTHONIOENCODING": "utf-8", "TOKENIZERS_PARALLELISM": "false"}
        if self._api_key:
            env["GOOGLE_API_KEY"] = self._api_key

        try:
            completed = subprocess.run([self._python, "-m", "ambient.scripts.store_worker"], input=json.dumps(request), capture_output=True, text=True, timeout=self._timeout, env=env, check=False)
        except subprocess.TimeoutExpired as exc:
            raise StoreUnavailableError(f"Store worker timed out after {self._timeout:.1f}s") from exc
        except OSError as exc:
            raise StoreUnavailableError(f"Cannot start store worker '{self._python}': {exc}") from exc

        if completed.returncode != 0:
            raise StoreUnavailableError(f"Store worker exited with code {completed.returncode}: {completed.stderr.strip()[-500:]}")

        return parse_worker_response(completed.stdout)


    def __repr__(self) -> str:
        return f"SubprocessVectorStore(python='{self._python}', db='{self._db_path}')"


def parse_worker_response(stdout: str) -> list[MemoryMatch]:
    """
    Extract the result list from store-worker output.

    Raises
    ------
    StoreUnavailableError
        If the worker reported an error.
    StoreResponseError
        If no response line exists or its shape is wrong.
    """
    lines = [line for line in stdout.strip().splitlines() if line.startswith("{")]
    if not lines:
        raise StoreResponseError("Store worker produced no response line")

    try:
        response = json.loads(lines[-1])
    except json.JSONDecodeError as exc:
        raise StoreResponseError(f"Unparseable store worker response: {exc}") from exc

    if not isinstance(response, dict):
        raise StoreResponseError(f"Store worker response is {type(response).__name__}, expected object")
    if not response.get("ok"):
        raise StoreUnavailableError(str(response.get("error", "Unknown store worker error")))

    result = response.get("result")
    if not isinstance(result, list):
        raise StoreResponseError("Store worker result is not a list")
    return result


# ══════════════════════════════════════════════════════════════════════
#  FACTORIES
# ══════════════════════════════════════════════════════════════════════


def build_embedder(config: Settings) -> Embedder:
    """
    Create the Gemini query embedder described by *config*.

    Raises
    ------
    ValueError
        If ``GOOGLE_API_KEY`` is not configured.
    """
    if config.GOOGLE_API_KEY is None:
        raise ValueError("GOOGLE_API_KEY is required to embed queries.")

    from langchain_google_genai import GoogleGenerativeAIEmbeddings

    return GoogleGenerativeAIEmbeddings(model=config.EMBEDDING_MODEL, google_api_key=config.GOOGLE_API_KEY.get_secret_value())


def build_store(config: Settings, embedder: Embedder | None = None) -> VectorStore:
    """Return the store adapter selected by ``config.STORE_BACKEND``."""
    if config.STORE_BACKEND == "subprocess":
        api_key = config.GOOGLE_API_KEY.get_secret_value() if config.GOOGLE_API_KEY is not None else None
        return SubprocessVectorStore(config.STORE_PYTHON, config.VECTOR_DB_PATH, distance_type=config.DISTANCE_TYPE, timeout=config.SEARCH_TIMEOUT_SECONDS, embedding_model=config.EMBEDDING_MODEL, api_key=api_key)
    return LanceVectorStore(embedder or build_embedder(config), db_path=config.VECTOR_DB_PATH, distance_type=config.DISTANCE_TYPE)
