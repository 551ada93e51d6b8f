"""
Ambient Memory - Store Worker
==============================
Runs one vector-store query inside the vector-store interpreter and
answers on stdout.  Spawned by ``SubprocessVectorStore``; not meant to
be run by hand.

Protocol:
    stdin  → {"collection": str, "text": str, "k": int, "db_path": str, "distance_type": str, "embedding_model": str}
    stdout ← {"ok": true, "result": [...]}   or   {"ok": false, "error": "..."}

Configuration comes from the request, with ``GOOGLE_API_KEY`` read from
the environment the parent passed in.  Missing request fields fall back
to the usual ``Settings`` sources.

Logs go to stderr; the response is the only line on stdout.  Exit code is 0
whenever a response line was written, including error responses.

Usage:
    echo '{"collection": "memory_summaries", "text": "deploy", "k": 15, "db_path": "/data/workspace/.vector-db"}' \\
        | python -m ambient.scripts.store_worker
"""

from __future__ import annotations

import json
import sys

# Request field → Settings field
_REQUEST_OVERRIDES = {
    "db_path": "VECTOR_DB_PATH",
    "distance_type": "DISTANCE_TYPE",
    "embedding_model": "EMBEDDING_MODEL",
}


def _respond(payload: dict) -> None:
    try:
        line = json.dumps(payload, ensure_ascii=False, default=str)
    except (TypeError, ValueError) as exc:
        line = json.dumps({"ok": False, "error": f"unserialisable response: {exc}"})
    sys.stdout.write(line + "\n")
    sys.stdout.flush()


def main() -> int:
    try:
        request = json.loads(sys.stdin.read())
        collection = str(request["collection"])
        text = str(request["text"])
        k = int(request["k"])
    except (json.JSONDecodeError, KeyError, TypeError, ValueError) as exc:
        _respond({"ok": False, "error": f"bad request: {exc}"})
        return 0

    try:
        from ambient.src.utils.logger import set_log_stream

        set_log_stream(sys.stderr)

        from ambient.config.settings import Settings
        from ambient.src.database import vector_store

        config = Settings(**{field: request[key] for key, field in _REQUEST_OVERRIDES.items() if request.get(key)})
        store = vector_store.LanceVectorStore(vector_store.build_embedder(config), db_path=config.VECTOR_DB_PATH, distance_type=config.DISTANCE_TYPE)
        result = store.query(collection, text, k)
    except Exception as exc:
        _respond({"ok": False, "error": str(exc)})
        return 0

    _respond({"ok": True, "result": result})
    return 0


if __name__ == "__main__":
    sys.exit(main())
