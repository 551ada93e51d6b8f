"""
Ambient Memory - Recall Script
===============================
CLI entry point that resolves ambient context for one message:
    1. Load settings (fail-fast on configuration errors).
    2. Build the configured vector-store adapter.
    3. Run ``AmbientMemory.resolve_context``.
    4. Print the context with a timing breakdown.

Flags:
    --timeout S     Override ``SEARCH_TIMEOUT_SECONDS``.
    --max-chars N   Override ``MAX_CONTEXT_CHARS``.
    --raw           Print only the resolved context (no banner / summary).

Usage:
    python -m ambient.scripts.recall "What's the deployment process?"
    python -m ambient.scripts.recall "[09:14] System: status of the migration" --raw
"""

from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path

# ── Ensure project root is importable when run directly ────────────────
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
if str(_PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(_PROJECT_ROOT))


# ── CLI Argument Parsing ───────────────────────────────────────────────

def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="recall", description="Ambient memory: resolve background context for a message.")
    parser.add_argument("message", help="Incoming message text, as the downstream consumer would receive it.")
    parser.add_argument("--timeout", type=float, default=None, help="Override SEARCH_TIMEOUT_SECONDS for this run.")
    parser.add_argument("--max-chars", type=int, default=None, help="Override MAX_CONTEXT_CHARS for this run.")
    parser.add_argument("--raw", action="store_true", default=False, help="Print only the resolved context.")
    return parser.parse_args(argv)


# ── Main Orchestration ─────────────────────────────────────────────────

def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    t_start = time.perf_counter()

    # ── 0. Load settings + .env ────────────────────────────────────────
    try:
        from ambient.config.settings import settings

        overrides = {}
        if args.timeout is not None:
            overrides["SEARCH_TIMEOUT_SECONDS"] = args.timeout
        if args.max_chars is not None:
            overrides["MAX_CONTEXT_CHARS"] = args.max_chars
        config = settings.model_validate({**settings.model_dump(), **overrides}) if overrides else settings
    except Exception as exc:
        print("\n[FATAL] Configuration error, check your .env file:\n", file=sys.stderr)
        print(f"  {exc}", file=sys.stderr)
        return 1

    from ambient.src.utils.logger import get_logger
    logger = get_logger(__name__)

    if not args.raw:
        _print_header(config)

    # ── 1. Build the store adapter (timed) ─────────────────────────────
    from ambient.src.core.ambient_engine import AmbientMemory

    t_store = time.perf_counter()
    try:
        memory = AmbientMemory.build_default(config)
    except Exception:
        logger.exception("Failed to initialise the vector store adapter.")
        return 1
    startup_ms = (time.perf_counter() - t_store) * 1000

    # ── 2. Resolve ─────────────────────────────────────────────────────
    t_resolve = time.perf_counter()
    context = memory.resolve_context(args.message)
    resolve_ms = (time.perf_counter() - t_resolve) * 1000

    if args.raw:
        if context:
            print(context)
        return 0

    print(context if context else "(no ambient context)")
    _print_footer(len(context), startup_ms, resolve_ms, time.perf_counter() - t_start)
    return 0


# ── Pretty-print helpers ──────────────────────────────────────────────

def _print_header(config: object) -> None:
    collections = [*config.PRIMARY_COLLECTIONS, *config.FALLBACK_COLLECTIONS]  # type: ignore[attr-defined]

    print()
    print("=" * 60)
    print("  AMBIENT MEMORY: Recall")
    print("=" * 60)
    print(f"  Environment  : {config.ENV}")                          # type: ignore[attr-defined]
    print(f"  Backend      : {config.STORE_BACKEND}")                # type: ignore[attr-defined]
    print(f"  Vector DB    : {config.VECTOR_DB_PATH}")               # type: ignore[attr-defined]
    print(f"  Collections  : {', '.join(collections)}")
    print(f"  Timeout      : {config.SEARCH_TIMEOUT_SECONDS:.1f}s")  # type: ignore[attr-defined]
    print(f"  Budget       : {config.MAX_CONTEXT_CHARS} chars")      # type: ignore[attr-defined]
    print("=" * 60)
    print()


def _print_footer(context_chars: int, startup_ms: float, resolve_ms: float, elapsed: float) -> None:
    print()
    print("=" * 60)
    print("  EXECUTION SUMMARY")
    print("-" * 60)
    print(f"  Context size         : {context_chars} chars")
    print(f"  Store init           : {startup_ms:>8.1f}ms")
    print(f"  Resolve              : {resolve_ms:>8.1f}ms")
    print(f"  Total elapsed        : {elapsed:>8.2f}s")
    print("=" * 60)
    print()


# ── Entry point ────────────────────────────────────────────────────────

if __name__ == "__main__":
    sys.exit(main())
