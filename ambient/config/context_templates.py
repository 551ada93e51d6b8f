"""
Ambient Memory - Context Templates & Filter Constants
======================================================
Centralised text constants for the context assembler and the query
normalizer.  All rendered strings live here so they can be reviewed
and changed independently of the retrieval logic.

Exports
-------
CONTEXT_HEADER, LINE_SEPARATOR, LINE_TEMPLATE, MISSING_DISTANCE,
DEFAULT_NOISE_MARKERS, DEFAULT_NOISE_PREFIXES, DEFAULT_ROLE_MARKERS.
"""

# ══════════════════════════════════════════════════════════════════════
#  CONTEXT BLOCK
# ══════════════════════════════════════════════════════════════════════

CONTEXT_HEADER: str = (
    "[Ambient memory - relevant context from past conversations]\n"
    "[These are past memories, not current truth. Facts may be outdated. "
    "Use them as background context to inform your reasoning, not as conclusions to repeat.]"
)

LINE_SEPARATOR: str = "\n"

# Rendered form of one candidate: "[source] text"
LINE_TEMPLATE: str = "[{source}] {text}"

# Ordering value for matches the engine returned without a distance.
MISSING_DISTANCE: float = 99.0


# ══════════════════════════════════════════════════════════════════════
#  QUERY FILTERING: Housekeeping Traffic
# ══════════════════════════════════════════════════════════════════════
# Matched case-insensitively against the *raw* message.

DEFAULT_NOISE_MARKERS: tuple[str, ...] = ("heartbeat", "self-ping keepalive", "read heartbeat.md", "cron job", "hook hook:")

DEFAULT_NOISE_PREFIXES: tuple[str, ...] = ("system:",)

# Leading "<role>:" prefixes stripped from the query text.
DEFAULT_ROLE_MARKERS: tuple[str, ...] = ("System",)
