"""Follow-up detector - keyword heuristic with LRU cache.

Decides whether an analysis-only run should still chain into generation.
Only consulted when model classification did not already decide it.
"""

import re
from functools import lru_cache

GENERATION_KEYWORDS = (
    "generate",
    "create",
    "implement",
    "write",
    "add",
    "update",
    "modify",
    "change",
    "fix",
    "improve",
    "optimize",
    "extend",
)

# Word prefix match: "fixes", "adding", "updated" count, "address" does not
_GENERATION_RE = re.compile(
    r"\b(" + "|".join(re.escape(k) for k in GENERATION_KEYWORDS) + r")(?:s|es|ed|d|ing)?\b",
)


@lru_cache(maxsize=128)
def _needs_generation_impl(text: str) -> bool:
    return bool(text) and _GENERATION_RE.search(text) is not None


class FollowupDetector:
    """Fast keyword check for "this request also wants code changes"."""

    def needs_generation(self, query: str) -> bool:
        return _needs_generation_impl(query.strip().lower())

    def cache_info(self) -> dict:
        """Get cache statistics."""
        info = _needs_generation_impl.cache_info()
        return {
            "hits": info.hits,
            "misses": info.misses,
            "size": info.currsize,
            "maxsize": info.maxsize,
        }

    def clear_cache(self) -> None:
        _needs_generation_impl.cache_clear()
