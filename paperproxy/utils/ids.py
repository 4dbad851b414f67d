"""Helpers for PMC cross-reference identifiers."""

import re
from typing import Any

# 一个或多个前导 "PMC" (大小写不敏感)，保证清洗结果幂等
_PMC_PREFIX_RE = re.compile(r"^(?:pmc)+", re.IGNORECASE)


def sanitize_pmcid(value: Any) -> Any:
    """
    Strip the leading ``PMC`` prefix from a PMC identifier.

    ``"PMC123"``, ``"pmc123"`` and ``"123"`` all become ``"123"``. Values that
    are not strings are returned unchanged. The result is used as the join key
    of the enrichment pass and inside constructed PMC URLs.
    """
    if isinstance(value, str):
        return _PMC_PREFIX_RE.sub("", value)
    return value
