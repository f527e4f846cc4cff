"""Deterministic intent classification for production questions."""
from __future__ import annotations

import re

from .models import QueryIntent

# (flag, pattern) pairs; every pattern is tested once and flags are independent.
INTENT_PATTERNS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("is_ng_query", re.compile(r"ng|not good|defect|reject", re.IGNORECASE)),
    (
        "needs_aggregation",
        re.compile(r"most|max|maximum|highest|lowest|min|minimum|average|sum|total", re.IGNORECASE),
    ),
    ("is_comparative", re.compile(r"more|less|greater|than|compare", re.IGNORECASE)),
    (
        "is_component_list",
        re.compile(r"component|part|what.*component|which.*component|list.*component", re.IGNORECASE),
    ),
    ("is_general_query", re.compile(r"what.*data|which.*data|available.*data|have.*data", re.IGNORECASE)),
    ("is_batch_query", re.compile(r"batch.*id.*[\w:\-]+", re.IGNORECASE)),
)


def classify(question: str, component_name: str | None = None) -> QueryIntent:
    flags = {flag: bool(pattern.search(question)) for flag, pattern in INTENT_PATTERNS}
    return QueryIntent(component_name=component_name, **flags)
