"""Entity extraction and MongoDB filter construction for report queries."""
from __future__ import annotations

import re
from typing import Any

from .dates import DateRangeResolver
from .models import QueryIntent

BATCH_PATTERN = re.compile(r"\b(?:batch|lot)(?:\s*(?:id|number|no\.?))?[\s:#]+([\w:\-]+)", re.IGNORECASE)
COMPONENT_PATTERN = re.compile(r"\b(?:component|part)[\s:]+(\w+)", re.IGNORECASE)
METRIC_PATTERN = re.compile(r"performance|efficiency|quality", re.IGNORECASE)
QUANTITY_PATTERN = re.compile(r"(?:production|quantity)\D*?(?<![\w:\-])(\d+)(?![\w:\-])", re.IGNORECASE)

QUALIFIED_ID_CHARS = ("_", ":", "-")
CONNECTIVES = frozenset(
    {
        "a", "an", "and", "are", "by", "for", "from", "had", "has", "have", "in", "is",
        "of", "on", "that", "the", "to", "was", "were", "which", "with",
    }
)
# "batch id" with nothing after it captures the keyword itself.
ID_KEYWORDS = frozenset({"id", "number", "no"})


def extract_batch_id(question: str) -> str | None:
    for match in BATCH_PATTERN.finditer(question):
        token = match.group(1).strip()
        if token.lower() not in CONNECTIVES and token.lower() not in ID_KEYWORDS:
            return token
    return None


def extract_component(question: str) -> str | None:
    match = COMPONENT_PATTERN.search(question)
    if not match or match.group(1).lower() in CONNECTIVES:
        return None
    return match.group(1)


def extract_quantity(question: str) -> int | None:
    match = QUANTITY_PATTERN.search(question)
    return int(match.group(1)) if match else None


def batch_condition(batch_id: str) -> Any:
    """Qualified ids (``A_24_02_2025``, ``L:7``) match exactly, anything else as a substring."""

    if any(char in batch_id for char in QUALIFIED_ID_CHARS):
        return batch_id
    return {"$regex": re.escape(batch_id), "$options": "i"}


def build_conditions(question: str, intent: QueryIntent, resolver: DateRangeResolver) -> dict[str, Any]:
    """Build the ``find`` filter for a question.

    General and component-listing questions return an empty filter; the caller
    shapes those through an aggregation pipeline instead.
    """

    if intent.is_general_query or intent.is_component_list:
        return {}

    conditions: dict[str, Any] = {}
    alternatives: list[list[dict[str, Any]]] = []

    batch_id = extract_batch_id(question)
    if batch_id:
        conditions["batch_id"] = batch_condition(batch_id)

    component = extract_component(question)
    if component:
        conditions["component_name"] = {"$regex": re.escape(component), "$options": "i"}

    date_range = resolver.resolve(question)
    if date_range:
        conditions["date"] = date_range.as_condition()

    if intent.is_ng_query:
        conditions["ng_parts"] = {"$exists": True, "$gt": 0}

    if METRIC_PATTERN.search(question):
        alternatives.append(
            [
                {"Performance": {"$exists": True, "$ne": None}},
                {"Quality": {"$exists": True, "$ne": None}},
            ]
        )

    quantity = extract_quantity(question)
    if quantity is not None:
        alternatives.append(
            [
                {"actual_production": {"$gte": quantity}},
                {"planned_quantity": {"$gte": quantity}},
            ]
        )

    if len(alternatives) == 1:
        conditions["$or"] = alternatives[0]
    elif alternatives:
        conditions["$and"] = [{"$or": group} for group in alternatives]
    return conditions
