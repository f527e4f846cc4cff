"""Pick the aggregation pipeline for a classified question."""
from __future__ import annotations

from typing import Any

from .config import QuerySettings
from .models import QueryIntent

Pipeline = tuple[dict[str, Any], ...]


def ng_pipeline(limit: int) -> Pipeline:
    return (
        {"$match": {"ng_parts": {"$exists": True, "$gt": 0}}},
        {"$sort": {"ng_parts": -1}},
        {"$limit": limit},
    )


def component_summary_pipeline() -> Pipeline:
    return (
        {
            "$group": {
                "_id": "$component_name",
                "total_batches": {"$sum": 1},
                "total_production": {"$sum": "$actual_production"},
                "latest_date": {"$max": "$date"},
            }
        },
        {"$sort": {"total_production": -1}},
    )


def route(intent: QueryIntent, limits: QuerySettings | None = None) -> Pipeline:
    """Return exactly one pipeline; NG beats component listing beats ranking."""

    limits = limits or QuerySettings()
    if intent.is_ng_query:
        return ng_pipeline(limits.ng_limit)
    if intent.is_component_list:
        return component_summary_pipeline()
    if intent.needs_aggregation:
        return ({"$sort": {"actual_production": -1}}, {"$limit": limits.aggregation_limit})
    return ({"$sort": {"date": -1}}, {"$limit": limits.recent_limit})


def is_component_summary(pipeline: Pipeline) -> bool:
    return bool(pipeline) and "$group" in pipeline[0]
