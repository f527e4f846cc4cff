"""Core domain models for the production data agent."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal

Route = Literal["component", "aggregate", "find"]
Status = Literal["ok", "empty", "error"]


@dataclass(frozen=True, slots=True)
class QueryIntent:
    """Independent flags read from the question text.

    ``is_batch_query`` is informational: it is reported by ``explain`` and in
    the query log, but routing never depends on it. Batch filters come from the
    extracted id in ``conditions.build_conditions`` whether or not it is set.
    """

    is_ng_query: bool = False
    needs_aggregation: bool = False
    is_comparative: bool = False
    is_component_list: bool = False
    is_general_query: bool = False
    is_batch_query: bool = False
    component_name: str | None = None


@dataclass(frozen=True, slots=True)
class DateRange:
    start: datetime
    end: datetime

    def as_condition(self) -> dict[str, datetime]:
        return {"$gte": self.start, "$lte": self.end}


@dataclass(frozen=True, slots=True)
class DefectDefinition:
    defect_id: int
    defect_class: str
    description: str | None = None
    is_acceptable: bool | None = None
    defect_type: str | None = None


@dataclass(frozen=True, slots=True)
class ComponentPartition:
    """Typed accessor for one component's inspection collection."""

    name: str
    collection: str


@dataclass(frozen=True, slots=True)
class QueryPlan:
    question: str
    intent: QueryIntent
    route: Route
    conditions: dict[str, Any] = field(default_factory=dict)
    pipeline: tuple[dict[str, Any], ...] = ()

    def describe(self) -> dict[str, Any]:
        return {
            "route": self.route,
            "intent": {
                "is_ng_query": self.intent.is_ng_query,
                "needs_aggregation": self.intent.needs_aggregation,
                "is_comparative": self.intent.is_comparative,
                "is_component_list": self.intent.is_component_list,
                "is_general_query": self.intent.is_general_query,
                "is_batch_query": self.intent.is_batch_query,
                "component_name": self.intent.component_name,
            },
            "conditions": self.conditions,
            "pipeline": list(self.pipeline),
        }


@dataclass(slots=True)
class QueryResult:
    payload: str
    status: Status
    route: Route | None = None
    record_count: int = 0
