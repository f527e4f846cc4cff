"""Translate a question into a MongoDB query, run it and format the enriched result."""
from __future__ import annotations

import json
import logging
from collections.abc import Callable

from . import aggregation
from .components import ComponentRegistry, extract_component_name
from .conditions import build_conditions
from .config import QuerySettings, settings
from .dates import DateRangeResolver, zone_for
from .defects import CatalogProvider, StoreCatalogProvider
from .exceptions import MalformedNameError, PartitionNotFoundError, StoreError
from .formatting import (
    NO_RESULTS,
    database_error_message,
    empty_partition_message,
    format_component_groups,
    format_inspections,
    format_reports,
    malformed_name_message,
    partition_not_found_message,
)
from .intent import classify
from .models import QueryPlan, QueryResult
from .observability import QUERY_OUTCOMES
from .store import MongoStore

logger = logging.getLogger(__name__)


def default_registry() -> ComponentRegistry:
    return ComponentRegistry(
        settings.mongo.components,
        reserved=(settings.mongo.reports_collection, settings.mongo.defects_collection),
    )


class QueryEngine:
    """Classify, build, execute, enrich and format one question at a time.

    ``query_settings.component_aware`` switches quoted component names to their
    inspection partitions; with it off the engine behaves like the legacy
    report-only pipeline.
    """

    def __init__(
        self,
        store_factory: Callable[[], MongoStore] = MongoStore,
        catalog_provider: CatalogProvider | None = None,
        registry: ComponentRegistry | None = None,
        query_settings: QuerySettings | None = None,
        resolver: DateRangeResolver | None = None,
    ) -> None:
        self.store_factory = store_factory
        self.catalog_provider = catalog_provider or StoreCatalogProvider()
        self.registry = registry if registry is not None else default_registry()
        self.query_settings = query_settings or settings.query
        self.resolver = resolver or DateRangeResolver(
            week_start=self.query_settings.week_start,
            tz=zone_for(self.query_settings.timezone),
        )

    def plan(self, question: str) -> QueryPlan:
        component_name = extract_component_name(question) if self.query_settings.component_aware else None
        intent = classify(question, component_name)
        if component_name:
            return QueryPlan(question=question, intent=intent, route="component")
        if intent.needs_aggregation or intent.is_component_list or intent.is_general_query:
            pipeline = aggregation.route(intent, self.query_settings)
            return QueryPlan(question=question, intent=intent, route="aggregate", pipeline=pipeline)
        conditions = build_conditions(question, intent, self.resolver)
        return QueryPlan(question=question, intent=intent, route="find", conditions=conditions)

    def run(self, question: str) -> QueryResult:
        plan = self.plan(question)
        logger.info("Executing MongoDB query: %s", json.dumps(plan.describe(), default=str))
        try:
            result = self._execute(plan)
        except MalformedNameError as exc:
            result = QueryResult(malformed_name_message(exc.name, exc.reason), "empty", plan.route)
        except PartitionNotFoundError as exc:
            result = QueryResult(partition_not_found_message(exc.name), "empty", plan.route)
        except StoreError as exc:
            logger.error("MongoDB query error: %s", exc)
            result = QueryResult(database_error_message(exc), "error", plan.route)
        QUERY_OUTCOMES.labels(plan.route, result.status).inc()
        return result

    def _execute(self, plan: QueryPlan) -> QueryResult:
        partition = None
        if plan.route == "component":
            # Reject unknown names before touching the store.
            partition = self.registry.resolve(plan.intent.component_name or "")

        with self.store_factory() as store:
            catalog = self.catalog_provider.load(store)
            if partition is not None:
                if not store.has_partition(partition):
                    raise PartitionNotFoundError(partition.name)
                records = store.find_component_records(partition, self.query_settings.component_limit)
                if not records:
                    return QueryResult(empty_partition_message(partition.name), "empty", plan.route)
                return QueryResult(format_inspections(records, catalog), "ok", plan.route, len(records))

            if plan.route == "aggregate":
                records = store.aggregate_reports(plan.pipeline)
                if aggregation.is_component_summary(plan.pipeline):
                    payload = format_component_groups(records)
                else:
                    payload = format_reports(records, catalog)
            else:
                records = store.find_reports(plan.conditions, self.query_settings.report_limit)
                payload = format_reports(records, catalog)

        if not records:
            return QueryResult(NO_RESULTS, "empty", plan.route)
        return QueryResult(payload, "ok", plan.route, len(records))
