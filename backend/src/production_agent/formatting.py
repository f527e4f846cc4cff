"""Shape query results into the JSON text handed to the language model."""
from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from datetime import date, datetime
from typing import Any

from .components import normalize_inspection
from .defects import DIMENSIONAL, OBJECT_DETECTION, OCR, DefectCatalog

NO_RESULTS = "No production reports found matching your query."


def empty_partition_message(name: str) -> str:
    return f"Component '{name}' exists but has no inspection records yet."


def partition_not_found_message(name: str) -> str:
    return f"Component '{name}' was not found. No inspection data exists for that component name."


def malformed_name_message(name: str, reason: str) -> str:
    return f"'{name}' cannot be used as a component name ({reason})."


def database_error_message(exc: Exception) -> str:
    return f"Error querying database: {exc}"


def _json_default(value: Any) -> str:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


def to_json(items: list[dict[str, Any]]) -> str:
    return json.dumps(items, indent=2, default=_json_default)


def format_report(record: Mapping[str, Any], catalog: DefectCatalog) -> dict[str, Any]:
    return {
        "batch_id": record.get("batch_id"),
        "component_name": record.get("component_name"),
        "date": record.get("date"),
        "actual_production": record.get("actual_production"),
        "ok_parts": record.get("ok_parts"),
        "ng_parts": record.get("ng_parts"),
        "defect_occurrences": catalog.map_occurrences(record.get("defect_occurrences"), OBJECT_DETECTION),
        "ocr_defect_occurrences": catalog.map_occurrences(record.get("ocr_defect_occurrences"), OCR),
        "dimensional_defect_occurrences": catalog.map_occurrences(
            record.get("dimensional_defect_occurrences"), DIMENSIONAL
        ),
        "quality": record.get("Quality"),
        "performance": record.get("Performance"),
        "availability": record.get("Availability"),
    }


def format_component_group(row: Mapping[str, Any]) -> dict[str, Any]:
    return {
        "component_name": row.get("_id"),
        "total_batches": row.get("total_batches"),
        "total_production": row.get("total_production"),
        "latest_date": row.get("latest_date"),
    }


def format_reports(records: Iterable[Mapping[str, Any]], catalog: DefectCatalog) -> str:
    formatted = [format_report(record, catalog) for record in records]
    return to_json(formatted) if formatted else NO_RESULTS


def format_component_groups(rows: Iterable[Mapping[str, Any]]) -> str:
    formatted = [format_component_group(row) for row in rows]
    return to_json(formatted) if formatted else NO_RESULTS


def format_inspections(records: Iterable[Mapping[str, Any]], catalog: DefectCatalog) -> str:
    formatted = [normalize_inspection(record, catalog) for record in records]
    return to_json(formatted) if formatted else NO_RESULTS
