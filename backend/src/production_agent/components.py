"""Component inspection partitions: name extraction, registry, record normalization."""
from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from typing import Any

from .defects import DIMENSIONAL, OBJECT_DETECTION, OCR, DefectCatalog
from .exceptions import MalformedNameError, PartitionNotFoundError
from .models import ComponentPartition

# Single quotes must not be flanked by word characters so "what's" is not a quote.
NAME_PATTERNS = (
    re.compile(r"(?<!\w)'([^']+)'(?!\w)"),
    re.compile(r'"([^"]+)"'),
    re.compile(r"\*([^*]+)\*"),
)
VALID_NAME = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_\-. ]*$")
MAX_NAME_LENGTH = 120

COMPONENT_DECISIONS = {0: "OK", 1: "NG", 2: "Maybe", 3: "Rework", 4: "Unknown"}
IMAGE_DECISIONS = {0: "OK", 1: "NG", 2: "Maybe"}
INVALID_TIMESTAMP = "Invalid timestamp"

METADATA_BLOCKS = (
    ("object_detection_metadata", OBJECT_DETECTION),
    ("ocr_metadata", OCR),
    ("dimensional_metadata", DIMENSIONAL),
)
DETECTION_FIELDS = ("confidence", "bbox", "text", "expected_text", "measurement", "tolerance")


def extract_component_name(question: str) -> str | None:
    """Return the quoted or asterisk-delimited component name, if any."""

    for pattern in NAME_PATTERNS:
        match = pattern.search(question)
        if match:
            return match.group(1).strip()
    return None


def validate_name(name: str) -> str:
    candidate = (name or "").strip()
    if not candidate:
        raise MalformedNameError(name, "name is empty")
    if len(candidate) > MAX_NAME_LENGTH:
        raise MalformedNameError(name, f"name is longer than {MAX_NAME_LENGTH} characters")
    if candidate.lower().startswith("system."):
        raise MalformedNameError(name, "system collections cannot be queried")
    if not VALID_NAME.match(candidate):
        raise MalformedNameError(name, "only letters, digits, spaces, '_', '-' and '.' are allowed")
    return candidate


class ComponentRegistry:
    """Known component names mapped to their inspection partitions.

    Question text never selects a collection directly: a name has to be
    well-formed and registered before any store access happens.
    """

    def __init__(self, names: Iterable[str] = (), reserved: Iterable[str] = ()) -> None:
        self._reserved = {item.lower() for item in reserved}
        self._configured = list(names)
        self._partitions: dict[str, ComponentPartition] = {}
        self.register(self._configured)

    def __contains__(self, name: str) -> bool:
        return name.strip().lower() in self._partitions

    def __len__(self) -> int:
        return len(self._partitions)

    @property
    def names(self) -> list[str]:
        return sorted(partition.name for partition in self._partitions.values())

    def register(self, names: Iterable[str]) -> None:
        for raw in names:
            try:
                name = validate_name(raw)
            except MalformedNameError:
                continue
            key = name.lower()
            if key in self._reserved or key in self._partitions:
                continue
            self._partitions[key] = ComponentPartition(name=name, collection=name)

    def refresh(self, names: Iterable[str]) -> None:
        """Replace discovered partitions; configured names are always kept."""

        self._partitions = {}
        self.register(self._configured)
        self.register(names)

    def resolve(self, name: str) -> ComponentPartition:
        candidate = validate_name(name)
        partition = self._partitions.get(candidate.lower())
        if partition is None:
            raise PartitionNotFoundError(candidate)
        return partition


def decision_label(code: Any, table: Mapping[int, str]) -> str:
    try:
        return table[int(code)]
    except (KeyError, TypeError, ValueError):
        return f"Unknown ({code})"


def normalize_timestamp(value: Any) -> str:
    """Render a stored timestamp as ISO-8601.

    Accepts extended-JSON ``{"$date": {"$numberLong": ...}}`` and
    ``{"$date": "..."}`` values, epoch milliseconds, ISO strings and native
    datetimes. Anything else becomes ``"Invalid timestamp"``.
    """

    try:
        if isinstance(value, Mapping) and "$date" in value:
            value = value["$date"]
            if isinstance(value, Mapping) and "$numberLong" in value:
                value = int(value["$numberLong"])
        if isinstance(value, datetime):
            parsed = value
        elif isinstance(value, bool):
            return INVALID_TIMESTAMP
        elif isinstance(value, (int, float)):
            parsed = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        elif isinstance(value, str) and value.strip():
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        else:
            return INVALID_TIMESTAMP
    except (TypeError, ValueError, OverflowError, OSError):
        return INVALID_TIMESTAMP
    return parsed.isoformat()


def _detections(block: Any) -> list[dict[str, Any]]:
    if isinstance(block, Mapping):
        items = block.get("defects") or block.get("detections") or []
    elif isinstance(block, list):
        items = block
    else:
        items = []
    return [item for item in items if isinstance(item, Mapping)]


def normalize_defect(detection: Mapping[str, Any], category: str, catalog: DefectCatalog) -> dict[str, Any]:
    defect_id = detection.get("defect_id")
    entry: dict[str, Any] = {"category": category}
    try:
        numeric_id = int(defect_id)
    except (TypeError, ValueError):
        entry["defect"] = detection.get("defect_class") or detection.get("label") or "Unknown"
    else:
        definition = catalog.get(numeric_id)
        entry["defect_id"] = numeric_id
        entry["defect"] = catalog.label_for(numeric_id)
        if definition:
            entry["description"] = definition.description
            entry["is_acceptable"] = definition.is_acceptable
    for key in DETECTION_FIELDS:
        if key in detection:
            entry[key] = detection[key]
    return entry


def normalize_image(image: Mapping[str, Any], index: int, catalog: DefectCatalog) -> dict[str, Any]:
    groups: dict[str, list[dict[str, Any]]] = {}
    for key, category in METADATA_BLOCKS:
        if image.get(key) is None:
            continue
        groups[category] = [normalize_defect(item, category, catalog) for item in _detections(image[key])]
    return {
        "image_id": image.get("image_id", index),
        "decision": decision_label(image.get("decision"), IMAGE_DECISIONS),
        "defects": groups,
    }


def normalize_inspection(record: Mapping[str, Any], catalog: DefectCatalog) -> dict[str, Any]:
    images = record.get("images") if isinstance(record.get("images"), list) else []
    return {
        "component_id": record.get("component_id"),
        "batch_id": record.get("batch_id"),
        "timestamp": normalize_timestamp(record.get("timestamp")),
        "decision": decision_label(record.get("decision"), COMPONENT_DECISIONS),
        "subtype": record.get("subtype"),
        "controller_id": record.get("controller_id"),
        "config_audit_id": record.get("config_audit_id"),
        "images": [
            normalize_image(image, index, catalog)
            for index, image in enumerate(images)
            if isinstance(image, Mapping)
        ],
    }
