"""Defect catalog lookup and occurrence-array enrichment."""
from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import Any, Protocol

from .exceptions import StoreConnectionError, StoreError
from .models import DefectDefinition

logger = logging.getLogger(__name__)

OBJECT_DETECTION = "object_detection"
OCR = "ocr"
DIMENSIONAL = "dimensional"


def unknown_label(defect_id: int) -> str:
    return f"Unknown_Defect_{defect_id}"


class DefectCatalog:
    """Immutable id -> definition lookup built from the defects collection."""

    def __init__(self, definitions: Iterable[DefectDefinition] = ()) -> None:
        self._by_id: dict[int, DefectDefinition] = {item.defect_id: item for item in definitions}

    def __len__(self) -> int:
        return len(self._by_id)

    def get(self, defect_id: int) -> DefectDefinition | None:
        return self._by_id.get(defect_id)

    def label_for(self, defect_id: int) -> str:
        definition = self._by_id.get(defect_id)
        return definition.defect_class if definition else unknown_label(defect_id)

    def map_occurrences(self, counts: Sequence[Any] | None, category: str) -> dict[str, dict[str, Any]]:
        """Map a positional count vector to named defects.

        Position ``i`` holds the count for defect id ``i + 1``. Zero counts are
        skipped; ids missing from the catalog are kept under an
        ``Unknown_Defect_{id}`` label. Ids sharing a class name add up.
        """

        mapped: dict[str, dict[str, Any]] = {}
        if not isinstance(counts, (list, tuple)):
            return mapped
        for index, raw in enumerate(counts):
            count = _as_count(raw)
            if count <= 0:
                continue
            defect_id = index + 1
            definition = self._by_id.get(defect_id)
            if definition:
                label = definition.defect_class
                entry = {
                    "defect_id": defect_id,
                    "count": count,
                    "description": definition.description,
                    "is_acceptable": definition.is_acceptable,
                    "category": category or definition.defect_type,
                }
            else:
                label = unknown_label(defect_id)
                entry = {
                    "defect_id": defect_id,
                    "count": count,
                    "description": f"Unknown defect with ID {defect_id}",
                    "is_acceptable": None,
                    "category": category or "unknown",
                }
            if label in mapped:
                mapped[label]["count"] += count
            else:
                mapped[label] = entry
        return mapped


def _as_count(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return int(value)
    try:
        return int(str(value))
    except (TypeError, ValueError):
        return 0


def definition_from_document(document: Mapping[str, Any]) -> DefectDefinition | None:
    try:
        defect_id = int(document["defect_id"])
    except (KeyError, TypeError, ValueError):
        return None
    return DefectDefinition(
        defect_id=defect_id,
        defect_class=str(document.get("defect_class") or unknown_label(defect_id)),
        description=document.get("description"),
        is_acceptable=document.get("is_acceptable"),
        defect_type=document.get("defect_type"),
    )


class DefectSource(Protocol):
    def find_defects(self) -> list[dict[str, Any]]: ...


class CatalogProvider(Protocol):
    """Produces the catalog for one query; called once per invocation."""

    def load(self, source: DefectSource) -> DefectCatalog: ...


class StoreCatalogProvider:
    """Reads the full defect collection on every call.

    Definitions can change between questions, so nothing is cached.
    """

    def load(self, source: DefectSource) -> DefectCatalog:
        try:
            documents = source.find_defects()
        except StoreConnectionError:
            raise
        except StoreError as exc:
            logger.error("Error fetching defect information: %s", exc)
            return DefectCatalog()
        definitions = [item for item in map(definition_from_document, documents) if item]
        logger.debug("Loaded %d defect definitions", len(definitions))
        return DefectCatalog(definitions)


class StaticCatalogProvider:
    def __init__(self, catalog: DefectCatalog) -> None:
        self.catalog = catalog

    def load(self, source: DefectSource) -> DefectCatalog:
        return self.catalog
