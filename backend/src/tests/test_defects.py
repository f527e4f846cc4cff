import pytest

from production_agent.defects import DefectCatalog, StaticCatalogProvider, StoreCatalogProvider
from production_agent.exceptions import StoreConnectionError, StoreError
from production_agent.models import DefectDefinition


def test_index_maps_to_defect_id_plus_one(catalog):
    mapped = catalog.map_occurrences([16661, 0, 4], "object_detection")
    assert mapped["Ink_Spot"]["defect_id"] == 1
    assert mapped["Ink_Spot"]["count"] == 16661
    assert mapped["Misprint"]["defect_id"] == 3
    assert mapped["Misprint"]["category"] == "object_detection"
    assert "Scratch" not in mapped


def test_zero_counts_are_never_emitted(catalog):
    mapped = catalog.map_occurrences([0, 0, 0, 0, 2, 0], "ocr")
    assert list(mapped) == ["Unknown_Defect_5"]
    assert all(entry["count"] > 0 for entry in mapped.values())


def test_unknown_ids_are_kept(catalog):
    entry = catalog.map_occurrences([0, 0, 0, 7], "dimensional")["Unknown_Defect_4"]
    assert entry == {
        "defect_id": 4,
        "count": 7,
        "description": "Unknown defect with ID 4",
        "is_acceptable": None,
        "category": "dimensional",
    }


def test_definition_fields_are_carried(catalog):
    entry = catalog.map_occurrences([0, 3], "object_detection")["Scratch"]
    assert entry["description"] == "Visible scratch"
    assert entry["is_acceptable"] is False


def test_shared_class_names_add_up():
    catalog = DefectCatalog([DefectDefinition(1, "Dent"), DefectDefinition(2, "Dent")])
    assert catalog.map_occurrences([2, 3], "object_detection")["Dent"]["count"] == 5


def test_missing_or_invalid_arrays(catalog):
    assert catalog.map_occurrences(None, "ocr") == {}
    assert catalog.map_occurrences({"1": 3}, "ocr") == {}
    assert catalog.map_occurrences(["x", None, "2"], "ocr")["Misprint"]["count"] == 2


def test_label_for(catalog):
    assert catalog.label_for(2) == "Scratch"
    assert catalog.label_for(99) == "Unknown_Defect_99"


class DefectSource:
    def __init__(self, documents=(), error=None):
        self.documents = list(documents)
        self.error = error
        self.loads = 0

    def find_defects(self):
        self.loads += 1
        if self.error:
            raise self.error
        return self.documents


def test_store_provider_reloads_every_time(defect_documents):
    source = DefectSource(defect_documents)
    provider = StoreCatalogProvider()
    first = provider.load(source)
    second = provider.load(source)
    assert source.loads == 2
    assert len(first) == 2
    assert second.label_for(2) == "Scratch"


def test_store_provider_degrades_to_empty_catalog():
    catalog = StoreCatalogProvider().load(DefectSource(error=StoreError("not authorized")))
    assert len(catalog) == 0
    assert catalog.label_for(1) == "Unknown_Defect_1"


def test_store_provider_propagates_connection_failures():
    with pytest.raises(StoreConnectionError):
        StoreCatalogProvider().load(DefectSource(error=StoreConnectionError("timeout")))


def test_static_provider_ignores_source(catalog):
    assert StaticCatalogProvider(catalog).load(DefectSource()) is catalog
