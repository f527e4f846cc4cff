import os

os.environ.setdefault("AGENT_OBSERVABILITY__ENABLE_TRACING", "false")
os.environ.setdefault("AGENT_OBSERVABILITY__ENABLE_PROMETHEUS", "false")

import pytest  # noqa: E402

from production_agent.defects import DefectCatalog  # noqa: E402
from production_agent.models import DefectDefinition  # noqa: E402


class FakeStore:
    """In-memory stand-in for MongoStore."""

    def __init__(self, reports=(), defects=(), partitions=None, fail=None):
        self.reports = list(reports)
        self.defects = list(defects)
        self.partitions = partitions or {}
        self.fail = fail
        self.calls = []
        self.opened = False
        self.closed = False

    def __enter__(self):
        self.opened = True
        return self

    def __exit__(self, *exc_info):
        self.closed = True

    def find_reports(self, predicate, limit):
        self.calls.append(("find", predicate, limit))
        if self.fail:
            raise self.fail
        return self.reports[:limit]

    def aggregate_reports(self, pipeline):
        self.calls.append(("aggregate", tuple(pipeline)))
        if self.fail:
            raise self.fail
        return list(self.reports)

    def find_defects(self):
        return list(self.defects)

    def collection_names(self):
        return list(self.partitions)

    def has_partition(self, partition):
        return partition.collection in self.partitions

    def find_component_records(self, partition, limit):
        self.calls.append(("component", partition.collection, limit))
        return self.partitions[partition.collection][:limit]


@pytest.fixture
def catalog():
    return DefectCatalog(
        [
            DefectDefinition(1, "Ink_Spot", "Ink spot on surface", True, "object_detection"),
            DefectDefinition(2, "Scratch", "Visible scratch", False, "object_detection"),
            DefectDefinition(3, "Misprint", "Wrong characters printed", False, "ocr"),
        ]
    )


@pytest.fixture
def defect_documents():
    return [
        {"defect_id": 1, "defect_class": "Ink_Spot", "description": "Ink spot on surface", "is_acceptable": True},
        {"defect_id": "2", "defect_class": "Scratch", "description": "Visible scratch", "is_acceptable": False},
        {"defect_class": "Missing id"},
    ]
