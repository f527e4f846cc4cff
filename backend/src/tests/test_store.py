import pytest
from pymongo import DESCENDING
from pymongo.errors import AutoReconnect, OperationFailure, ServerSelectionTimeoutError

from production_agent import store as store_module
from production_agent.config import MongoSettings
from production_agent.exceptions import StoreConnectionError, StoreError
from production_agent.models import ComponentPartition
from production_agent.store import MongoStore, discoverable_components

SETTINGS = MongoSettings(uri="mongodb://db.example:27017", database="factory")


class FakeCursor:
    def __init__(self, documents):
        self.documents = list(documents)
        self.sorted_by = None
        self.limited_to = None

    def sort(self, key, direction):
        self.sorted_by = (key, direction)
        self.documents.sort(key=lambda document: document[key], reverse=direction == DESCENDING)
        return self

    def limit(self, count):
        self.limited_to = count
        self.documents = self.documents[:count]
        return self

    def __iter__(self):
        return iter(self.documents)


class FakeCollection:
    def __init__(self, database, name):
        self.database = database
        self.name = name

    def find(self, predicate):
        if self.database.error:
            raise self.database.error
        self.database.queries.append((self.name, predicate))
        cursor = FakeCursor(self.database.collections.get(self.name, []))
        self.database.cursors.append(cursor)
        return cursor

    def aggregate(self, pipeline):
        if self.database.error:
            raise self.database.error
        self.database.queries.append((self.name, pipeline))
        return iter(self.database.collections.get(self.name, []))


class FakeDatabase:
    def __init__(self, collections, error):
        self.collections = collections
        self.error = error
        self.queries = []
        self.cursors = []

    def __getitem__(self, name):
        return FakeCollection(self, name)

    def list_collection_names(self):
        if self.error:
            raise self.error
        return list(self.collections)


class FakeAdmin:
    def __init__(self, error):
        self.error = error

    def command(self, name):
        if self.error:
            raise self.error
        return {"ok": 1.0}


@pytest.fixture
def mongo(monkeypatch):
    """Patch ``MongoClient``; returns a function that configures the next clients."""

    clients = []
    options = {"collections": {}, "ping_error": None, "error": None}

    class FakeMongoClient:
        def __init__(self, uri, **kwargs):
            self.uri = uri
            self.kwargs = kwargs
            self.closed = False
            self.admin = FakeAdmin(options["ping_error"])
            self.database = FakeDatabase(options["collections"], options["error"])
            self.database_name = None
            clients.append(self)

        def __getitem__(self, name):
            self.database_name = name
            return self.database

        def close(self):
            self.closed = True

    monkeypatch.setattr(store_module, "MongoClient", FakeMongoClient)

    def configure(**overrides):
        options.update(overrides)
        return clients

    return configure


def test_failed_ping_closes_the_client(mongo):
    clients = mongo(ping_error=ServerSelectionTimeoutError("no servers found"))
    with pytest.raises(StoreConnectionError):
        with MongoStore(SETTINGS):
            pass
    assert len(clients) == 1
    assert clients[0].closed


def test_missing_uri_never_creates_a_client(mongo):
    clients = mongo()
    with pytest.raises(StoreConnectionError):
        MongoStore(MongoSettings(uri=None)).connect()
    assert clients == []


def test_client_is_closed_after_use(mongo):
    clients = mongo()
    with MongoStore(SETTINGS) as store:
        store.find_defects()
    assert clients[0].closed
    assert clients[0].database_name == "factory"
    assert clients[0].kwargs["serverSelectionTimeoutMS"] == 15000


def test_client_is_closed_when_a_query_fails(mongo):
    clients = mongo(error=OperationFailure("bad query"))
    with pytest.raises(StoreError):
        with MongoStore(SETTINGS) as store:
            store.find_reports({}, 20)
    assert clients[0].closed


def test_lost_connection_maps_to_connection_error(mongo):
    mongo(error=AutoReconnect("connection reset"))
    with MongoStore(SETTINGS) as store:
        with pytest.raises(StoreConnectionError):
            store.find_reports({"batch_id": "A_1"}, 20)


def test_other_driver_errors_map_to_store_error(mongo):
    mongo(error=OperationFailure("unknown operator: $foo"))
    with MongoStore(SETTINGS) as store:
        with pytest.raises(StoreError) as excinfo:
            store.aggregate_reports([{"$foo": {}}])
    assert not isinstance(excinfo.value, StoreConnectionError)
    assert "unknown operator" in str(excinfo.value)


def test_find_reports_applies_predicate_and_limit(mongo):
    clients = mongo(collections={"Reports": [{"batch_id": f"A_{n}"} for n in range(30)]})
    with MongoStore(SETTINGS) as store:
        reports = store.find_reports({"ng_parts": {"$gt": 0}}, 20)
    database = clients[0].database
    assert len(reports) == 20
    assert database.queries == [("Reports", {"ng_parts": {"$gt": 0}})]
    assert database.cursors[0].limited_to == 20


def test_component_records_are_newest_first_and_limited(mongo):
    records = [{"component_id": f"C-{n}", "timestamp": n} for n in range(5)]
    clients = mongo(collections={"ABC_1": records})
    with MongoStore(SETTINGS) as store:
        newest = store.find_component_records(ComponentPartition("ABC_1", "ABC_1"), 3)
    assert [record["timestamp"] for record in newest] == [4, 3, 2]
    cursor = clients[0].database.cursors[0]
    assert cursor.sorted_by == ("timestamp", DESCENDING)
    assert cursor.limited_to == 3


def test_has_partition_checks_collection_names(mongo):
    mongo(collections={"Reports": [], "Defects": [], "ABC_1": []})
    with MongoStore(SETTINGS) as store:
        assert store.has_partition(ComponentPartition("ABC_1", "ABC_1"))
        assert not store.has_partition(ComponentPartition("XYZ_9", "XYZ_9"))


def test_store_requires_an_open_connection():
    with pytest.raises(StoreConnectionError):
        MongoStore(SETTINGS).find_defects()


def test_discoverable_components_skip_reserved_collections():
    names = ["Reports", "Defects", "ABC_1", "system.views", "Cap_Line_2"]
    assert discoverable_components(names, SETTINGS) == ["ABC_1", "Cap_Line_2"]
