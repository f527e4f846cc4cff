"""MongoDB access for reports, defect definitions and component partitions."""
from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import Any

from pymongo import DESCENDING, MongoClient
from pymongo.database import Database
from pymongo.errors import ConnectionFailure, PyMongoError

from .config import MongoSettings, settings
from .exceptions import StoreConnectionError, StoreError
from .models import ComponentPartition

logger = logging.getLogger(__name__)


@contextmanager
def _translate_errors(action: str) -> Iterator[None]:
    try:
        yield
    except ConnectionFailure as exc:
        logger.error("MongoDB unreachable while %s: %s", action, exc)
        raise StoreConnectionError(str(exc)) from exc
    except PyMongoError as exc:
        logger.error("MongoDB error while %s: %s", action, exc)
        raise StoreError(str(exc)) from exc


class MongoStore:
    """One connection per question; use as a context manager so it always closes."""

    def __init__(self, mongo_settings: MongoSettings | None = None) -> None:
        self.settings = mongo_settings or settings.mongo
        self._client: MongoClient | None = None

    def __enter__(self) -> "MongoStore":
        self.connect()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def connect(self) -> None:
        if not self.settings.uri:
            raise StoreConnectionError("MongoDB URI is not configured")
        with _translate_errors("connecting"):
            self._client = MongoClient(
                self.settings.uri,
                serverSelectionTimeoutMS=self.settings.server_selection_timeout_ms,
                connectTimeoutMS=self.settings.connect_timeout_ms,
                socketTimeoutMS=self.settings.socket_timeout_ms,
            )
            try:
                self._client.admin.command("ping")
            except Exception:
                self.close()
                raise

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    @property
    def db(self) -> Database:
        if self._client is None:
            raise StoreConnectionError("MongoDB connection is not open")
        return self._client[self.settings.database]

    def find_reports(self, predicate: dict[str, Any], limit: int) -> list[dict[str, Any]]:
        with _translate_errors("finding reports"):
            cursor = self.db[self.settings.reports_collection].find(predicate).limit(limit)
            return list(cursor)

    def aggregate_reports(self, pipeline: Sequence[dict[str, Any]]) -> list[dict[str, Any]]:
        with _translate_errors("aggregating reports"):
            return list(self.db[self.settings.reports_collection].aggregate(list(pipeline)))

    def find_defects(self) -> list[dict[str, Any]]:
        with _translate_errors("loading defect definitions"):
            return list(self.db[self.settings.defects_collection].find({}))

    def collection_names(self) -> list[str]:
        with _translate_errors("listing collections"):
            return self.db.list_collection_names()

    def has_partition(self, partition: ComponentPartition) -> bool:
        return partition.collection in self.collection_names()

    def find_component_records(self, partition: ComponentPartition, limit: int) -> list[dict[str, Any]]:
        with _translate_errors(f"reading component '{partition.name}'"):
            cursor = self.db[partition.collection].find({}).sort("timestamp", DESCENDING).limit(limit)
            return list(cursor)


def discoverable_components(names: Sequence[str], mongo_settings: MongoSettings | None = None) -> list[str]:
    """Collection names that can serve as component partitions."""

    mongo_settings = mongo_settings or settings.mongo
    reserved = {mongo_settings.reports_collection, mongo_settings.defects_collection}
    return [name for name in names if name not in reserved and not name.startswith("system.")]
