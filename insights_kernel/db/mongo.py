"""
MongoDocumentStore -- ``DocumentStore`` over a pymongo ``Database``.

Translates ``pymongo.errors.PyMongoError`` into ``StoreError`` so nothing
above this module depends on the driver.
"""

from __future__ import annotations

from typing import Any, Mapping

from pymongo.database import Database
from pymongo.errors import PyMongoError

from insights_kernel.db.store import Document, Pipeline
from insights_kernel.exceptions import StoreError
from insights_kernel.logging_config import get_logger

logger = get_logger("db.mongo")


class MongoDocumentStore:
    """DocumentStore backed by a live pymongo database handle."""

    def __init__(self, database: Database):
        self._database = database

    @property
    def name(self) -> str:
        return self._database.name

    def count_documents(
        self,
        collection_name: str,
        filter: Mapping[str, Any] | None = None,
    ) -> int:
        try:
            return self._database[collection_name].count_documents(
                dict(filter or {}),
            )
        except PyMongoError as exc:
            raise StoreError("count", str(exc), collection_name) from exc

    def aggregate(
        self,
        collection_name: str,
        pipeline: Pipeline,
        *,
        allow_disk_use: bool = False,
    ) -> list[Document]:
        logger.debug(
            "aggregate_started",
            extra={
                "collection_name": collection_name,
                "stage_count": len(pipeline),
                "allow_disk_use": allow_disk_use,
            },
        )
        try:
            cursor = self._database[collection_name].aggregate(
                list(pipeline), allowDiskUse=allow_disk_use,
            )
            return list(cursor)
        except PyMongoError as exc:
            raise StoreError("aggregate", str(exc), collection_name) from exc

    def database_stats(self) -> dict[str, Any]:
        try:
            return dict(self._database.command("dbstats"))
        except PyMongoError as exc:
            raise StoreError("dbstats", str(exc)) from exc
