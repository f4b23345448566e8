"""
pymongo-backed storage collaborator.

Implements the MigrationStore protocol against a live MongoDB database:

- validation via ``collMod`` with a ``$jsonSchema`` validator
- indexes via ``IndexModel`` / ``create_indexes`` / ``drop_index``
- aggregations executed one pipeline at a time, in order
- the singleton ``{name: "VERSION"}`` marker upserted in the target collection
- the enumerator mirror fully overwritten on every run

Every pymongo failure is wrapped in StorageOperationError. Nothing is retried;
timeouts come from the MongoClient settings.

Example:
    >>> with MongoStore("mongodb://localhost:27017", "test") as store:
    ...     store.get_version_marker("sample")
    '0.0.0.0'
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from pymongo import IndexModel, MongoClient
from pymongo.database import Database
from pymongo.errors import PyMongoError

from mongo_schema_manager.exceptions import (
    StorageConnectionError,
    StorageOperationError,
)

from .contract import (
    UNINITIALIZED_VERSION,
    VERSION_MARKER_NAME,
    IndexDefinition,
    Pipeline,
    check_index_definitions,
)

logger = logging.getLogger(__name__)

DEFAULT_ENUMERATORS_COLLECTION = "msmEnumerators"


@contextmanager
def _wrap_errors(
    collection: str, action: str, *extra: type[Exception]
) -> Iterator[None]:
    """Translate pymongo failures (and any ``extra`` types) into StorageOperationError."""
    try:
        yield
    except (PyMongoError, *extra) as e:
        raise StorageOperationError(
            f"{action} failed on '{collection}': {e}", collection=collection
        ) from e


class MongoStore:
    """
    MigrationStore implementation using pymongo.

    Attributes:
        connection_string: MongoDB URI (may contain credentials, never logged)
        db_name: Database holding the managed collections
        enumerators_collection: Name of the enumerator mirror collection
        server_selection_timeout_ms: Client server selection timeout
    """

    def __init__(
        self,
        connection_string: str,
        db_name: str,
        enumerators_collection: str = DEFAULT_ENUMERATORS_COLLECTION,
        server_selection_timeout_ms: int = 30000,
        client: MongoClient | None = None,
    ):
        self.connection_string = connection_string
        self.db_name = db_name
        self.enumerators_collection = enumerators_collection
        self.server_selection_timeout_ms = server_selection_timeout_ms
        self._client = client
        self._db: Database | None = client[db_name] if client is not None else None

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    def connect(self) -> None:
        """
        Open the client and verify the server is reachable.

        Raises:
            StorageConnectionError: If the server cannot be reached
        """
        if self._client is None:
            self._client = MongoClient(
                self.connection_string,
                serverSelectionTimeoutMS=self.server_selection_timeout_ms,
            )
        try:
            self._client.admin.command("ping")
        except PyMongoError as e:
            self.disconnect()
            raise StorageConnectionError(f"Cannot connect to MongoDB: {e}") from e

        self._db = self._client[self.db_name]
        logger.info(f"Connected to database '{self.db_name}'")

    def disconnect(self) -> None:
        """Close the client. Safe to call more than once."""
        if self._client is not None:
            self._client.close()
        self._client = None
        self._db = None

    def __enter__(self) -> "MongoStore":
        self.connect()
        return self

    def __exit__(self, *args) -> None:
        self.disconnect()

    @property
    def db(self) -> Database:
        if self._db is None:
            raise StorageConnectionError("Database not connected")
        return self._db

    def _ensure_collection(self, collection: str) -> None:
        if collection not in self.db.list_collection_names(filter={"name": collection}):
            self.db.create_collection(collection)

    # ------------------------------------------------------------------
    # Migration Step Contract
    # ------------------------------------------------------------------

    def clear_validation(self, collection: str) -> None:
        with _wrap_errors(collection, "Clear validation"):
            self._ensure_collection(collection)
            self.db.command("collMod", collection, validator={}, validationLevel="off")
        logger.debug(f"Cleared validation on '{collection}'")

    def drop_indexes(self, collection: str, names: list[str]) -> None:
        with _wrap_errors(collection, "Drop indexes"):
            for name in names:
                self.db[collection].drop_index(name)
                logger.info(f"Dropped index '{name}' from '{collection}'")

    def run_aggregations(self, collection: str, pipelines: list[Pipeline]) -> None:
        for position, pipeline in enumerate(pipelines):
            with _wrap_errors(collection, f"Aggregation {position}"):
                result = list(self.db[collection].aggregate(pipeline))
            logger.info(
                f"Executed aggregation {position} on '{collection}' "
                f"({len(pipeline)} stages, {len(result)} result documents)"
            )

    def create_indexes(self, collection: str, specs: list[IndexDefinition]) -> None:
        try:
            check_index_definitions(specs)
        except ValueError as e:
            raise StorageOperationError(str(e), collection=collection) from e

        # IndexModel raises TypeError/ValueError for malformed keys or options
        with _wrap_errors(collection, "Create indexes", TypeError, ValueError):
            models = [
                IndexModel(
                    list(spec["key"].items()), name=spec["name"], **(spec.get("options") or {})
                )
                for spec in specs
            ]
            created = self.db[collection].create_indexes(models)
        logger.info(f"Created indexes {created} on '{collection}'")

    def apply_validation(self, collection: str, schema: dict[str, Any]) -> None:
        with _wrap_errors(collection, "Apply validation"):
            self._ensure_collection(collection)
            self.db.command(
                "collMod",
                collection,
                validator={"$jsonSchema": schema},
                validationLevel="strict",
                validationAction="error",
            )
        logger.info(f"Applied schema validation to '{collection}'")

    def bulk_load(self, collection: str, documents: list[dict[str, Any]]) -> None:
        if not documents:
            return
        with _wrap_errors(collection, "Bulk load"):
            result = self.db[collection].insert_many(documents, ordered=True)
        logger.info(f"Loaded {len(result.inserted_ids)} documents into '{collection}'")

    def set_version_marker(self, collection: str, version: str) -> None:
        marker = {"name": VERSION_MARKER_NAME, "version": version}
        # Marker writes skip the $jsonSchema validator installed by apply_validation
        with _wrap_errors(collection, "Set version"):
            self.db[collection].update_one(
                {"name": VERSION_MARKER_NAME},
                {"$set": marker},
                upsert=True,
                bypass_document_validation=True,
            )
        logger.info(f"Version set or updated in collection '{collection}' to {version}")

    def get_version_marker(self, collection: str) -> str:
        with _wrap_errors(collection, "Get version"):
            marker = self.db[collection].find_one({"name": VERSION_MARKER_NAME})
        version = marker["version"] if marker else UNINITIALIZED_VERSION
        logger.debug(f"Version marker of '{collection}': {version}")
        return version

    def write_enumerators(self, documents: list[dict[str, Any]]) -> None:
        target = self.enumerators_collection
        with _wrap_errors(target, "Write enumerators"):
            self.db[target].delete_many({})
            if documents:
                self.db[target].insert_many(documents)
        logger.info(f"Wrote {len(documents)} enumerator snapshots to '{target}'")

    # ------------------------------------------------------------------
    # Inspection helpers
    # ------------------------------------------------------------------

    def get_validation(self, collection: str) -> dict[str, Any]:
        """Return the collection's current validator ({} when none)."""
        with _wrap_errors(collection, "Read validation"):
            infos = list(self.db.list_collections(filter={"name": collection}))
        if not infos:
            return {}
        return infos[0].get("options", {}).get("validator", {})

    def get_indexes(self, collection: str) -> list[dict[str, Any]]:
        """Return index descriptions for the collection."""
        with _wrap_errors(collection, "Read indexes"):
            return list(self.db[collection].list_indexes())
