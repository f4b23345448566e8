"""
In-memory storage collaborator.

Implements the MigrationStore protocol without a database. Every operation is
recorded in ``calls`` so tests can inspect exactly which steps
the sequencer issued, in order.

Failures can be injected per operation to exercise partial-failure paths.

Example:
    >>> store = InMemoryStore()
    >>> store.set_version_marker("sample", "1.0.0.0")
    >>> store.get_version_marker("sample")
    '1.0.0.0'
    >>> store.calls
    [('set_version_marker', 'sample', '1.0.0.0')]
"""

import copy
from dataclasses import dataclass, field
from typing import Any

from mongo_schema_manager.exceptions import StorageOperationError

from .contract import (
    UNINITIALIZED_VERSION,
    IndexDefinition,
    Pipeline,
    check_index_definitions,
)


@dataclass
class InMemoryStore:
    """
    Recording MigrationStore for tests.

    Attributes:
        markers: collection -> stored version marker
        validators: collection -> current validator (absent when cleared)
        indexes: collection -> index name -> definition
        documents: collection -> inserted documents
        enumerators: last written enumerator mirror
        calls: (operation, collection, argument) tuples in issue order.
            get_version_marker reads are not recorded.
        fail_on: operation name -> message; the operation raises
            StorageOperationError instead of running
    """

    markers: dict[str, str] = field(default_factory=dict)
    validators: dict[str, dict[str, Any]] = field(default_factory=dict)
    indexes: dict[str, dict[str, IndexDefinition]] = field(default_factory=dict)
    documents: dict[str, list[dict[str, Any]]] = field(default_factory=dict)
    enumerators: list[dict[str, Any]] = field(default_factory=list)
    calls: list[tuple[str, str, Any]] = field(default_factory=list)
    fail_on: dict[str, str] = field(default_factory=dict)

    def _record(self, operation: str, collection: str, argument: Any = None) -> None:
        self.calls.append((operation, collection, copy.deepcopy(argument)))
        if operation in self.fail_on:
            raise StorageOperationError(self.fail_on[operation], collection=collection)

    def clear_validation(self, collection: str) -> None:
        self._record("clear_validation", collection)
        self.validators.pop(collection, None)

    def drop_indexes(self, collection: str, names: list[str]) -> None:
        self._record("drop_indexes", collection, names)
        existing = self.indexes.setdefault(collection, {})
        for name in names:
            if name not in existing:
                raise StorageOperationError(
                    f"index not found with name [{name}]", collection=collection
                )
            del existing[name]

    def run_aggregations(self, collection: str, pipelines: list[Pipeline]) -> None:
        self._record("run_aggregations", collection, pipelines)

    def create_indexes(self, collection: str, specs: list[IndexDefinition]) -> None:
        self._record("create_indexes", collection, specs)
        try:
            check_index_definitions(specs)
        except ValueError as e:
            raise StorageOperationError(str(e), collection=collection) from e

        existing = self.indexes.setdefault(collection, {})
        for spec in specs:
            if spec["name"] in existing:
                raise StorageOperationError(
                    f"Index already exists: {spec['name']}",
                    collection=collection,
                )
            existing[spec["name"]] = copy.deepcopy(spec)

    def apply_validation(self, collection: str, schema: dict[str, Any]) -> None:
        self._record("apply_validation", collection, schema)
        self.validators[collection] = copy.deepcopy(schema)

    def bulk_load(self, collection: str, documents: list[dict[str, Any]]) -> None:
        self._record("bulk_load", collection, documents)
        self.documents.setdefault(collection, []).extend(copy.deepcopy(documents))

    def set_version_marker(self, collection: str, version: str) -> None:
        self._record("set_version_marker", collection, version)
        self.markers[collection] = version

    def get_version_marker(self, collection: str) -> str:
        return self.markers.get(collection, UNINITIALIZED_VERSION)

    def write_enumerators(self, documents: list[dict[str, Any]]) -> None:
        self._record("write_enumerators", "", documents)
        self.enumerators = copy.deepcopy(documents)

    def operations(self, collection: str | None = None) -> list[str]:
        """Return recorded operation names, optionally for one collection."""
        return [
            operation
            for operation, name, _ in self.calls
            if collection is None or name == collection
        ]
