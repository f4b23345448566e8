"""
Migration Step Contract between the sequencer and a storage collaborator.

The sequencer never talks to a database directly. It issues these operations,
each scoped to a named collection, and a storage collaborator carries them
out. Two collaborators ship with the package:

- storage.mongo.MongoStore: pymongo-backed, used by the CLI
- storage.memory.InMemoryStore: records calls, used in tests

Every failure reported by a collaborator must surface as
StorageOperationError.
"""

from typing import Any, Protocol, TypedDict

# Marker value of a collection that has never been migrated
UNINITIALIZED_VERSION = "0.0.0.0"

# Filter and name of the singleton version marker document
VERSION_MARKER_NAME = "VERSION"


class IndexDefinition(TypedDict, total=False):
    """Index to create: ``name`` and ``key`` are required."""

    name: str
    key: dict[str, Any]
    options: dict[str, Any]


Pipeline = list[dict[str, Any]]


class MigrationStore(Protocol):
    """
    Protocol for storage collaborators.

    This is a Protocol (PEP 544), so collaborators don't need to explicitly
    inherit from it; matching method signatures are enough.
    """

    def clear_validation(self, collection: str) -> None:
        """Remove any validator from the collection."""
        ...

    def drop_indexes(self, collection: str, names: list[str]) -> None:
        """Drop the named indexes."""
        ...

    def run_aggregations(self, collection: str, pipelines: list[Pipeline]) -> None:
        """
        Run pipelines strictly in listed order.

        The first failing pipeline aborts the rest.
        """
        ...

    def create_indexes(self, collection: str, specs: list[IndexDefinition]) -> None:
        """Create indexes; names are unique within one call."""
        ...

    def apply_validation(self, collection: str, schema: dict[str, Any]) -> None:
        """Install ``schema`` as the collection's $jsonSchema validator."""
        ...

    def bulk_load(self, collection: str, documents: list[dict[str, Any]]) -> None:
        """Insert documents whose extended-JSON markers are already native values."""
        ...

    def set_version_marker(self, collection: str, version: str) -> None:
        """Upsert the singleton ``{name: "VERSION", version}`` document."""
        ...

    def get_version_marker(self, collection: str) -> str:
        """Return the stored version, or UNINITIALIZED_VERSION when absent."""
        ...

    def write_enumerators(self, documents: list[dict[str, Any]]) -> None:
        """Replace the whole enumerator mirror collection with ``documents``."""
        ...


def check_index_definitions(specs: list[IndexDefinition]) -> None:
    """
    Validate index definitions before any are issued.

    Raises:
        ValueError: If a spec has no name or key, or a name repeats
    """
    seen: set[str] = set()
    for position, spec in enumerate(specs):
        name = spec.get("name")
        if not name:
            raise ValueError(f"Index definition {position} has no name")
        if not spec.get("key"):
            raise ValueError(f"Index '{name}' has no key")
        if name in seen:
            raise ValueError(f"Duplicate index name '{name}'")
        seen.add(name)
