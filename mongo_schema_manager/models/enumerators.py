"""
Versioned enumerator snapshots and the registry that serves them.

An enumerator snapshot is one dated, versioned set of named categories, each
an ordered sequence of (value, description) pairs. Snapshots live in a single
ordered list whose positions ARE their versions: snapshot ``i`` must declare
``version == i``.

Every snapshot is a complete, independent definition. A lookup never falls
back to an earlier snapshot when a category is missing.

Example:
    >>> registry = EnumeratorRegistry.load([
    ...     EnumeratorSnapshot.from_document({"name": "Enums", "status": "Deprecated",
    ...                                       "version": 0, "enumerators": {}}),
    ...     EnumeratorSnapshot.from_document({"name": "Enums", "status": "Active",
    ...                                       "version": 1, "enumerators": {
    ...         "defaultStatus": {"Active": "Not Deleted", "Archived": "Soft Delete Indicator"}
    ...     }}),
    ... ])
    >>> registry.values(1, "defaultStatus")
    ['Active', 'Archived']
"""

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from mongo_schema_manager.exceptions import (
    ConfigValidationError,
    EnumeratorNotFoundError,
    SequenceError,
)

logger = logging.getLogger(__name__)

EnumeratorValues = tuple[tuple[str, str], ...]


def _ordered_pairs(category: str, raw: Any) -> EnumeratorValues:
    """
    Normalize one category into ordered (value, description) pairs.

    Accepts a mapping of value -> description (order taken from the parsed
    document) or a list of ``[value, description]`` pairs.
    """
    if isinstance(raw, Mapping):
        items: Iterable[Any] = raw.items()
    elif isinstance(raw, Sequence) and not isinstance(raw, str):
        items = raw
    else:
        raise ConfigValidationError(
            f"Enumerator category '{category}' must be a mapping or a list of pairs"
        )

    pairs = []
    for item in items:
        if (
            not isinstance(item, Sequence)
            or isinstance(item, str)
            or len(item) != 2
        ):
            raise ConfigValidationError(
                f"Enumerator category '{category}' has a malformed entry: {item!r}"
            )
        value, description = item
        if not isinstance(value, str):
            raise ConfigValidationError(
                f"Enumerator category '{category}' has a non-string value: {value!r}"
            )
        pairs.append((value, "" if description is None else str(description)))

    return tuple(pairs)


@dataclass(frozen=True)
class EnumeratorSnapshot:
    """
    One versioned set of enumerator categories.

    Attributes:
        name: Snapshot name (e.g. "Enumerations")
        status: Lifecycle status (e.g. "Active", "Deprecated")
        version: Declared version; must equal the snapshot's list position
        enumerators: category -> ordered (value, description) pairs
    """

    name: str
    status: str
    version: int
    enumerators: Mapping[str, EnumeratorValues] = field(default_factory=dict)

    @classmethod
    def from_document(cls, document: Mapping[str, Any]) -> "EnumeratorSnapshot":
        """
        Build a snapshot from its source document.

        Args:
            document: ``{name, status, version, enumerators}`` as parsed from
                the enumerators file

        Raises:
            ConfigValidationError: If required fields are missing or malformed
        """
        if not isinstance(document, Mapping):
            raise ConfigValidationError(
                f"Enumerator snapshot must be an object, got {type(document).__name__}"
            )

        version = document.get("version")
        if not isinstance(version, int) or isinstance(version, bool):
            raise ConfigValidationError(
                f"Enumerator snapshot '{document.get('name', '?')}' needs an integer version"
            )

        raw_enumerators = document.get("enumerators") or {}
        if not isinstance(raw_enumerators, Mapping):
            raise ConfigValidationError(
                f"Enumerator snapshot version {version}: 'enumerators' must be an object"
            )

        return cls(
            name=str(document.get("name", "")),
            status=str(document.get("status", "")),
            version=version,
            enumerators={
                category: _ordered_pairs(category, values)
                for category, values in raw_enumerators.items()
            },
        )

    def to_document(self) -> dict[str, Any]:
        """Render back to the source document shape (value -> description)."""
        return {
            "name": self.name,
            "status": self.status,
            "version": self.version,
            "enumerators": {
                category: dict(pairs) for category, pairs in self.enumerators.items()
            },
        }


class EnumeratorRegistry:
    """
    Read-only, versioned lookup over a contiguous list of snapshots.

    Construct once per run with load() and share it across collections.
    """

    def __init__(self, snapshots: tuple[EnumeratorSnapshot, ...] = ()):
        self._snapshots = snapshots

    @classmethod
    def load(cls, snapshots: Iterable[EnumeratorSnapshot]) -> "EnumeratorRegistry":
        """
        Validate snapshot contiguity and build a registry.

        Args:
            snapshots: Snapshots in source order

        Returns:
            EnumeratorRegistry over the snapshots

        Raises:
            SequenceError: If any snapshot's version differs from its position
        """
        ordered = tuple(snapshots)
        for position, snapshot in enumerate(ordered):
            if snapshot.version != position:
                raise SequenceError(
                    f"Invalid enumerators file, bad version number sequence: "
                    f"snapshot at position {position} declares version {snapshot.version}"
                )

        logger.debug(f"Loaded {len(ordered)} enumerator snapshots")
        return cls(ordered)

    def __len__(self) -> int:
        return len(self._snapshots)

    @property
    def snapshots(self) -> tuple[EnumeratorSnapshot, ...]:
        return self._snapshots

    def lookup(self, version: int, category: str) -> EnumeratorValues:
        """
        Return the ordered (value, description) pairs of one category.

        Args:
            version: Snapshot version (the 4th version-identifier component)
            category: Enumerator category name

        Raises:
            EnumeratorNotFoundError: If the version is out of range or the
                category is absent in that exact snapshot
        """
        if not 0 <= version < len(self._snapshots):
            raise EnumeratorNotFoundError(
                f"Enumerator version {version} does not exist "
                f"({len(self._snapshots)} snapshots loaded)"
            )

        snapshot = self._snapshots[version]
        if category not in snapshot.enumerators:
            raise EnumeratorNotFoundError(
                f"Enumerator does not exist: '{category}' in version {version}"
            )
        return snapshot.enumerators[category]

    def values(self, version: int, category: str) -> list[str]:
        """Return only the values of a category, in declared order."""
        return [value for value, _ in self.lookup(version, category)]

    def to_documents(self) -> list[dict[str, Any]]:
        """Render all snapshots for the enumerator mirror collection."""
        return [snapshot.to_document() for snapshot in self._snapshots]
