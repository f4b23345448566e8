"""
Collection version sequencer.

Drives one collection through every configured version newer than its stored
version marker. Each pending version runs the same seven steps, in order:

    REMOVING_VALIDATION -> DROPPING_INDEXES -> RUNNING_MIGRATIONS ->
    CREATING_INDEXES -> APPLYING_SCHEMA -> LOADING_TEST_DATA ->
    UPDATING_VERSION_MARKER

then starts over for the next version. The sequencer is IDLE once no
configured version is newer than the marker, so re-running an unchanged
config issues no storage operations at all.

Failure semantics:
- Duplicate versions, malformed files and directive expansion errors are
  raised before the affected version's first mutating step.
- A storage failure aborts the remaining versions. Steps already completed
  within the in-flight version are not rolled back: the collection can be
  left with indexes dropped and no new validator. The marker still names the
  last fully applied version, so a fixed config re-runs the failed version.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from mongo_schema_manager.config.loader import ConfigRepository
from mongo_schema_manager.config.schema import CollectionConfig, VersionConfig
from mongo_schema_manager.exceptions import (
    ConfigurationError,
    DuplicateVersionError,
    PreprocessingError,
    StorageOperationError,
)
from mongo_schema_manager.models.version_number import VersionNumber
from mongo_schema_manager.storage.contract import MigrationStore
from mongo_schema_manager.utils.logging import log_with_context

from .preprocessor import SchemaPreprocessor

logger = logging.getLogger(__name__)


class SequencerState(str, Enum):
    """Per-version step of the sequencer; IDLE between collections."""

    IDLE = "IDLE"
    REMOVING_VALIDATION = "REMOVING_VALIDATION"
    DROPPING_INDEXES = "DROPPING_INDEXES"
    RUNNING_MIGRATIONS = "RUNNING_MIGRATIONS"
    CREATING_INDEXES = "CREATING_INDEXES"
    APPLYING_SCHEMA = "APPLYING_SCHEMA"
    LOADING_TEST_DATA = "LOADING_TEST_DATA"
    UPDATING_VERSION_MARKER = "UPDATING_VERSION_MARKER"


@dataclass
class VersionTransition:
    """
    Record of one fully applied version.

    Attributes:
        collection: Collection name
        from_version: Marker before the version was applied
        to_version: Marker after the version was applied
        steps: States executed, in order (skipped optional steps omitted)
    """

    collection: str
    from_version: str
    to_version: str
    steps: list[str] = field(default_factory=list)


@dataclass
class _PreparedVersion:
    """Everything a version needs, resolved before any mutating step."""

    spec: VersionConfig
    version: VersionNumber
    schema: Any
    test_documents: list[dict[str, Any]] | None


def check_duplicate_versions(config: CollectionConfig) -> None:
    """
    Raise DuplicateVersionError if two entries share a version number.

    Versions are compared as parsed VersionNumber values.
    """
    seen: set[VersionNumber] = set()
    for spec in config.versions:
        version = spec.version_number
        if version in seen:
            raise DuplicateVersionError(
                f"Collection '{config.collection_name}' declares version {version} more than once",
                collection=config.collection_name,
                version=str(version),
            )
        seen.add(version)


def pending_versions(config: CollectionConfig, current: VersionNumber) -> list[VersionConfig]:
    """Return versions newer than ``current`` in ascending order."""
    ordered = sorted(config.versions, key=lambda spec: spec.version_number)
    return [spec for spec in ordered if spec.version_number > current]


class CollectionSequencer:
    """
    Applies pending versions of one collection at a time.

    Attributes:
        store: Storage collaborator receiving the migration steps
        preprocessor: Expands msm directives in each version's schema
        repository: Source of raw schemas and test data
        load_test_data: Load ``<collection>-<M.m.p>`` test data for versions
            without an explicit testData entry, when that file exists
        state: Current step, IDLE when not applying a version
    """

    def __init__(
        self,
        store: MigrationStore,
        preprocessor: SchemaPreprocessor,
        repository: ConfigRepository,
        load_test_data: bool = False,
    ):
        self.store = store
        self.preprocessor = preprocessor
        self.repository = repository
        self.load_test_data = load_test_data
        self.state = SequencerState.IDLE

    def current_version(self, collection: str) -> VersionNumber:
        """Read and parse the stored version marker."""
        return VersionNumber.parse(self.store.get_version_marker(collection))

    def process(self, config: CollectionConfig) -> list[VersionTransition]:
        """
        Apply every pending version of a collection, oldest first.

        Args:
            config: Validated collection configuration

        Returns:
            One VersionTransition per applied version (empty when up to date)

        Raises:
            DuplicateVersionError: Before any step, on duplicate versions
            ConfigurationError: Missing or malformed schema / test data file
            PreprocessingError: Directive expansion failed
            StorageOperationError: A step failed; carries collection, version
                and step
        """
        name = config.collection_name
        check_duplicate_versions(config)

        current = self.current_version(name)
        pending = pending_versions(config, current)
        if not pending:
            log_with_context(
                logger,
                logging.INFO,
                f"Collection '{name}' is up to date",
                context={"version": str(current)},
                collection=name,
            )
            return []

        transitions = []
        for spec in pending:
            prepared = self._prepare(name, spec)
            transitions.append(self._apply(name, current, prepared))
            current = prepared.version

        return transitions

    def _prepare(self, collection: str, spec: VersionConfig) -> _PreparedVersion:
        version = spec.version_number
        try:
            return self._resolve(collection, spec, version)
        except (ConfigurationError, PreprocessingError) as e:
            log_with_context(
                logger,
                logging.ERROR,
                f"Cannot prepare version {version} of '{collection}': {e}",
                context={"version": str(version), "error_type": type(e).__name__},
                collection=collection,
            )
            raise

    def _resolve(
        self, collection: str, spec: VersionConfig, version: VersionNumber
    ) -> _PreparedVersion:
        raw_schema = self.repository.load_schema(collection, version)
        schema = self.preprocessor.expand_document(raw_schema, version.enumerator_version)

        test_documents = None
        if spec.test_data:
            test_documents = self.repository.load_test_data(spec.test_data)
        elif self.load_test_data:
            default_name = f"{collection}-{version.short_form()}"
            if self.repository.has_test_data(default_name):
                test_documents = self.repository.load_test_data(default_name)
            else:
                logger.debug(f"No test data '{default_name}' for '{collection}'")

        return _PreparedVersion(spec, version, schema, test_documents)

    def _apply(
        self, collection: str, current: VersionNumber, prepared: _PreparedVersion
    ) -> VersionTransition:
        spec = prepared.spec
        target = str(prepared.version)
        transition = VersionTransition(collection, str(current), target)
        log_with_context(
            logger,
            logging.INFO,
            f"Applying version {target} to '{collection}'",
            context={"from": str(current), "to": target},
            collection=collection,
        )

        def step(state: SequencerState, action: Callable[[], None]) -> None:
            self.state = state
            logger.debug(f"{collection} {target}: {state.value}")
            try:
                action()
            except StorageOperationError as e:
                e.collection = collection
                e.version = target
                e.step = state.value
                raise
            transition.steps.append(state.value)

        try:
            step(
                SequencerState.REMOVING_VALIDATION,
                lambda: self.store.clear_validation(collection),
            )
            if spec.drop_indexes:
                step(
                    SequencerState.DROPPING_INDEXES,
                    lambda: self.store.drop_indexes(collection, list(spec.drop_indexes)),
                )
            if spec.aggregations:
                step(
                    SequencerState.RUNNING_MIGRATIONS,
                    lambda: self.store.run_aggregations(collection, spec.aggregations),
                )
            if spec.add_indexes:
                step(
                    SequencerState.CREATING_INDEXES,
                    lambda: self.store.create_indexes(
                        collection, [index.to_definition() for index in spec.add_indexes]
                    ),
                )
            step(
                SequencerState.APPLYING_SCHEMA,
                lambda: self.store.apply_validation(collection, prepared.schema),
            )
            if prepared.test_documents is not None:
                step(
                    SequencerState.LOADING_TEST_DATA,
                    lambda: self.store.bulk_load(collection, prepared.test_documents),
                )
            step(
                SequencerState.UPDATING_VERSION_MARKER,
                lambda: self.store.set_version_marker(collection, target),
            )
        finally:
            self.state = SequencerState.IDLE

        log_with_context(
            logger,
            logging.INFO,
            f"Collection '{collection}' migrated {current} -> {target}",
            context={"steps": transition.steps},
            collection=collection,
        )
        return transition
