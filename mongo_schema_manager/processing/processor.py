"""
Run-level orchestration across every configured collection.

CollectionProcessor is what the CLI drives:

1. Process each collection config file (sorted by file name) with the
   CollectionSequencer, one collection at a time.
2. Write the full enumerator mirror collection for schema/UI consumers.

The first fatal error stops the whole run. Collections and versions applied
before the failure stay applied.
"""

import logging
from dataclasses import dataclass, field

from mongo_schema_manager.config.loader import ConfigRepository
from mongo_schema_manager.exceptions import SchemaManagerError, StorageOperationError
from mongo_schema_manager.models.enumerators import EnumeratorRegistry
from mongo_schema_manager.storage.contract import MigrationStore

from .preprocessor import SchemaPreprocessor
from .sequencer import (
    CollectionSequencer,
    VersionTransition,
    check_duplicate_versions,
    pending_versions,
)

logger = logging.getLogger(__name__)

# Step reported when the enumerator mirror write fails
WRITING_ENUMERATORS = "WRITING_ENUMERATORS"


@dataclass
class RunSummary:
    """Outcome of a successful run."""

    collections: list[str] = field(default_factory=list)
    transitions: list[VersionTransition] = field(default_factory=list)
    enumerator_snapshots: int = 0


@dataclass
class CollectionPlan:
    """Stored marker and pending versions of one collection."""

    collection: str
    current_version: str
    pending: list[str]


class CollectionProcessor:
    """
    Processes all collection configs against one storage collaborator.

    Attributes:
        repository: Config folder access
        store: Storage collaborator
        registry: Enumerator registry shared by every collection
        load_test_data: Global test-data loading flag
    """

    def __init__(
        self,
        repository: ConfigRepository,
        store: MigrationStore,
        registry: EnumeratorRegistry,
        load_test_data: bool = False,
    ):
        self.repository = repository
        self.store = store
        self.registry = registry
        self.preprocessor = SchemaPreprocessor(registry, repository.load_custom_type)
        self.sequencer = CollectionSequencer(
            store, self.preprocessor, repository, load_test_data=load_test_data
        )

    def process_all(self) -> RunSummary:
        """
        Migrate every collection, then refresh the enumerator mirror.

        Raises:
            SchemaManagerError: The first fatal error, after logging which
                collection and file it came from
        """
        summary = RunSummary()
        for path in self.repository.collection_files():
            logger.info(f"Processing {path.name}")
            try:
                config = self.repository.load_collection(path)
                summary.collections.append(config.collection_name)
                summary.transitions.extend(self.sequencer.process(config))
            except SchemaManagerError:
                logger.error(f"Processing {path.name} failed", exc_info=True)
                raise

        documents = self.registry.to_documents()
        try:
            self.store.write_enumerators(documents)
        except StorageOperationError as e:
            e.step = WRITING_ENUMERATORS
            raise
        summary.enumerator_snapshots = len(documents)

        logger.info(
            f"Processed {len(summary.collections)} collections, "
            f"applied {len(summary.transitions)} versions"
        )
        return summary

    def plan(self) -> list[CollectionPlan]:
        """Report stored markers and pending versions without changing anything."""
        plans = []
        for config in self.repository.load_collections():
            check_duplicate_versions(config)
            current = self.sequencer.current_version(config.collection_name)
            plans.append(
                CollectionPlan(
                    collection=config.collection_name,
                    current_version=str(current),
                    pending=[spec.version for spec in pending_versions(config, current)],
                )
            )
        return plans


def validate_all(repository: ConfigRepository, registry: EnumeratorRegistry) -> dict[str, int]:
    """
    Check every collection config offline, without a database.

    Loads each config, rejects duplicate versions, and resolves the schema of
    every declared version plus any named test data file.

    Returns:
        collection name -> number of versions checked

    Raises:
        ConfigurationError / PreprocessingError: First problem found
    """
    preprocessor = SchemaPreprocessor(registry, repository.load_custom_type)
    checked = {}
    for config in repository.load_collections():
        check_duplicate_versions(config)
        for spec in config.versions:
            version = spec.version_number
            preprocessor.expand_document(
                repository.load_schema(config.collection_name, version),
                version.enumerator_version,
            )
            if spec.test_data:
                repository.load_test_data(spec.test_data)
        checked[config.collection_name] = len(config.versions)
        logger.debug(f"Validated {len(config.versions)} versions of '{config.collection_name}'")
    return checked
