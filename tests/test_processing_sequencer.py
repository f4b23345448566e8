"""
Tests for processing.sequencer - the per-collection version state machine.

Covers:
- The exact step sequence issued for each pending version
- Versions applied in ascending order regardless of declaration order
- Idempotent re-runs (no storage calls when up to date)
- Duplicate versions and preprocessing failures raised before any mutation
- Partial failures leaving the marker on the last fully applied version
- Test data loading (explicit name and the global default)
"""

import copy
import itertools
from datetime import datetime

import pytest
from bson import ObjectId
from pydantic import ValidationError

from mongo_schema_manager.config.schema import CollectionConfig
from mongo_schema_manager.exceptions import (
    ConfigFileNotFoundError,
    DuplicateVersionError,
    StorageOperationError,
    TypeNotFoundError,
)
from mongo_schema_manager.models.version_number import VersionNumber
from mongo_schema_manager.processing.preprocessor import SchemaPreprocessor
from mongo_schema_manager.processing.sequencer import (
    CollectionSequencer,
    SequencerState,
    pending_versions,
)
from mongo_schema_manager.storage.memory import InMemoryStore

from conftest import SAMPLE_COLLECTION, SCHEMA_1_1_0, TEST_DATA, write_json

FIRST_VERSION_STEPS = [
    "clear_validation",
    "create_indexes",
    "apply_validation",
    "bulk_load",
    "set_version_marker",
]
SECOND_VERSION_STEPS = [
    "clear_validation",
    "drop_indexes",
    "run_aggregations",
    "create_indexes",
    "apply_validation",
    "set_version_marker",
]

# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def sample_config():
    return CollectionConfig.model_validate(copy.deepcopy(SAMPLE_COLLECTION))


@pytest.fixture
def make_sequencer(repository, registry):
    """Build a sequencer over the sample config folder."""

    def _make(store, load_test_data=False):
        preprocessor = SchemaPreprocessor(registry, repository.load_custom_type)
        return CollectionSequencer(store, preprocessor, repository, load_test_data=load_test_data)

    return _make


# ============================================================================
# Happy path
# ============================================================================


class TestProcess:
    """Test CollectionSequencer.process() on a fresh collection."""

    def test_applies_all_versions_in_step_order(self, make_sequencer, store, sample_config):
        """Each version issues the seven steps in order, skipping empty ones."""
        transitions = make_sequencer(store).process(sample_config)

        assert store.operations("sample") == FIRST_VERSION_STEPS + SECOND_VERSION_STEPS
        assert store.markers["sample"] == "1.1.0.1"
        assert [(t.from_version, t.to_version) for t in transitions] == [
            ("0.0.0.0", "1.0.0.0"),
            ("1.0.0.0", "1.1.0.1"),
        ]

    def test_transition_records_executed_states(self, make_sequencer, store, sample_config):
        transitions = make_sequencer(store).process(sample_config)

        assert transitions[0].steps == [
            "REMOVING_VALIDATION",
            "CREATING_INDEXES",
            "APPLYING_SCHEMA",
            "LOADING_TEST_DATA",
            "UPDATING_VERSION_MARKER",
        ]
        assert transitions[1].steps == [
            "REMOVING_VALIDATION",
            "DROPPING_INDEXES",
            "RUNNING_MIGRATIONS",
            "CREATING_INDEXES",
            "APPLYING_SCHEMA",
            "UPDATING_VERSION_MARKER",
        ]

    def test_each_version_uses_its_enumerator_snapshot(
        self, make_sequencer, store, sample_config
    ):
        """1.0.0.0 expands against snapshot 0, 1.1.0.1 against snapshot 1."""
        make_sequencer(store).process(sample_config)

        schemas = [arg for op, _, arg in store.calls if op == "apply_validation"]
        assert schemas[0]["properties"]["status"]["enum"] == ["Active"]
        assert schemas[1]["properties"]["status"]["enum"] == ["Active", "Archived"]

    def test_final_schema_is_fully_expanded(self, make_sequencer, store, sample_config):
        make_sequencer(store).process(sample_config)

        properties = store.validators["sample"]["properties"]
        assert properties["_id"] == {"description": "The unique identifier", "bsonType": "objectId"}
        assert properties["name"] == {
            "description": "Sample name",
            "bsonType": "string",
            "pattern": "^[^\\s]{1,40}$",
        }
        assert properties["history"] == {
            "description": "Past statuses",
            "bsonType": "array",
            "items": {"bsonType": "string", "enum": ["Active", "Archived"]},
        }
        assert properties["lastSaved"] == {
            "description": "Creation and update tracking",
            "bsonType": "object",
            "properties": {
                "fromUserId": {"description": "Who", "bsonType": "objectId"},
                "atTime": {"description": "When", "bsonType": "date"},
            },
        }
        assert store.validators["sample"]["additionalProperties"] is False

    def test_indexes_and_aggregations_passed_through(self, make_sequencer, store, sample_config):
        make_sequencer(store).process(sample_config)

        assert ("drop_indexes", "sample", ["nameIdx"]) in store.calls
        assert set(store.indexes["sample"]) == {"statusIdx"}
        aggregations = [arg for op, _, arg in store.calls if op == "run_aggregations"]
        assert aggregations == [SAMPLE_COLLECTION["versions"][0]["aggregations"]]

    def test_first_index_created_with_options(self, make_sequencer, store, sample_config):
        make_sequencer(store).process(sample_config)

        created = [arg for op, _, arg in store.calls if op == "create_indexes"]
        assert created[0] == [{"name": "nameIdx", "key": {"name": 1}, "options": {"unique": True}}]

    def test_test_data_is_converted_to_native_values(self, make_sequencer, store, sample_config):
        make_sequencer(store).process(sample_config)

        documents = store.documents["sample"]
        assert len(documents) == len(TEST_DATA)
        assert documents[0]["_id"] == ObjectId("a00000000000000000000001")
        assert isinstance(documents[0]["created"], datetime)
        assert (documents[0]["created"].year, documents[0]["created"].month) == (2024, 1)

    def test_state_returns_to_idle(self, make_sequencer, store, sample_config):
        sequencer = make_sequencer(store)
        sequencer.process(sample_config)
        assert sequencer.state is SequencerState.IDLE


class TestOrdering:
    """Versions are applied by numeric order, not declaration order."""

    def test_every_declaration_order_gives_same_calls(
        self, make_sequencer, repository, sample_config
    ):
        extra = {"version": "1.0.1.1"}
        write_json(
            repository.config_folder / "schemas" / "sample-1.0.1.json",
            {"bsonType": "object", "properties": {"status": {"msmEnums": "defaultStatus"}}},
        )
        versions = SAMPLE_COLLECTION["versions"] + [extra]

        observed = []
        for permutation in itertools.permutations(versions):
            store = InMemoryStore()
            config = CollectionConfig.model_validate(
                {"collectionName": "sample", "versions": copy.deepcopy(list(permutation))}
            )
            make_sequencer(store).process(config)
            observed.append(store.calls)
            assert store.markers["sample"] == "1.1.0.1"

        assert all(calls == observed[0] for calls in observed)
        markers = [arg for op, _, arg in observed[0] if op == "set_version_marker"]
        assert markers == ["1.0.0.0", "1.0.1.1", "1.1.0.1"]

    def test_pending_versions_sorted_and_filtered(self, sample_config):
        pending = pending_versions(sample_config, VersionNumber.ZERO)
        assert [spec.version for spec in pending] == ["1.0.0.0", "1.1.0.1"]
        assert pending_versions(sample_config, VersionNumber.parse("1.1.0.1")) == []

    def test_pending_versions_compare_all_four_components(self, sample_config):
        pending = pending_versions(sample_config, VersionNumber.parse("1.1.0.0"))
        assert [spec.version for spec in pending] == ["1.1.0.1"]


class TestIdempotence:
    """Re-running an unchanged config does nothing."""

    def test_second_run_issues_no_calls(self, make_sequencer, store, sample_config):
        sequencer = make_sequencer(store)
        sequencer.process(sample_config)
        calls_after_first_run = list(store.calls)

        assert sequencer.process(sample_config) == []
        assert store.calls == calls_after_first_run

    def test_resumes_from_stored_marker(self, make_sequencer, store, sample_config):
        store.markers["sample"] = "1.0.0.0"
        store.indexes["sample"] = {"nameIdx": {"name": "nameIdx", "key": {"name": 1}}}

        transitions = make_sequencer(store).process(sample_config)

        assert [t.to_version for t in transitions] == ["1.1.0.1"]
        assert transitions[0].from_version == "1.0.0.0"
        assert store.operations("sample") == SECOND_VERSION_STEPS

    def test_marker_newer_than_config_is_up_to_date(self, make_sequencer, store, sample_config):
        store.markers["sample"] = "9.0.0.0"
        assert make_sequencer(store).process(sample_config) == []
        assert store.calls == []


# ============================================================================
# Failures before mutation
# ============================================================================


class TestFailFast:
    """Problems detected before a version's first mutating step."""

    def test_duplicate_versions_raise_before_any_call(self, make_sequencer, store):
        config = CollectionConfig.model_validate(
            {
                "collectionName": "sample",
                "versions": [{"version": "1.0.0.0"}, {"version": "1.0.0.0"}],
            }
        )
        with pytest.raises(DuplicateVersionError) as exc_info:
            make_sequencer(store).process(config)

        assert exc_info.value.collection == "sample"
        assert exc_info.value.version == "1.0.0.0"
        assert store.calls == []

    def test_leading_zero_alias_rejected_at_load(self):
        with pytest.raises(ValidationError, match="Invalid version string"):
            CollectionConfig.model_validate(
                {
                    "collectionName": "sample",
                    "versions": [{"version": "1.0.0.0"}, {"version": "01.0.0.0"}],
                }
            )

    def test_missing_schema_file(self, make_sequencer, store, sample_config, repository):
        (repository.config_folder / "schemas" / "sample-1.0.0.json").unlink()

        with pytest.raises(ConfigFileNotFoundError):
            make_sequencer(store).process(sample_config)
        assert store.calls == []

    def test_unresolvable_type_in_later_version(
        self, make_sequencer, store, sample_config, repository
    ):
        """Earlier versions stay applied; the broken one issues no steps."""
        broken = copy.deepcopy(SCHEMA_1_1_0)
        broken["properties"]["name"] = {"msmType": "doesNotExist"}
        write_json(repository.config_folder / "schemas" / "sample-1.1.0.json", broken)

        with pytest.raises(TypeNotFoundError):
            make_sequencer(store).process(sample_config)

        assert store.operations("sample") == FIRST_VERSION_STEPS
        assert store.markers["sample"] == "1.0.0.0"

    def test_missing_named_test_data(self, make_sequencer, store, sample_config, repository):
        (repository.config_folder / "testData" / "sample-1.0.0.json").unlink()

        with pytest.raises(ConfigFileNotFoundError):
            make_sequencer(store).process(sample_config)
        assert store.calls == []


# ============================================================================
# Partial failures
# ============================================================================


class TestPartialFailure:
    """Storage failures abort the run without advancing the marker."""

    def test_failure_in_first_version(self, make_sequencer, sample_config):
        store = InMemoryStore(fail_on={"create_indexes": "duplicate key"})
        sequencer = make_sequencer(store)

        with pytest.raises(StorageOperationError) as exc_info:
            sequencer.process(sample_config)

        assert exc_info.value.collection == "sample"
        assert exc_info.value.version == "1.0.0.0"
        assert exc_info.value.step == "CREATING_INDEXES"
        assert store.operations("sample") == ["clear_validation", "create_indexes"]
        assert "sample" not in store.markers
        assert sequencer.state is SequencerState.IDLE

    def test_failure_in_later_version_keeps_earlier_marker(self, make_sequencer, sample_config):
        store = InMemoryStore(fail_on={"run_aggregations": "pipeline failed"})

        with pytest.raises(StorageOperationError) as exc_info:
            make_sequencer(store).process(sample_config)

        assert exc_info.value.version == "1.1.0.1"
        assert exc_info.value.step == "RUNNING_MIGRATIONS"
        assert store.markers["sample"] == "1.0.0.0"
        # Completed steps are not rolled back
        assert "nameIdx" not in store.indexes["sample"]
        assert "sample" not in store.validators

    def test_rerun_after_fix_applies_failed_version(self, make_sequencer, sample_config):
        store = InMemoryStore(fail_on={"run_aggregations": "pipeline failed"})
        with pytest.raises(StorageOperationError):
            make_sequencer(store).process(sample_config)

        store.fail_on.clear()
        store.indexes["sample"]["nameIdx"] = {"name": "nameIdx", "key": {"name": 1}}
        transitions = make_sequencer(store).process(sample_config)

        assert [t.to_version for t in transitions] == ["1.1.0.1"]
        assert store.markers["sample"] == "1.1.0.1"


# ============================================================================
# Test data
# ============================================================================


class TestTestDataLoading:
    """Explicit testData entries and the global default name."""

    def test_default_name_loaded_when_flag_set(self, make_sequencer, store, sample_config, repository):
        write_json(
            repository.config_folder / "testData" / "sample-1.1.0.json",
            [{"_id": {"$oid": "a00000000000000000000003"}, "name": "Baz"}],
        )

        make_sequencer(store, load_test_data=True).process(sample_config)

        loads = [arg for op, _, arg in store.calls if op == "bulk_load"]
        assert len(loads) == 2
        assert loads[1][0]["_id"] == ObjectId("a00000000000000000000003")

    def test_default_name_ignored_without_flag(self, make_sequencer, store, sample_config, repository):
        write_json(repository.config_folder / "testData" / "sample-1.1.0.json", [{"name": "Baz"}])

        make_sequencer(store).process(sample_config)

        assert store.operations("sample").count("bulk_load") == 1

    def test_missing_default_file_is_skipped(self, make_sequencer, store, sample_config):
        make_sequencer(store, load_test_data=True).process(sample_config)

        assert store.operations("sample") == FIRST_VERSION_STEPS + SECOND_VERSION_STEPS
