"""
Shared fixtures: a complete config folder on disk.

The folder mirrors a real deployment:

    config/
        collections/sample.json          versions declared newest first
        schemas/sample-1.0.0.json
        schemas/sample-1.1.0.json
        customTypes/word.json, breadcrumb.json, identifier.json
        enumerators/enumerators.json     snapshots 0, 1, 2
        testData/sample-1.0.0.json       extended JSON documents
    msmTypes/
        identifier.json                  built-in, shadows customTypes/
        dateTime.json
"""

import json
from pathlib import Path

import pytest

from mongo_schema_manager.config.loader import ConfigRepository
from mongo_schema_manager.models.enumerators import EnumeratorRegistry, EnumeratorSnapshot

ENUMERATORS = [
    {
        "name": "Enumerations",
        "status": "Deprecated",
        "version": 0,
        "enumerators": {"defaultStatus": {"Active": "Not Deleted"}},
    },
    {
        "name": "Enumerations",
        "status": "Active",
        "version": 1,
        "enumerators": {
            "defaultStatus": {"Active": "Not Deleted", "Archived": "Soft Delete Indicator"},
        },
    },
    {
        "name": "Enumerations",
        "status": "Active",
        "version": 2,
        "enumerators": {
            "defaultStatus": {
                "Active": "Not Deleted",
                "Archived": "Soft Delete Indicator",
                "Draft": "Not yet published",
            },
        },
    },
]

CUSTOM_TYPES = {
    "word": {
        "description": "A String of text, 1 to 40 characters",
        "bsonType": "string",
        "pattern": "^[^\\s]{1,40}$",
    },
    "identifier": {"description": "project identifier", "bsonType": "string"},
    "breadcrumb": {
        "description": "Creation and update tracking",
        "bsonType": "object",
        "properties": {
            "fromUserId": {"description": "Who", "msmType": "identifier"},
            "atTime": {"description": "When", "msmType": "dateTime"},
        },
    },
}

MSM_TYPES = {
    "identifier": {"description": "A unique identifier", "bsonType": "objectId"},
    "dateTime": {"description": "An ISO Date", "bsonType": "date"},
}

SCHEMA_1_0_0 = {
    "title": "Sample",
    "bsonType": "object",
    "properties": {
        "_id": {"description": "The unique identifier", "msmType": "identifier"},
        "name": {"description": "Sample name", "msmType": "word"},
        "status": {"description": "Record status", "msmEnums": "defaultStatus"},
    },
    "required": ["_id", "name"],
    "additionalProperties": False,
}

SCHEMA_1_1_0 = {
    "title": "Sample",
    "bsonType": "object",
    "properties": {
        "_id": {"description": "The unique identifier", "msmType": "identifier"},
        "name": {"description": "Sample name", "msmType": "word"},
        "status": {"description": "Record status", "msmEnums": "defaultStatus"},
        "history": {"description": "Past statuses", "msmEnumList": "defaultStatus"},
        "lastSaved": {"msmType": "breadcrumb"},
    },
    "required": ["_id", "name", "status"],
    "additionalProperties": False,
}

SAMPLE_COLLECTION = {
    "collectionName": "sample",
    "versions": [
        {
            "version": "1.1.0.1",
            "dropIndexes": ["nameIdx"],
            "aggregations": [
                [{"$addFields": {"history": []}}, {"$out": "sample"}],
                [{"$match": {"status": "Draft"}}],
            ],
            "addIndexes": [
                {"name": "statusIdx", "key": {"status": 1}},
            ],
        },
        {
            "version": "1.0.0.0",
            "addIndexes": [
                {"name": "nameIdx", "key": {"name": 1}, "options": {"unique": True}},
            ],
            "testData": "sample-1.0.0",
        },
    ],
}

TEST_DATA = [
    {
        "_id": {"$oid": "a00000000000000000000001"},
        "name": "Foo",
        "status": "Active",
        "created": {"$date": "2024-01-01T00:00:00Z"},
    },
    {"_id": {"$oid": "a00000000000000000000002"}, "name": "Bar", "status": "Archived"},
]


def write_json(path: Path, data) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")
    return path


@pytest.fixture
def config_folder(tmp_path):
    """Create the sample config folder and return its path."""
    root = tmp_path / "config"
    write_json(root / "collections" / "sample.json", SAMPLE_COLLECTION)
    write_json(root / "schemas" / "sample-1.0.0.json", SCHEMA_1_0_0)
    write_json(root / "schemas" / "sample-1.1.0.json", SCHEMA_1_1_0)
    write_json(root / "enumerators" / "enumerators.json", ENUMERATORS)
    write_json(root / "testData" / "sample-1.0.0.json", TEST_DATA)
    for name, fragment in CUSTOM_TYPES.items():
        write_json(root / "customTypes" / f"{name}.json", fragment)
    return root


@pytest.fixture
def msm_types_folder(tmp_path):
    """Create the built-in msmTypes folder and return its path."""
    root = tmp_path / "msmTypes"
    for name, fragment in MSM_TYPES.items():
        write_json(root / f"{name}.json", fragment)
    return root


@pytest.fixture
def repository(config_folder, msm_types_folder):
    return ConfigRepository(config_folder, msm_types_folder)


@pytest.fixture
def registry():
    """Registry with snapshots 0 (one status), 1 (two statuses), 2 (adds Draft)."""
    return EnumeratorRegistry.load(EnumeratorSnapshot.from_document(doc) for doc in ENUMERATORS)
