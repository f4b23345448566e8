"""
Configuration schema models for Mongo Schema Manager.

This module defines Pydantic models for validating collection configuration
documents found in ``<config folder>/collections``. All models use Pydantic v2
field validators. Document keys keep their camelCase spelling through aliases.

Models:
    IndexSpec: One index to create (name, key, options)
    VersionConfig: One version entry of a collection
    CollectionConfig: Root model of a collection configuration file

Example document:
    {
        "collectionName": "sample",
        "versions": [
            {"version": "1.0.0.0", "addIndexes": [{"name": "nameIdx", "key": {"name": 1}}]},
            {"version": "1.1.0.1", "dropIndexes": ["nameIdx"], "testData": "sample-1.1.0"}
        ]
    }
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from mongo_schema_manager.exceptions import FormatError
from mongo_schema_manager.models.version_number import VersionNumber
from mongo_schema_manager.storage.contract import IndexDefinition, Pipeline


class IndexSpec(BaseModel):
    """
    Index definition from a version's ``addIndexes`` list.

    Attributes:
        name: Index name, required and unique within one version
        key: Field -> direction/type mapping, in key order
        options: Extra IndexModel options (unique, sparse, ...)
    """

    name: str
    key: dict[str, Any]
    options: dict[str, Any] = Field(default_factory=dict)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate name is non-empty."""
        if not v or v.isspace():
            raise ValueError("index name cannot be empty")
        return v

    @field_validator("key")
    @classmethod
    def validate_key(cls, v: dict[str, Any]) -> dict[str, Any]:
        """Validate key has at least one field."""
        if not v:
            raise ValueError("index key cannot be empty")
        return v

    def to_definition(self) -> IndexDefinition:
        return {"name": self.name, "key": dict(self.key), "options": dict(self.options)}


class VersionConfig(BaseModel):
    """
    One version of a collection.

    Attributes:
        version: 4-component version identifier ("M.m.p.e")
        add_indexes: Indexes created after migrations run
        drop_indexes: Index names dropped before migrations run
        aggregations: Pipelines run in listed order
        test_data: Test data file name (without .json)
    """

    model_config = ConfigDict(populate_by_name=True)

    version: str
    add_indexes: list[IndexSpec] | None = Field(default=None, alias="addIndexes")
    drop_indexes: list[str] | None = Field(default=None, alias="dropIndexes")
    aggregations: list[Pipeline] | None = None
    test_data: str | None = Field(default=None, alias="testData")

    @field_validator("version")
    @classmethod
    def validate_version(cls, v: str) -> str:
        """Validate version is a 4-component identifier."""
        try:
            VersionNumber.parse(v)
        except FormatError as e:
            raise ValueError(str(e)) from e
        return v

    @model_validator(mode="after")
    def validate_unique_index_names(self) -> "VersionConfig":
        """Index names must be unique within one version."""
        if self.add_indexes:
            names = [spec.name for spec in self.add_indexes]
            duplicates = sorted({name for name in names if names.count(name) > 1})
            if duplicates:
                raise ValueError(f"Duplicate index names in addIndexes: {duplicates}")
        return self

    @property
    def version_number(self) -> VersionNumber:
        return VersionNumber.parse(self.version)


class CollectionConfig(BaseModel):
    """
    Root model of a collection configuration file.

    Versions are kept in declaration order; the sequencer sorts them.
    Duplicate versions are reported by the sequencer as DuplicateVersionError.
    """

    model_config = ConfigDict(populate_by_name=True)

    collection_name: str = Field(alias="collectionName")
    versions: list[VersionConfig] = Field(default_factory=list)

    @field_validator("collection_name")
    @classmethod
    def validate_collection_name(cls, v: str) -> str:
        """Validate collection_name is non-empty and has no path separators."""
        if not v or v.isspace():
            raise ValueError("collectionName cannot be empty")
        if "/" in v or "\\" in v or v.startswith("system."):
            raise ValueError(f"collectionName is not a valid collection name: {v}")
        return v
