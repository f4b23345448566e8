"""
Config folder access for Mongo Schema Manager.

All file I/O of a run goes through ConfigRepository. The folder layout is:

    <config folder>/
        collections/<any>.json|.yaml|.yml     collection configurations
        schemas/<collection>-<M.m.p>.json     raw schemas with msm directives
        customTypes/<type>.json               project custom types
        enumerators/enumerators.json          ordered enumerator snapshots
        testData/<name>.json                  documents in MongoDB extended JSON
    <msm types folder>/<type>.json            built-in types, searched first

YAML files are parsed with yaml.safe_load(); JSON files keep their key order
so enumerator values and schema properties stay deterministic.
"""

import json
import logging
from pathlib import Path
from typing import Any

import yaml
from bson import json_util
from pydantic import ValidationError

from mongo_schema_manager.exceptions import (
    ConfigFileNotFoundError,
    ConfigValidationError,
    TypeNotFoundError,
)
from mongo_schema_manager.models.enumerators import (
    EnumeratorRegistry,
    EnumeratorSnapshot,
)
from mongo_schema_manager.models.version_number import VersionNumber

from .schema import CollectionConfig

logger = logging.getLogger(__name__)

COLLECTION_FILE_SUFFIXES = (".json", ".yaml", ".yml")


def _format_validation_error(path: Path, error: ValidationError) -> str:
    error_messages = []
    for item in error.errors():
        loc = ".".join(str(x) for x in item["loc"])
        error_messages.append(f"  - {loc}: {item['msg']}")
    return f"Configuration validation failed in {path}:\n" + "\n".join(error_messages)


def read_document(path: Path) -> Any:
    """
    Read one JSON or YAML document.

    Raises:
        ConfigFileNotFoundError: If the file does not exist
        ConfigValidationError: If the file cannot be parsed or is empty
    """
    if not path.is_file():
        raise ConfigFileNotFoundError(f"Configuration file not found: {path}")

    try:
        with path.open(encoding="utf-8") as f:
            if path.suffix in (".yaml", ".yml"):
                document = yaml.safe_load(f)
            else:
                document = json.load(f)
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise ConfigValidationError(f"Invalid syntax in {path}: {e}") from e
    except OSError as e:
        raise ConfigValidationError(f"Failed to read {path}: {e}") from e

    if document is None:
        raise ConfigValidationError(f"Configuration file is empty: {path}")
    return document


class ConfigRepository:
    """
    Reads collection configs, schemas, custom types, enumerators and test data.

    Attributes:
        config_folder: Root of the configuration tree
        msm_types_folder: Built-in custom types folder (optional)
    """

    def __init__(self, config_folder: Path | str, msm_types_folder: Path | str | None = None):
        self.config_folder = Path(config_folder)
        self.msm_types_folder = Path(msm_types_folder) if msm_types_folder else None

    def collection_files(self) -> list[Path]:
        """
        List collection configuration files, sorted by file name.

        Raises:
            ConfigFileNotFoundError: If the collections folder does not exist
        """
        folder = self.config_folder / "collections"
        if not folder.is_dir():
            raise ConfigFileNotFoundError(f"Collections folder not found: {folder}")

        return sorted(
            path
            for path in folder.iterdir()
            if path.is_file() and path.suffix in COLLECTION_FILE_SUFFIXES
        )

    def load_collection(self, path: Path) -> CollectionConfig:
        """
        Load and validate one collection configuration file.

        Raises:
            ConfigFileNotFoundError: Missing file
            ConfigValidationError: Unparseable file or invalid structure
        """
        document = read_document(path)
        try:
            return CollectionConfig.model_validate(document)
        except ValidationError as e:
            raise ConfigValidationError(_format_validation_error(path, e)) from e

    def load_collections(self) -> list[CollectionConfig]:
        return [self.load_collection(path) for path in self.collection_files()]

    def load_enumerators(self) -> EnumeratorRegistry:
        """
        Load enumerators/enumerators.json into a validated registry.

        The file holds the ordered snapshot array, either at the top level or
        under an ``enumerators`` key. A missing file yields an empty registry.

        Raises:
            ConfigValidationError: Malformed file or snapshot
            SequenceError: Snapshot versions not contiguous from 0
        """
        path = self.config_folder / "enumerators" / "enumerators.json"
        if not path.is_file():
            logger.warning(f"No enumerators file at {path}; msmEnums directives will fail")
            return EnumeratorRegistry.load([])

        document = read_document(path)
        if isinstance(document, dict):
            document = document.get("enumerators", [])
        if not isinstance(document, list):
            raise ConfigValidationError(
                f"Enumerators file {path} must contain an ordered list of snapshots"
            )

        return EnumeratorRegistry.load(
            EnumeratorSnapshot.from_document(item) for item in document
        )

    def load_custom_type(self, name: str) -> Any:
        """
        Resolve a custom type name to its JSON fragment.

        Built-in types in the msm types folder take precedence over
        customTypes/ in the config folder.

        Raises:
            TypeNotFoundError: If no file defines the type
        """
        if not name or Path(name).name != name:
            raise TypeNotFoundError(f"Type Not Found: {name!r}")

        candidates = [self.config_folder / "customTypes" / f"{name}.json"]
        if self.msm_types_folder is not None:
            candidates.insert(0, self.msm_types_folder / f"{name}.json")

        for path in candidates:
            if path.is_file():
                return read_document(path)

        raise TypeNotFoundError(f"Type Not Found: {name}")

    def schema_path(self, collection: str, version: VersionNumber) -> Path:
        return self.config_folder / "schemas" / f"{collection}-{version.short_form()}.json"

    def load_schema(self, collection: str, version: VersionNumber) -> Any:
        """Load the raw schema for ``collection`` at ``version.short_form()``."""
        return read_document(self.schema_path(collection, version))

    def test_data_path(self, name: str) -> Path:
        return self.config_folder / "testData" / f"{name}.json"

    def has_test_data(self, name: str) -> bool:
        return self.test_data_path(name).is_file()

    def load_test_data(self, name: str) -> list[dict[str, Any]]:
        """
        Load test documents with extended JSON markers converted.

        ``{"$oid": ...}`` becomes an ObjectId and ``{"$date": ...}`` a datetime,
        so documents can be inserted as native BSON values.

        Raises:
            ConfigFileNotFoundError: Missing file
            ConfigValidationError: Unparseable file or not a list of objects
        """
        path = self.test_data_path(name)
        if not path.is_file():
            raise ConfigFileNotFoundError(f"Test data file not found: {path}")

        try:
            documents = json_util.loads(path.read_text(encoding="utf-8"))
        except (ValueError, TypeError) as e:
            raise ConfigValidationError(f"Invalid test data in {path}: {e}") from e

        if not isinstance(documents, list) or not all(
            isinstance(document, dict) for document in documents
        ):
            raise ConfigValidationError(f"Test data in {path} must be a list of documents")
        return documents
