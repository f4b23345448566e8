"""
Custom exceptions for Mongo Schema Manager.

This module provides a hierarchy of exceptions that enable type-safe error
handling throughout the application. All exceptions inherit from the base
SchemaManagerError for consistent catching.

Exception Hierarchy:
    SchemaManagerError (base)
    ├── ConfigurationError
    │   ├── ConfigFileNotFoundError
    │   ├── ConfigValidationError
    │   ├── FormatError
    │   ├── SequenceError
    │   └── DuplicateVersionError
    ├── PreprocessingError
    │   ├── SchemaDirectiveError
    │   ├── TypeNotFoundError
    │   ├── EnumeratorNotFoundError
    │   └── CycleError
    └── StorageError
        ├── StorageConnectionError
        └── StorageOperationError

Usage:
    from mongo_schema_manager.exceptions import ConfigurationError

    try:
        processor.process_all()
    except ConfigurationError as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(1)
"""


class SchemaManagerError(Exception):
    """
    Base exception for all Mongo Schema Manager errors.

    All custom exceptions in this application inherit from this class,
    so a single except clause catches every application-specific error.
    """

    pass


# ============================================================================
# Configuration Errors
# ============================================================================


class ConfigurationError(SchemaManagerError):
    """
    Base class for configuration-related errors.

    Raised before any mutating step of the affected version runs.
    Should be caught and result in exit code 1.
    """

    pass


class ConfigFileNotFoundError(ConfigurationError):
    """
    A required configuration file (collection, schema, test data) is missing.

    Example:
        raise ConfigFileNotFoundError("Schema file not found: schemas/sample-1.0.0.json")
    """

    pass


class ConfigValidationError(ConfigurationError):
    """
    A configuration document is malformed or fails schema validation.

    Should include details about which field(s) failed validation.

    Example:
        raise ConfigValidationError("versions.0.version: Field required")
    """

    pass


class FormatError(ConfigurationError):
    """
    A version identifier is not four dot-separated non-negative integers.

    Example:
        raise FormatError("Invalid version string '1.0.0'")
    """

    pass


class SequenceError(ConfigurationError):
    """
    Enumerator snapshot versions are not contiguous from 0.

    Covers gaps, duplicates, and out-of-order snapshots.

    Example:
        raise SequenceError("Enumerator snapshot at position 1 has version 2")
    """

    pass


class DuplicateVersionError(ConfigurationError):
    """
    The same version number is declared twice in one collection config.

    Attributes:
        collection: Collection name
        version: The duplicated version string
    """

    def __init__(self, message: str, collection: str | None = None, version: str | None = None):
        super().__init__(message)
        self.collection = collection
        self.version = version


# ============================================================================
# Preprocessing Errors
# ============================================================================


class PreprocessingError(SchemaManagerError):
    """
    Base class for schema directive expansion errors.

    Always fatal: the version's schema cannot be built.
    """

    pass


class SchemaDirectiveError(PreprocessingError):
    """
    A directive node is malformed (non-string argument, several directives).

    Example:
        raise SchemaDirectiveError("msmEnums expects a string, got list")
    """

    pass


class TypeNotFoundError(PreprocessingError):
    """
    A msmType directive names a custom type that does not exist.

    Example:
        raise TypeNotFoundError("Type Not Found: emailAddress")
    """

    pass


class EnumeratorNotFoundError(PreprocessingError):
    """
    An enumerator version or category is missing.

    Lookups never fall back to an earlier snapshot.

    Example:
        raise EnumeratorNotFoundError("Enumerator 'defaultStatus' not in version 3")
    """

    pass


class CycleError(PreprocessingError):
    """
    A custom type references itself, directly or through other types.

    Attributes:
        path: Type names on the resolution path, ending with the repeated name
    """

    def __init__(self, message: str, path: list[str] | None = None):
        super().__init__(message)
        self.path = path or []


# ============================================================================
# Storage Errors
# ============================================================================


class StorageError(SchemaManagerError):
    """
    Base class for storage collaborator errors.

    Should be caught and result in exit code 2.
    """

    pass


class StorageConnectionError(StorageError):
    """
    Connecting to the database failed.

    Example:
        raise StorageConnectionError("Cannot reach mongodb://...@localhost:27017")
    """

    pass


class StorageOperationError(StorageError):
    """
    A Migration Step Contract operation failed.

    Wraps index name conflicts, aggregation failures, bulk-load rejections,
    and any other failure reported by the database. Steps already completed
    within the in-flight version are NOT rolled back.

    Attributes:
        collection: Collection being processed
        version: Version string being applied (None outside a version)
        step: Sequencer step that failed (e.g. "CREATING_INDEXES"), or
            "WRITING_ENUMERATORS" for the enumerator mirror

    Example:
        raise StorageOperationError(
            "Index name conflict: nameIdx",
            collection="sample",
            version="1.1.0.1",
            step="CREATING_INDEXES",
        )
    """

    def __init__(
        self,
        message: str,
        collection: str | None = None,
        version: str | None = None,
        step: str | None = None,
    ):
        super().__init__(message)
        self.collection = collection
        self.version = version
        self.step = step
