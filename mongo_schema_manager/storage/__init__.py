"""
Storage collaborators for Mongo Schema Manager.

- MigrationStore: protocol the sequencer issues its steps to
- MongoStore: pymongo implementation
- InMemoryStore: recording implementation for tests
"""

from .contract import (
    UNINITIALIZED_VERSION,
    VERSION_MARKER_NAME,
    IndexDefinition,
    MigrationStore,
    Pipeline,
)
from .memory import InMemoryStore
from .mongo import MongoStore

__all__ = [
    "UNINITIALIZED_VERSION",
    "VERSION_MARKER_NAME",
    "InMemoryStore",
    "IndexDefinition",
    "MigrationStore",
    "MongoStore",
    "Pipeline",
]
