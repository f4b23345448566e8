"""
Schema preprocessing and version sequencing.

- SchemaPreprocessor: expands msmType / msmEnums / msmEnumList directives
- CollectionSequencer: applies pending versions of one collection
- CollectionProcessor: runs every collection and writes the enumerator mirror
"""

from .preprocessor import SchemaPreprocessor
from .processor import CollectionPlan, CollectionProcessor, RunSummary, validate_all
from .sequencer import CollectionSequencer, SequencerState, VersionTransition

__all__ = [
    "CollectionPlan",
    "CollectionProcessor",
    "CollectionSequencer",
    "RunSummary",
    "SchemaPreprocessor",
    "SequencerState",
    "VersionTransition",
    "validate_all",
]
