"""
Domain models for Mongo Schema Manager.

- VersionNumber: 4-component version identifiers
- EnumeratorSnapshot / EnumeratorRegistry: versioned enumerator lookups
- Schema tree nodes: tagged representation of schema documents
"""

from .enumerators import EnumeratorRegistry, EnumeratorSnapshot
from .schema_nodes import (
    ArrayNode,
    DirectiveKind,
    DirectiveNode,
    LeafNode,
    ObjectNode,
    SchemaNode,
    parse_schema,
    render_schema,
)
from .version_number import VersionNumber

__all__ = [
    "ArrayNode",
    "DirectiveKind",
    "DirectiveNode",
    "EnumeratorRegistry",
    "EnumeratorSnapshot",
    "LeafNode",
    "ObjectNode",
    "SchemaNode",
    "VersionNumber",
    "parse_schema",
    "render_schema",
]
