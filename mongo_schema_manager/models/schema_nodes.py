"""
Tagged tree representation of a collection schema document.

Raw schema JSON is parsed into a closed set of node kinds:

- ObjectNode: ordered key -> node mapping
- ArrayNode: ordered list of nodes
- DirectiveNode: a msmType / msmEnums / msmEnumList directive and its argument
- LeafNode: any other JSON value (string, number, bool, null)

A directive appears in raw JSON as a key of an object, e.g.
``{"description": "Status", "msmEnums": "defaultStatus"}``. The parser stores
it under its key as a DirectiveNode so the preprocessor can find and replace
it while keeping the sibling keys.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

from mongo_schema_manager.exceptions import SchemaDirectiveError


class DirectiveKind(str, Enum):
    """Schema directive keys and the expansion they request."""

    CUSTOM_TYPE = "msmType"
    ENUM = "msmEnums"
    ENUM_LIST = "msmEnumList"


DIRECTIVE_KEYS = {kind.value: kind for kind in DirectiveKind}


@dataclass(frozen=True)
class LeafNode:
    value: Any


@dataclass(frozen=True)
class ArrayNode:
    items: tuple["SchemaNode", ...]


@dataclass(frozen=True)
class DirectiveNode:
    kind: DirectiveKind
    argument: str


@dataclass(frozen=True)
class ObjectNode:
    """
    JSON object node.

    Attributes:
        entries: (key, node) pairs in document order
    """

    entries: tuple[tuple[str, "SchemaNode"], ...]

    def keys(self) -> list[str]:
        return [key for key, _ in self.entries]

    def get(self, key: str) -> "SchemaNode | None":
        for entry_key, node in self.entries:
            if entry_key == key:
                return node
        return None

    def directives(self) -> list[DirectiveNode]:
        return [node for _, node in self.entries if isinstance(node, DirectiveNode)]


SchemaNode = Union[ObjectNode, ArrayNode, DirectiveNode, LeafNode]


def parse_schema(value: Any) -> SchemaNode:
    """
    Convert parsed JSON into a schema tree.

    Args:
        value: Any JSON-compatible Python value

    Returns:
        Root SchemaNode

    Raises:
        SchemaDirectiveError: If a directive key carries a non-string argument
    """
    if isinstance(value, dict):
        entries = []
        for key, child in value.items():
            if key in DIRECTIVE_KEYS:
                if not isinstance(child, str) or not child:
                    raise SchemaDirectiveError(
                        f"{key} expects a non-empty type or enumerator name, got {child!r}"
                    )
                entries.append((key, DirectiveNode(DIRECTIVE_KEYS[key], child)))
            else:
                entries.append((key, parse_schema(child)))
        return ObjectNode(tuple(entries))

    if isinstance(value, list):
        return ArrayNode(tuple(parse_schema(item) for item in value))

    return LeafNode(value)


def render_schema(node: SchemaNode) -> Any:
    """
    Convert a schema tree back into plain JSON values.

    Raises:
        SchemaDirectiveError: If an unexpanded directive is still present
    """
    if isinstance(node, ObjectNode):
        return {key: render_schema(child) for key, child in node.entries}
    if isinstance(node, ArrayNode):
        return [render_schema(item) for item in node.items]
    if isinstance(node, DirectiveNode):
        raise SchemaDirectiveError(
            f"Unexpanded directive {node.kind.value}: {node.argument}"
        )
    if isinstance(node, LeafNode):
        return node.value
    raise TypeError(f"Unknown schema node: {type(node).__name__}")
