"""
Schema preprocessing: expand msm directives into concrete $jsonSchema.

Three directives are supported:

- ``msmType: <name>``: merge the named custom type fragment into the
  enclosing object. Fragments may contain directives themselves.
- ``msmEnums: <category>``: ``{"bsonType": "string", "enum": [...]}``
- ``msmEnumList: <category>``: an array whose items are that string enum

Enumerator values come from the snapshot selected by the 4th component of the
version being applied. Expansion is a pure function of (schema tree,
enumerator version, type resolver).

Example:
    >>> pre = SchemaPreprocessor(registry, repository.load_custom_type)
    >>> pre.expand_document(
    ...     {"description": "Status", "msmEnums": "defaultStatus"}, enumerator_version=1
    ... )
    {'description': 'Status', 'bsonType': 'string', 'enum': ['Active', 'Archived']}
"""

import logging
from collections.abc import Callable
from typing import Any

from mongo_schema_manager.exceptions import CycleError, SchemaDirectiveError
from mongo_schema_manager.models.enumerators import EnumeratorRegistry
from mongo_schema_manager.models.schema_nodes import (
    ArrayNode,
    DirectiveKind,
    DirectiveNode,
    LeafNode,
    ObjectNode,
    SchemaNode,
    parse_schema,
    render_schema,
)

logger = logging.getLogger(__name__)

# Resolves a custom type name to its raw JSON fragment
TypeResolver = Callable[[str], Any]

# Keys a directive replaces outright, even if the fragment does not set them
TYPE_DECLARATION_KEYS = frozenset({"bsonType", "type"})


class SchemaPreprocessor:
    """
    Expands directive nodes using an enumerator registry and a type resolver.

    Holds no per-call state; one instance can serve every collection and
    version in a run.

    Attributes:
        registry: Loaded enumerator registry
        type_resolver: Callable returning the raw fragment for a type name.
            Raises TypeNotFoundError for unknown names.
    """

    def __init__(self, registry: EnumeratorRegistry, type_resolver: TypeResolver):
        self.registry = registry
        self.type_resolver = type_resolver

    def expand(self, node: SchemaNode, enumerator_version: int) -> SchemaNode:
        """
        Return a directive-free copy of ``node``.

        Args:
            node: Schema tree to expand
            enumerator_version: Snapshot version for msmEnums / msmEnumList

        Raises:
            TypeNotFoundError: Unknown custom type
            EnumeratorNotFoundError: Unknown enumerator version or category
            CycleError: A custom type references itself along one path
            SchemaDirectiveError: Malformed directive usage
        """
        return self._expand(node, enumerator_version, ())

    def expand_document(self, document: Any, enumerator_version: int) -> Any:
        """Parse raw schema JSON, expand it, and render it back to JSON."""
        return render_schema(self.expand(parse_schema(document), enumerator_version))

    def _expand(
        self, node: SchemaNode, enumerator_version: int, path: tuple[str, ...]
    ) -> SchemaNode:
        if isinstance(node, ObjectNode):
            return self._expand_object(node, enumerator_version, path)
        if isinstance(node, ArrayNode):
            return ArrayNode(
                tuple(self._expand(item, enumerator_version, path) for item in node.items)
            )
        if isinstance(node, DirectiveNode):
            # A bare directive has no enclosing object to merge into
            return self._resolve_directive(node, enumerator_version, path)
        if isinstance(node, LeafNode):
            return node
        raise TypeError(f"Unknown schema node: {type(node).__name__}")

    def _expand_object(
        self, node: ObjectNode, enumerator_version: int, path: tuple[str, ...]
    ) -> ObjectNode:
        directives = node.directives()
        if len(directives) > 1:
            kinds = ", ".join(d.kind.value for d in directives)
            raise SchemaDirectiveError(f"Only one directive allowed per object, found: {kinds}")

        siblings = [
            (key, self._expand(child, enumerator_version, path))
            for key, child in node.entries
            if not isinstance(child, DirectiveNode)
        ]
        if not directives:
            return ObjectNode(tuple(siblings))

        fragment = self._resolve_directive(directives[0], enumerator_version, path)
        if directives[0].kind is DirectiveKind.CUSTOM_TYPE:
            return _merge(siblings, fragment)
        # Generated enum fragments describe the type in full
        return _merge(siblings, fragment, TYPE_DECLARATION_KEYS | frozenset(fragment.keys()))

    def _resolve_directive(
        self, directive: DirectiveNode, enumerator_version: int, path: tuple[str, ...]
    ) -> ObjectNode:
        if directive.kind is DirectiveKind.CUSTOM_TYPE:
            name = directive.argument
            if name in path:
                cycle = [*path, name]
                raise CycleError(
                    f"Custom type cycle detected: {' -> '.join(cycle)}", path=cycle
                )

            fragment = parse_schema(self.type_resolver(name))
            if not isinstance(fragment, ObjectNode):
                raise SchemaDirectiveError(
                    f"Custom type '{name}' must be a JSON object"
                )
            logger.debug(f"Expanding custom type '{name}' (path: {list(path)})")
            return self._expand_object(fragment, enumerator_version, (*path, name))

        values = self.registry.values(enumerator_version, directive.argument)
        enum_node = ObjectNode(
            (
                ("bsonType", LeafNode("string")),
                ("enum", ArrayNode(tuple(LeafNode(value) for value in values))),
            )
        )
        if directive.kind is DirectiveKind.ENUM:
            return enum_node
        if directive.kind is DirectiveKind.ENUM_LIST:
            return ObjectNode((("bsonType", LeafNode("array")), ("items", enum_node)))
        raise SchemaDirectiveError(f"Unsupported directive: {directive.kind}")


def _merge(
    siblings: list[tuple[str, SchemaNode]],
    fragment: ObjectNode,
    replaced_keys: frozenset[str] = TYPE_DECLARATION_KEYS,
) -> ObjectNode:
    """
    Merge a resolved fragment into the object that held the directive.

    Sibling values for ``replaced_keys`` are dropped in favor of the
    fragment. Any other key already on the object keeps its value. Sibling
    order is kept, new fragment keys are appended.
    """
    merged = {key: child for key, child in siblings if key not in replaced_keys}
    for key, child in fragment.entries:
        merged.setdefault(key, child)
    return ObjectNode(tuple(merged.items()))
