"""Lazily expanded field/relationship tree for the selected root object.

The tree is an arena: a mapping from expansion path (``""`` for the root,
``Owner``, ``Owner.Manager``, ``Contacts``...) to the object name whose schema
sits in the shared :class:`~sfquery.schema.SchemaCache`. Nothing holds
references between schema objects, so cyclic relationships need no special
handling and depth is just a segment count.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from .exceptions import SchemaFetchError
from .schema import ChildRelationship, Field, SchemaCache, SchemaObject

_logger = logging.getLogger(__name__)

MAX_DEPTH = 5
DEFAULT_FIELDS = ("Id", "Name")


def path_depth(path: str) -> int:
    return len(path.split(".")) if path else 0


def join_path(parent: str, name: str) -> str:
    return f"{parent}.{name}" if parent else name


class SelectionSet:
    """Insertion-ordered set of qualified field paths."""

    def __init__(self, paths: Iterable[str] = ()) -> None:
        self._paths: Dict[str, None] = dict.fromkeys(paths)

    def __contains__(self, path: object) -> bool:
        return path in self._paths

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._paths))

    def __len__(self) -> int:
        return len(self._paths)

    def __repr__(self) -> str:
        return f"SelectionSet({list(self._paths)!r})"

    def add(self, path: str) -> None:
        self._paths.setdefault(path, None)

    def discard(self, path: str) -> None:
        self._paths.pop(path, None)

    def toggle(self, path: str) -> bool:
        """Flip membership; returns True if the path is now selected."""
        if path in self._paths:
            del self._paths[path]
            return False
        self._paths[path] = None
        return True

    def clear(self) -> None:
        self._paths.clear()

    def under(self, prefix: str) -> List[str]:
        """Selected paths that live below an expansion path."""
        return [p for p in self._paths if p.startswith(prefix + ".")]


@dataclass(frozen=True)
class DescribeRequest:
    """An outstanding describe, stamped with the root selection it belongs to."""

    root: str
    generation: int
    path: str
    object_name: str


@dataclass(frozen=True)
class FieldNode:
    field: Field
    path: str
    depth: int
    relationship_path: Optional[str]
    expanded: bool
    can_expand: bool
    selected: bool


class RelationshipTree:
    def __init__(self, cache: SchemaCache) -> None:
        self.cache = cache
        self.root: Optional[str] = None
        self.selection = SelectionSet()
        self._expanded: Dict[str, str] = {}
        self._generation = 0

    # --------------------------- Root selection -----------------------

    @property
    def root_schema(self) -> Optional[SchemaObject]:
        return self.schema_at("")

    @property
    def child_relationship_names(self) -> List[str]:
        schema = self.root_schema
        return schema.child_relationship_names if schema else []

    def begin_select_root(self, object_name: str) -> DescribeRequest:
        """Switch root object; anything still in flight for the old one goes stale."""
        self._generation += 1
        self.root = object_name
        self._expanded.clear()
        self.selection.clear()
        _logger.debug("Root object -> %s (generation %d)", object_name, self._generation)
        return DescribeRequest(object_name, self._generation, "", object_name)

    def select_root(self, object_name: str) -> SchemaObject:
        req = self.begin_select_root(object_name)
        schema = self.cache.get(object_name)
        self.complete(req, schema)
        return schema

    def reload(self) -> SchemaObject:
        """Drop every cached describe and load the root object again."""
        if self.root is None:
            raise ValueError("No root object selected")
        self.cache.clear()
        return self.select_root(self.root)

    # --------------------------- Expansion ----------------------------

    def is_expanded(self, path: str) -> bool:
        return path in self._expanded

    def schema_at(self, path: str) -> Optional[SchemaObject]:
        object_name = self._expanded.get(path)
        return self.cache.peek(object_name) if object_name else None

    @property
    def expanded_paths(self) -> List[str]:
        return [p for p in self._expanded if p]

    def can_expand(self, path: str) -> bool:
        return self.root_schema is not None and 0 < path_depth(path) <= MAX_DEPTH

    def resolve_target(self, path: str) -> str:
        """Object name an expansion path points at.

        A first segment may be a reference relationship or a child relationship
        of the root; later segments are reference relationships of the parent path.
        """
        parent, _, last = path.rpartition(".")
        parent_schema = self.schema_at(parent)
        if parent_schema is None:
            raise ValueError(f"Parent of {path!r} is not expanded")

        ref = parent_schema.reference_by_relationship(last)
        if ref is not None and ref.reference_to:
            return ref.reference_to
        if not parent:
            child = parent_schema.child_relationship(last)
            if child is not None:
                return child.child_object
        raise ValueError(f"{last!r} is not a relationship of {parent_schema.name}")

    def begin_expand(
        self, path: str, object_name: Optional[str] = None
    ) -> Optional[DescribeRequest]:
        if not self.can_expand(path):
            _logger.debug("Refusing to expand %r (depth limit %d)", path, MAX_DEPTH)
            return None
        target = object_name or self.resolve_target(path)
        assert self.root is not None
        return DescribeRequest(self.root, self._generation, path, target)

    def expand(self, path: str, object_name: Optional[str] = None) -> Optional[SchemaObject]:
        """Expand a relationship, describing its target unless already cached.

        Returns None (and fetches nothing) when the path is too deep. On
        SchemaFetchError the node stays collapsed and selections are kept.
        """
        req = self.begin_expand(path, object_name)
        if req is None:
            return None
        try:
            schema = self.cache.get(req.object_name, path=path)
        except SchemaFetchError as e:
            self.fail(req, e)
            raise
        self.complete(req, schema)
        return schema

    def collapse(self, path: str) -> None:
        """Hide a relationship and everything below it; selections stay put."""
        if not path:
            return
        for p in list(self._expanded):
            if p == path or p.startswith(path + "."):
                del self._expanded[p]

    # --------------------------- Async completion ---------------------

    def is_current(self, req: DescribeRequest) -> bool:
        return req.root == self.root and req.generation == self._generation

    def complete(self, req: DescribeRequest, schema: SchemaObject) -> bool:
        """Apply a describe result. Stale results are dropped and return False."""
        if not self.is_current(req):
            _logger.debug(
                "Discarding stale describe of %s for root %s", req.path or "<root>", req.root
            )
            return False
        parent = req.path.rpartition(".")[0]
        if req.path and parent not in self._expanded:
            _logger.debug("Discarding describe of %s; %s was collapsed", req.path, parent)
            return False
        if not schema.fields:
            raise SchemaFetchError(req.object_name, "describe returned no fields", path=req.path)

        self.cache.store(schema, req.object_name)
        self._expanded[req.path] = req.object_name
        if not req.path:
            for name in DEFAULT_FIELDS:
                if schema.field(name) is not None:
                    self.selection.add(name)
        return True

    def fail(self, req: DescribeRequest, error: Exception) -> bool:
        if not self.is_current(req):
            return False
        _logger.warning("Describe failed for %s: %s", req.path or req.object_name, error)
        self._expanded.pop(req.path, None)
        return True

    # --------------------------- Selection ----------------------------

    def toggle_field(self, path: str) -> bool:
        return self.selection.toggle(path)

    # --------------------------- Walking ------------------------------

    def walk_fields(self, path: str = "", term: str = "", *, depth: int = 0) -> Iterator[FieldNode]:
        """Yield the visible field rows below ``path``, depth first."""
        schema = self.schema_at(path)
        if schema is None:
            return
        for f in schema.fields:
            if not f.matches(term):
                continue
            rel_path = join_path(path, f.relationship_name) if f.expandable else None
            expanded = rel_path is not None and rel_path in self._expanded
            qualified = join_path(path, f.name)
            yield FieldNode(
                field=f,
                path=qualified,
                depth=depth,
                relationship_path=rel_path,
                expanded=expanded,
                can_expand=rel_path is not None and self.can_expand(rel_path),
                selected=qualified in self.selection,
            )
            if expanded and rel_path is not None:
                yield from self.walk_fields(rel_path, term, depth=depth + 1)

    def child_relationships(self, term: str = "") -> List[Tuple[ChildRelationship, bool]]:
        schema = self.root_schema
        if schema is None:
            return []
        return [
            (cr, cr.relationship_name in self._expanded)
            for cr in schema.child_relationships
            if cr.matches(term)
        ]
