"""Describe results as typed schema objects, and the per-session schema cache."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from .exceptions import SchemaFetchError

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Field:
    name: str
    label: str = ""
    type: str = ""
    relationship_name: Optional[str] = None
    reference_to: Optional[str] = None

    @property
    def expandable(self) -> bool:
        """True for reference fields that can be followed to a parent object."""
        return self.type == "reference" and bool(self.relationship_name) and bool(self.reference_to)

    def matches(self, term: str) -> bool:
        """Case-insensitive filter on API name or label."""
        if not term:
            return True
        t = term.lower()
        return t in self.name.lower() or t in (self.label or "").lower()


@dataclass(frozen=True)
class ChildRelationship:
    relationship_name: str
    child_object: str

    def matches(self, term: str) -> bool:
        return not term or term.lower() in self.relationship_name.lower()


@dataclass(frozen=True)
class SchemaObject:
    name: str
    fields: Tuple[Field, ...] = ()
    child_relationships: Tuple[ChildRelationship, ...] = ()

    def field(self, name: str) -> Optional[Field]:
        for f in self.fields:
            if f.name == name:
                return f
        return None

    def reference_by_relationship(self, relationship_name: str) -> Optional[Field]:
        """Return the expandable field whose relationship name matches."""
        for f in self.fields:
            if f.expandable and f.relationship_name == relationship_name:
                return f
        return None

    def child_relationship(self, relationship_name: str) -> Optional[ChildRelationship]:
        for cr in self.child_relationships:
            if cr.relationship_name == relationship_name:
                return cr
        return None

    @property
    def child_relationship_names(self) -> List[str]:
        return [cr.relationship_name for cr in self.child_relationships]


def parse_describe(object_name: str, desc: Dict[str, Any]) -> SchemaObject:
    """Build a SchemaObject from a raw describe payload.

    Fields are sorted by name; child relationships without a name are dropped
    and the rest sorted by relationship name.
    """
    fields: List[Field] = []
    for f in desc.get("fields", []) or []:
        name = f.get("name")
        if not name:
            continue
        rel = f.get("relationshipName") or None
        targets = f.get("referenceTo") or []
        fields.append(
            Field(
                name=name,
                label=f.get("label") or "",
                type=f.get("type") or "",
                relationship_name=rel,
                reference_to=str(targets[0]) if rel and targets else None,
            )
        )
    fields.sort(key=lambda x: x.name)

    kids: List[ChildRelationship] = []
    for cr in desc.get("childRelationships", []) or []:
        rel_name = cr.get("relationshipName")
        if not rel_name:
            continue
        kids.append(
            ChildRelationship(relationship_name=rel_name, child_object=cr.get("childSObject") or "")
        )
    kids.sort(key=lambda x: x.relationship_name)

    return SchemaObject(
        name=desc.get("name") or object_name,
        fields=tuple(fields),
        child_relationships=tuple(kids),
    )


@dataclass
class SchemaCache:
    """Describe results keyed by object name, fetched at most once per session.

    ``fetch`` is the data service's describe call. Every relationship path that
    resolves to the same object shares one entry.
    """

    fetch: Callable[[str], SchemaObject]
    _entries: Dict[str, SchemaObject] = field(default_factory=dict)
    fetch_count: int = 0

    def __contains__(self, object_name: str) -> bool:
        return object_name in self._entries

    def peek(self, object_name: str) -> Optional[SchemaObject]:
        return self._entries.get(object_name)

    def get(self, object_name: str, *, path: Optional[str] = None) -> SchemaObject:
        """Return the cached schema, describing the object on first use."""
        cached = self._entries.get(object_name)
        if cached is not None:
            _logger.debug("Schema cache hit for %s", object_name)
            return cached

        schema = self.load(object_name, path=path)
        self.store(schema, object_name)
        return schema

    def load(self, object_name: str, *, path: Optional[str] = None) -> SchemaObject:
        """Describe an object without touching the cache."""
        self.fetch_count += 1
        _logger.info("Describing %s", object_name)
        try:
            schema = self.fetch(object_name)
        except SchemaFetchError as e:
            if e.path is None:
                e.path = path
            raise
        except Exception as e:
            raise SchemaFetchError(object_name, str(e), path=path) from e

        if not schema.fields:
            raise SchemaFetchError(object_name, "describe returned no fields", path=path)
        return schema

    def store(self, schema: SchemaObject, object_name: Optional[str] = None) -> None:
        self._entries[object_name or schema.name] = schema

    def invalidate(self, object_name: str) -> None:
        self._entries.pop(object_name, None)

    def clear(self) -> None:
        self._entries.clear()
