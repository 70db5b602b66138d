"""One query-builder session: schema tree, selection, query text and results.

A :class:`QueryBuilderSession` is created once per user session and handed to
the UI host. The host forwards user events to it (select a root object, toggle
a field, expand a relationship, run the query, page, export) and learns about
outcomes through a :class:`SessionListener`.

Every failure is logged, reported to the listener and leaves the session in
its last stable state; nothing is retried on the user's behalf.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from .config import BuilderConfig, make_service
from .exceptions import ExportIOError, QueryExecutionError, SchemaFetchError
from .export import ExportSink, FileSink, format_records, subquery_filename, subquery_json
from .schema import SchemaCache, SchemaObject
from .service import DataService
from .soql import DEFAULT_LIMIT, synthesize
from .table import DEFAULT_PAGE_SIZE, PaginationState, SubqueryCell, subquery_cell
from .tree import RelationshipTree, SelectionSet

_logger = logging.getLogger(__name__)


class SessionListener:
    """Outbound notifications. Override the ones you care about."""

    def schema_ready(self, path: str, schema: SchemaObject) -> None:
        pass

    def schema_failed(self, path: str, error: SchemaFetchError) -> None:
        pass

    def query_succeeded(self, records: List[Dict[str, Any]]) -> None:
        pass

    def query_failed(self, error: QueryExecutionError) -> None:
        pass

    def export_failed(self, error: ExportIOError) -> None:
        pass


class QueryBuilderSession:
    def __init__(
        self,
        service: DataService,
        *,
        query_limit: int = DEFAULT_LIMIT,
        page_size: int = DEFAULT_PAGE_SIZE,
        listener: Optional[SessionListener] = None,
    ) -> None:
        self.service = service
        self.cache = SchemaCache(service.describe_object)
        self.tree = RelationshipTree(self.cache)
        self.pagination = PaginationState(page_size=page_size)
        self.query_limit = query_limit
        self.listener = listener or SessionListener()
        self.objects: List[str] = []
        self.query_text = ""
        self.total_size = 0
        self.last_query: Optional[str] = None

    @classmethod
    def from_config(
        cls, cfg: Optional[BuilderConfig] = None, *, listener: Optional[SessionListener] = None
    ) -> QueryBuilderSession:
        cfg = cfg or BuilderConfig.from_env()
        return cls(
            make_service(cfg),
            query_limit=cfg.query_limit,
            page_size=cfg.page_size,
            listener=listener,
        )

    # --------------------------- Views --------------------------------

    @property
    def root(self) -> Optional[str]:
        return self.tree.root

    @property
    def selection(self) -> SelectionSet:
        return self.tree.selection

    @property
    def records(self) -> List[Dict[str, Any]]:
        return self.pagination.records

    @property
    def columns(self) -> List[str]:
        return self.pagination.columns

    @property
    def tooling(self) -> bool:
        return bool(getattr(self.service, "tooling", False))

    def load_objects(self) -> List[str]:
        self.objects = self.service.list_queryable_objects()
        _logger.info("Loaded %d queryable objects", len(self.objects))
        return self.objects

    def filter_objects(self, term: str) -> List[str]:
        t = term.strip().lower()
        return [o for o in self.objects if t in o.lower()] if t else list(self.objects)

    # --------------------------- Schema events ------------------------

    def select_root_object(self, object_name: str) -> Optional[SchemaObject]:
        return self._load_root(lambda: self.tree.select_root(object_name))

    def reload_root_object(self) -> Optional[SchemaObject]:
        """Forget every cached describe and load the current root again."""
        if self.root is None:
            return None
        return self._load_root(self.tree.reload)

    def _load_root(self, load: Callable[[], SchemaObject]) -> Optional[SchemaObject]:
        self.query_text = ""
        try:
            schema = load()
        except SchemaFetchError as e:
            _logger.error("%s", e)
            self.listener.schema_failed("", e)
            return None
        self._resynthesize()
        self.listener.schema_ready("", schema)
        return schema

    def expand_relationship(self, path: str) -> Optional[SchemaObject]:
        try:
            schema = self.tree.expand(path)
        except SchemaFetchError as e:
            _logger.error("%s", e)
            self.listener.schema_failed(path, e)
            return None
        if schema is not None:
            self.listener.schema_ready(path, schema)
        return schema

    def collapse_relationship(self, path: str) -> None:
        self.tree.collapse(path)

    def toggle_relationship(self, path: str) -> Optional[SchemaObject]:
        """Expand a collapsed relationship or collapse an expanded one."""
        if self.tree.is_expanded(path):
            self.collapse_relationship(path)
            return None
        return self.expand_relationship(path)

    # --------------------------- Selection / query text ---------------

    def toggle_field(self, path: str) -> bool:
        selected = self.tree.toggle_field(path)
        self._resynthesize()
        return selected

    def set_field(self, path: str, selected: bool) -> None:
        if (path in self.selection) != selected:
            self.toggle_field(path)

    def edit_query_text(self, text: str) -> None:
        self.query_text = text

    def _resynthesize(self) -> None:
        if self.root is None:
            return
        self.query_text = synthesize(
            self.root, self.selection, self.tree.child_relationship_names, self.query_limit
        )

    # --------------------------- Query / results ----------------------

    def run_query(self, text: Optional[str] = None) -> bool:
        """Execute the given (or current) query text; results replace the old ones on success."""
        soql = (text if text is not None else self.query_text).strip()
        if not soql:
            return False
        try:
            result = self.service.execute_query(soql)
        except QueryExecutionError as e:
            _logger.error("Query failed: %s", e)
            self.listener.query_failed(e)
            return False

        self.query_text = soql
        self.last_query = soql
        self.total_size = result.total_size
        self.pagination.replace(result.records)
        _logger.info("Query returned %d records", len(result.records))
        self.listener.query_succeeded(self.pagination.records)
        return True

    def change_page(self, page: int) -> int:
        return self.pagination.go_to(page)

    def change_page_size(self, page_size: int) -> None:
        self.pagination.set_page_size(page_size)

    def subquery(self, record: Mapping[str, Any], column: str) -> Optional[SubqueryCell]:
        return subquery_cell(record, column)

    def record_object(self, record: Mapping[str, Any]) -> Optional[str]:
        attrs = record.get("attributes") or {}
        return attrs.get("type") or self.root

    def view_full_record(self, record: Mapping[str, Any]) -> Dict[str, Any]:
        """Fetch every field of a result row, typed by its ``attributes``."""
        object_name = self.record_object(record)
        record_id = record.get("Id")
        if not object_name or not record_id:
            raise ValueError("Record has no Id or object type")
        return self.service.fetch_single_record(object_name, str(record_id))

    def record_url(self, record_id: str) -> Optional[str]:
        return self.service.record_url(record_id)

    # --------------------------- Export -------------------------------

    def export_text(self, delimiter: str) -> str:
        return format_records(self.records, delimiter)

    def export(self, delimiter: str, sink: ExportSink) -> Optional[str]:
        """Format every record (not just the current page) and hand it to a sink."""
        if not self.records:
            return None
        return self._deliver(self.export_text(delimiter), sink)

    def copy_query(self, sink: ExportSink) -> Optional[str]:
        if not self.query_text:
            return None
        return self._deliver(self.query_text, sink)

    def save_subquery(
        self, record: Mapping[str, Any], column: str, folder: Union[str, Path]
    ) -> Optional[str]:
        cell = subquery_cell(record, column)
        if cell is None:
            return None
        sink = FileSink(Path(folder) / subquery_filename(cell, record))
        return self._deliver(subquery_json(cell), sink)

    def _deliver(self, text: str, sink: ExportSink) -> Optional[str]:
        try:
            return sink.write(text)
        except ExportIOError as e:
            _logger.error("%s", e)
            self.listener.export_failed(e)
            return None
