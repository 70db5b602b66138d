"""Data services the query builder talks to.

A data service lists queryable objects, describes them, runs queries and reads
single records. ``RestDataService`` goes through the REST API client;
``sfquery.sf_cli.SfCliDataService`` shells out to the ``sf`` command-line tool.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol

import requests

from .api import SalesforceAPI, SFConfig
from .exceptions import QueryExecutionError, SchemaFetchError, SfQueryError
from .schema import SchemaObject, parse_describe

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QueryResult:
    total_size: int
    records: List[Dict[str, Any]] = field(default_factory=list)


class DataService(Protocol):
    tooling: bool

    def list_queryable_objects(self) -> List[str]: ...

    def describe_object(self, object_name: str) -> SchemaObject: ...

    def execute_query(self, soql: str) -> QueryResult: ...

    def fetch_single_record(self, object_name: str, record_id: str) -> Dict[str, Any]: ...

    def record_url(self, record_id: str) -> Optional[str]: ...


def _http_error_message(err: requests.HTTPError) -> tuple[str, Optional[str]]:
    """Pull Salesforce's own message out of an error response.

    Salesforce replies with ``[{"message": ..., "errorCode": ...}]``.
    """
    resp = err.response
    if resp is None:
        return str(err), None
    try:
        body = resp.json()
    except ValueError:
        return resp.text or str(err), None
    if isinstance(body, list) and body and isinstance(body[0], dict):
        return str(body[0].get("message") or err), body[0].get("errorCode")
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"]), body.get("errorCode")
    return str(err), None


class RestDataService:
    """Data service backed by the REST client. Connects lazily on first use."""

    def __init__(self, api: Optional[SalesforceAPI] = None, *, tooling: bool = False) -> None:
        self.api = api or SalesforceAPI(SFConfig.from_env(), tooling=tooling)
        if tooling:
            self.api.tooling = True
        self.tooling = self.api.tooling
        self._connected = api is not None and api.access_token is not None

    def connect(self) -> None:
        try:
            self._ensure_connected()
        except requests.HTTPError as e:
            msg, _ = _http_error_message(e)
            raise SfQueryError(f"Failed to connect to Salesforce: {msg}") from e
        except requests.RequestException as e:
            raise SfQueryError(f"Failed to connect to Salesforce: {e}") from e

    def _ensure_connected(self) -> SalesforceAPI:
        if not self._connected:
            self.api.connect()
            self._connected = True
        return self.api

    def list_queryable_objects(self) -> List[str]:
        try:
            g = self._ensure_connected().describe_global()
        except requests.HTTPError as e:
            msg, code = _http_error_message(e)
            raise QueryExecutionError(msg, code) from e
        except requests.RequestException as e:
            raise QueryExecutionError(str(e)) from e
        return sorted(s["name"] for s in g.get("sobjects", []) if s.get("queryable"))

    def describe_object(self, object_name: str) -> SchemaObject:
        try:
            desc = self._ensure_connected().describe_object(object_name)
        except requests.HTTPError as e:
            msg, _ = _http_error_message(e)
            raise SchemaFetchError(object_name, msg) from e
        except requests.RequestException as e:
            raise SchemaFetchError(object_name, str(e)) from e
        return parse_describe(object_name, desc)

    def execute_query(self, soql: str) -> QueryResult:
        _logger.info("Executing SOQL: %s", soql)
        try:
            res = self._ensure_connected().query_all(soql)
        except requests.HTTPError as e:
            msg, code = _http_error_message(e)
            raise QueryExecutionError(msg, code) from e
        except requests.RequestException as e:
            raise QueryExecutionError(str(e)) from e
        records = res.get("records") or []
        return QueryResult(total_size=int(res.get("totalSize", len(records))), records=records)

    def fetch_single_record(self, object_name: str, record_id: str) -> Dict[str, Any]:
        try:
            return self._ensure_connected().get_record(object_name, record_id)
        except requests.HTTPError as e:
            msg, code = _http_error_message(e)
            raise QueryExecutionError(f"Failed to fetch record: {msg}", code) from e
        except requests.RequestException as e:
            raise QueryExecutionError(f"Failed to fetch record: {e}") from e

    def record_url(self, record_id: str) -> Optional[str]:
        return self._ensure_connected().record_url(record_id)
