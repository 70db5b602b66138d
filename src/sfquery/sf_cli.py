"""Data service that drives the Salesforce ``sf`` command-line tool.

Every call runs ``sf ... --json`` and reads the JSON envelope
(``{"status": 0, "result": ...}``). Auth is whatever org the CLI targets.
"""

from __future__ import annotations

import json
import logging
import shutil
import subprocess
from typing import Any, Dict, List, Optional, Sequence

from .exceptions import QueryExecutionError, SchemaFetchError, SfQueryError
from .schema import SchemaObject, parse_describe
from .service import QueryResult

_logger = logging.getLogger(__name__)


class SfCliError(SfQueryError):
    """The ``sf`` executable failed or returned a non-zero status."""


class SfCliDataService:
    def __init__(
        self,
        *,
        target_org: Optional[str] = None,
        tooling: bool = False,
        executable: str = "sf",
        timeout: float = 300.0,
    ) -> None:
        self.target_org = target_org
        self.tooling = tooling
        self.executable = executable
        self.timeout = timeout
        self._org_display: Optional[Dict[str, Any]] = None

    # --------------------------- Plumbing -----------------------------

    def _run(self, args: Sequence[str], *, use_tooling: bool = False) -> Any:
        cmd = [self.executable, *args, "--json"]
        if use_tooling and self.tooling:
            cmd.append("--use-tooling-api")
        if self.target_org:
            cmd += ["--target-org", self.target_org]

        if shutil.which(self.executable) is None:
            raise SfCliError(f"'{self.executable}' executable not found on PATH")

        _logger.debug("Running: %s", " ".join(cmd))
        try:
            proc = subprocess.run(
                cmd, capture_output=True, text=True, timeout=self.timeout, check=False
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            raise SfCliError(f"Failed to run {cmd[0]}: {e}") from e

        try:
            payload = json.loads(proc.stdout or "{}")
        except json.JSONDecodeError as e:
            detail = proc.stderr.strip()
            raise SfCliError(f"Unparseable output from {' '.join(args)}: {detail}") from e

        if proc.returncode != 0 or payload.get("status", 0) != 0:
            msg = payload.get("message") or proc.stderr.strip() or "command failed"
            raise SfCliError(msg)
        return payload.get("result")

    # --------------------------- DataService --------------------------

    def list_queryable_objects(self) -> List[str]:
        if self.tooling:
            # No tooling sobject list in the CLI; metadata type names stand in for it.
            result = self._run(["org", "list", "metadata-types"]) or {}
            types: set[str] = set()
            for obj in result.get("metadataObjects", []):
                if obj.get("xmlName"):
                    types.add(obj["xmlName"])
                    types.update(obj.get("childXmlNames") or [])
            return sorted(types)

        result = self._run(["sobject", "list", "--sobject", "all"])
        return sorted(result or [])

    def describe_object(self, object_name: str) -> SchemaObject:
        try:
            desc = self._run(["sobject", "describe", "--sobject", object_name], use_tooling=True)
        except SfCliError as e:
            raise SchemaFetchError(object_name, str(e)) from e
        return parse_describe(object_name, desc or {})

    def execute_query(self, soql: str) -> QueryResult:
        _logger.info("Executing SOQL: %s", soql)
        try:
            result = self._run(["data", "query", "--query", soql], use_tooling=True) or {}
        except SfCliError as e:
            raise QueryExecutionError(str(e)) from e
        records = result.get("records") or []
        return QueryResult(total_size=int(result.get("totalSize", len(records))), records=records)

    def fetch_single_record(self, object_name: str, record_id: str) -> Dict[str, Any]:
        try:
            return self._run(
                ["data", "get", "record", "--sobject", object_name, "--record-id", record_id],
                use_tooling=True,
            )
        except SfCliError as e:
            raise QueryExecutionError(f"Failed to fetch record: {e}") from e

    def record_url(self, record_id: str) -> Optional[str]:
        if self._org_display is None:
            self._org_display = self._run(["org", "display"]) or {}
        instance = (self._org_display.get("instanceUrl") or "").rstrip("/")
        return f"{instance}/{record_id}" if instance else None
