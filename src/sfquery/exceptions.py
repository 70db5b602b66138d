from __future__ import annotations

from typing import Optional


class SfQueryError(RuntimeError):
    """Base class for errors surfaced to the user by the query builder."""


class MissingCredentialsError(SfQueryError):
    """Raised when the required Salesforce env vars are not present."""

    def __init__(self, missing: list[str]):
        self.missing = missing
        super().__init__("Missing required environment variables: " + ", ".join(missing))


class SchemaFetchError(SfQueryError):
    """A describe call failed or returned no fields."""

    def __init__(self, object_name: str, reason: str, path: Optional[str] = None):
        self.object_name = object_name
        self.path = path
        self.reason = reason
        where = f" (expanding {path})" if path else ""
        super().__init__(f"Failed to describe {object_name}{where}: {reason}")


class QueryExecutionError(SfQueryError):
    """The remote service rejected a query. The message is the service's own."""

    def __init__(self, message: str, error_code: Optional[str] = None):
        self.error_code = error_code
        super().__init__(message)


class ExportIOError(SfQueryError):
    """Writing an export to a file or the clipboard failed."""

    def __init__(self, target: str, reason: str):
        self.target = target
        self.reason = reason
        super().__init__(f"Export to {target} failed: {reason}")
