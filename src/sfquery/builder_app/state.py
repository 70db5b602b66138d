from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Optional

import streamlit as st

from sfquery.exceptions import ExportIOError, QueryExecutionError, SchemaFetchError
from sfquery.schema import SchemaObject
from sfquery.session import QueryBuilderSession, SessionListener

_SESSION_KEY = "_sfquery_session"
_MESSAGES_KEY = "_sfquery_messages"


@dataclass(frozen=True)
class Message:
    level: str  # "error" | "warning" | "success" | "info"
    text: str


def _messages() -> List[Message]:
    if _MESSAGES_KEY not in st.session_state:
        st.session_state[_MESSAGES_KEY] = []
    return st.session_state[_MESSAGES_KEY]


def notify(level: str, text: str) -> None:
    _messages().append(Message(level, text))


def drain_messages() -> List[Message]:
    out = list(_messages())
    st.session_state[_MESSAGES_KEY] = []
    return out


class StreamlitListener(SessionListener):
    """Queues session notifications for the next render pass."""

    def schema_ready(self, path: str, schema: SchemaObject) -> None:
        if not path:
            notify("info", f"{schema.name}: {len(schema.fields)} fields loaded")

    def schema_failed(self, path: str, error: SchemaFetchError) -> None:
        notify("error", str(error))

    def query_succeeded(self, records: list) -> None:
        notify("success", f"Query returned {len(records)} records")

    def query_failed(self, error: QueryExecutionError) -> None:
        notify("error", f"Query failed: {error}")

    def export_failed(self, error: ExportIOError) -> None:
        notify("error", str(error))


def get_session(
    factory: Optional[Callable[[SessionListener], QueryBuilderSession]] = None,
) -> QueryBuilderSession:
    """The one QueryBuilderSession for this browser session, created on first use."""
    if _SESSION_KEY not in st.session_state:
        listener = StreamlitListener()
        if factory is None:
            session = QueryBuilderSession.from_config(listener=listener)
        else:
            session = factory(listener)
        st.session_state[_SESSION_KEY] = session
    return st.session_state[_SESSION_KEY]


def reset_session() -> None:
    st.session_state.pop(_SESSION_KEY, None)
    st.session_state[_MESSAGES_KEY] = []
