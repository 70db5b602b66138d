"""Streamlit entry point: `streamlit run app.py` (normally via `sfquery builder`)."""

from __future__ import annotations

import streamlit as st

from sfquery.builder_app.state import drain_messages, get_session, reset_session
from sfquery.builder_app.ui.fields_panel import (
    render_child_relationships_panel,
    render_fields_panel,
    render_object_picker,
)
from sfquery.builder_app.ui.results_panel import render_query_editor, render_results_panel
from sfquery.env_loader import load_env_files
from sfquery.logging_config import configure_logging


def _render_messages(target) -> None:
    for msg in drain_messages():
        getattr(target, msg.level, target.info)(msg.text)


def main() -> None:
    st.set_page_config(page_title="SOQL Builder", layout="wide")
    load_env_files(quiet=True)
    configure_logging(None)

    try:
        session = get_session()
    except Exception as exc:
        st.error(f"Could not start the query builder: {exc}")
        st.stop()

    st.title("Tooling Query" if session.tooling else "SOQL Builder")
    banner = st.container()

    root = render_object_picker(session)
    if st.sidebar.button("Reset session", key="_sfquery_reset"):
        reset_session()
        st.rerun()

    tab_builder, tab_results = st.tabs(["Builder", "Results"])
    with tab_builder:
        if root:
            st.markdown(f"### {root}")
        col_fields, col_rels = st.columns(2, gap="large")
        with col_fields:
            st.markdown("#### Fields")
            render_fields_panel(session)
        with col_rels:
            st.markdown("#### Child relationships")
            render_child_relationships_panel(session)
        render_query_editor(session)

    with tab_results:
        render_results_panel(session)

    # Notifications raised anywhere in this run show up at the top.
    _render_messages(banner)


if __name__ == "__main__":
    main()
