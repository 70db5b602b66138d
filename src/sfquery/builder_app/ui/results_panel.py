from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List

import pandas as pd
import streamlit as st

from sfquery.export import (
    CSV,
    DEFAULT_FILENAMES,
    TSV,
    ClipboardSink,
    FileSink,
    subquery_filename,
    subquery_json,
)
from sfquery.session import QueryBuilderSession
from sfquery.table import PAGE_SIZES, is_subquery_column, render_rows

from ..state import notify


def render_query_editor(session: QueryBuilderSession) -> None:
    """Editable SOQL text. Field changes rewrite it; manual edits stick until then."""
    st.subheader("Query")
    # No key: a new synthesized text re-creates the widget with that text.
    text = st.text_area("SOQL", value=session.query_text, height=110, label_visibility="collapsed")
    if text != session.query_text:
        session.edit_query_text(text)

    col_run, col_copy, _ = st.columns([1, 1, 6])
    with col_run:
        if st.button("Run", type="primary", disabled=not text.strip(), key="_sfquery_run"):
            with st.spinner("Executing query..."):
                session.run_query(text)
    with col_copy:
        if st.button("Copy", disabled=not text.strip(), key="_sfquery_copy_query"):
            if session.copy_query(ClipboardSink()):
                notify("success", "Query copied to clipboard")


def _render_pagination(session: QueryBuilderSession) -> None:
    p = session.pagination
    col_info, col_size, col_prev, col_jump, col_next = st.columns([4, 1, 1, 1, 1])
    with col_info:
        st.caption(p.showing)
    with col_size:
        size = st.selectbox(
            "Page size",
            PAGE_SIZES,
            index=PAGE_SIZES.index(p.page_size),
            key="_sfquery_page_size",
            label_visibility="collapsed",
        )
        if size != p.page_size:
            session.change_page_size(size)
    with col_prev:
        st.button("Prev", disabled=not p.has_prev, on_click=p.prev, key="_sfquery_prev")
    with col_jump:
        page = st.number_input(
            "Page",
            min_value=1,
            max_value=max(p.total_pages, 1),
            value=p.page,
            step=1,
            key=f"_sfquery_jump_{p.page}_{p.page_size}",
            label_visibility="collapsed",
        )
        if int(page) != p.page:
            session.change_page(int(page))
            st.rerun()
    with col_next:
        st.button("Next", disabled=not p.has_next, on_click=p.next, key="_sfquery_next")


def _render_subquery_viewer(
    session: QueryBuilderSession, page_records: List[Dict[str, Any]], columns: List[str]
) -> None:
    sub_cols = [c for c in columns if is_subquery_column(c)]
    if not sub_cols:
        return

    with st.expander("Subquery results", expanded=False):
        col_a, col_b = st.columns(2)
        with col_a:
            column = st.selectbox("Relationship", sub_cols, key="_sfquery_sub_col")
        with col_b:
            row = st.selectbox(
                "Row",
                range(len(page_records)),
                format_func=lambda i: str(page_records[i].get("Id") or f"row {i + 1}"),
                key="_sfquery_sub_row",
            )
        record = page_records[row]
        cell = session.subquery(record, column)
        if cell is None:
            st.info("No child records for this row.")
            return
        st.caption(f"{cell.total_size} records")
        st.json(cell.records, expanded=False)
        st.download_button(
            "JSON",
            data=subquery_json(cell),
            file_name=subquery_filename(cell, record),
            mime="application/json",
            key="_sfquery_sub_json",
        )


def _render_record_actions(
    session: QueryBuilderSession, page_records: List[Dict[str, Any]]
) -> None:
    ids = [r for r in page_records if r.get("Id")]
    if not ids:
        return

    with st.expander("Record details", expanded=False):
        idx = st.selectbox(
            "Record",
            range(len(ids)),
            format_func=lambda i: str(ids[i]["Id"]),
            key="_sfquery_detail_row",
        )
        record = ids[idx]
        col_view, col_open = st.columns(2)
        with col_view:
            if st.button("View full record", key="_sfquery_view_full"):
                with st.spinner(f"Fetching details for {record['Id']}..."):
                    try:
                        st.json(session.view_full_record(record))
                    except Exception as exc:
                        st.error(f"Error fetching details: {exc}")
        with col_open:
            try:
                url = session.record_url(str(record["Id"]))
            except Exception as exc:
                st.caption(f"Cannot build record URL: {exc}")
                url = None
            if url:
                st.link_button("Open in browser", url)


def _render_export(session: QueryBuilderSession) -> None:
    st.markdown("##### Export")
    col_csv, col_xls, col_copy_csv, col_copy_xls = st.columns(4)
    with col_csv:
        st.download_button(
            "Save CSV",
            data=session.export_text(CSV),
            file_name=DEFAULT_FILENAMES[CSV],
            mime="text/csv",
            key="_sfquery_dl_csv",
        )
    with col_xls:
        st.download_button(
            "Save Excel",
            data=session.export_text(TSV),
            file_name=DEFAULT_FILENAMES[TSV],
            mime="application/vnd.ms-excel",
            key="_sfquery_dl_xls",
        )
    with col_copy_csv:
        if st.button("Copy CSV", key="_sfquery_copy_csv") and session.export(CSV, ClipboardSink()):
            notify("success", "Copied to clipboard")
    with col_copy_xls:
        if st.button("Copy Excel", key="_sfquery_copy_xls") and session.export(
            TSV, ClipboardSink()
        ):
            notify("success", "Copied to clipboard")

    with st.form("_sfquery_save_form", clear_on_submit=False):
        folder = st.text_input("Save to folder", value=str(Path.cwd()))
        fmt = st.radio("Format", ["CSV", "Excel"], horizontal=True)
        if st.form_submit_button("Save"):
            delimiter = CSV if fmt == "CSV" else TSV
            sink = FileSink(Path(folder) / DEFAULT_FILENAMES[delimiter])
            target = session.export(delimiter, sink)
            if target:
                notify("success", f"Successfully saved: {target}")


def render_results_panel(session: QueryBuilderSession) -> None:
    st.subheader("Results")
    p = session.pagination
    if not p.count:
        st.info("No results found." if session.last_query else "Run a query to see results.")
        return

    _render_pagination(session)
    page_records = p.page_records
    columns = p.columns
    df = pd.DataFrame(render_rows(page_records, columns), columns=columns)
    st.dataframe(df, hide_index=True, width="stretch")

    _render_subquery_viewer(session, page_records, columns)
    _render_record_actions(session, page_records)
    _render_export(session)
