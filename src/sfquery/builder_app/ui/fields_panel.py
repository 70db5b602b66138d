from __future__ import annotations

from typing import Optional

import streamlit as st

from sfquery.session import QueryBuilderSession
from sfquery.tree import FieldNode

_INDENT = "\u2003"


def render_object_picker(session: QueryBuilderSession) -> Optional[str]:
    """Sidebar: filterable object list. Selecting a new object reloads the tree."""
    st.sidebar.header("Objects")
    if not session.objects:
        with st.sidebar:
            with st.spinner("Loading objects..."):
                try:
                    session.load_objects()
                except Exception as exc:
                    st.error(f"Error fetching objects: {exc}")
                    return None

    term = st.sidebar.text_input("Search objects", value="", key="_sfquery_object_filter")
    options = session.filter_objects(term)
    if not options:
        st.sidebar.info("No objects match.")
        return session.root

    current = session.root if session.root in options else None
    picked = st.sidebar.selectbox(
        "Root object",
        options,
        index=options.index(current) if current else None,
        placeholder="Choose an object",
        key="_sfquery_root_pick",
    )
    if picked and picked != session.root:
        with st.spinner(f"Describing {picked}..."):
            session.select_root_object(picked)

    if session.root and st.sidebar.button("Reload object", key="_sfquery_reload"):
        with st.spinner(f"Reloading {session.root}..."):
            session.reload_root_object()
    return session.root


def _toggle_relationship(session: QueryBuilderSession, path: str) -> None:
    session.toggle_relationship(path)


def _render_field_row(session: QueryBuilderSession, node: FieldNode, key_prefix: str) -> None:
    col_exp, col_cb = st.columns([1, 12])
    with col_exp:
        if node.relationship_path is not None:
            st.button(
                "−" if node.expanded else "+",
                key=f"{key_prefix}_exp_{node.relationship_path}",
                disabled=not node.can_expand,
                help=f"{node.field.relationship_name} → {node.field.reference_to}",
                on_click=_toggle_relationship,
                args=(session, node.relationship_path),
            )
    with col_cb:
        key = f"{key_prefix}_f_{node.path}"
        # The selection set is the source of truth; re-selecting a root re-seeds it.
        st.session_state[key] = node.selected
        st.checkbox(
            _INDENT * node.depth + node.field.name,
            key=key,
            help=f"{node.field.label} ({node.field.type})",
            on_change=session.toggle_field,
            args=(node.path,),
        )


def render_fields_panel(session: QueryBuilderSession) -> None:
    """Field tree with checkboxes and +/− expanders for reference fields."""
    schema = session.tree.root_schema
    if schema is None:
        st.info("Select an object to see its fields.")
        return

    # Widget keys carry the root so a new object never inherits old checkbox state.
    key_prefix = f"_sfquery_{schema.name}"
    term = st.text_input("Search fields", value="", key=f"{key_prefix}_field_filter")
    with st.container(height=520):
        for node in session.tree.walk_fields("", term):
            _render_field_row(session, node, key_prefix)


def render_child_relationships_panel(session: QueryBuilderSession) -> None:
    """Child relationships; expanding one lists its fields for a sub-select."""
    schema = session.tree.root_schema
    if schema is None:
        return

    key_prefix = f"_sfquery_{schema.name}"
    term = st.text_input("Search relationships", value="", key=f"{key_prefix}_rel_filter")
    rels = session.tree.child_relationships(term)
    if not rels:
        st.caption("No child relationships")
        return

    with st.container(height=520):
        for cr, expanded in rels:
            col_exp, col_label = st.columns([1, 12])
            with col_exp:
                st.button(
                    "−" if expanded else "+",
                    key=f"{key_prefix}_rel_{cr.relationship_name}",
                    help=cr.child_object,
                    on_click=_toggle_relationship,
                    args=(session, cr.relationship_name),
                )
            with col_label:
                st.markdown(f"**{cr.relationship_name}** `{cr.child_object}`")
            if expanded:
                for node in session.tree.walk_fields(cr.relationship_name, "", depth=1):
                    _render_field_row(session, node, key_prefix)
