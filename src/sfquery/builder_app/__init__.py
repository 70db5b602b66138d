"""Streamlit front end for the query builder (launched via `sfquery builder`)."""
