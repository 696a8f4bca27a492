"""Brand feed ingestion.

This package reads the taxonomy and curated override feeds.
It pages and transforms terms, then persists brands into the store.
"""
