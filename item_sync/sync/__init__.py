"""
Sync core — normalize, cache, reconcile and query game items.

Submodules:
  normalizer    — raw API payload → canonical ``Item``; batch extraction
  cache         — time-bounded response cache keyed by (endpoint, params)
  fetcher       — cache-aware fetch of the external item list
  reconciler    — upsert batches by ``external_id``
  query_engine  — attribute / stat / profession queries with pagination
  catalog       — single-item CRUD

Every component takes its repository (and thus its connection) as a
constructor argument; nothing here opens a database on its own.
"""
