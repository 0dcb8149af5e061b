"""
Ingestion layer — the external item API client.

Submodules:
  api_client  — httpx client for the item list endpoint, query-param rendering

Credential placement (.env, gitignored):
  ITEM_SYNC_API_KEY          — bearer token for the item API (optional)
  ITEM_SYNC_API_BASE_URL     — base URL override
"""
