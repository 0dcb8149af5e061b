"""
External item API client.

API:   ``{base_url}{items_endpoint}`` (default ``/items``), a single GET
       endpoint returning either a bare JSON array of items or
       ``{"items": [...], ...}``.

Query parameters (all optional, ``None``/empty values are not sent):
  category, coreStats, itemType, learnable, minLevel, page, per_page,
  primaryStats, profession, stats, subCategory, subType

Credential setup (.env, gitignored):
  ITEM_SYNC_API_KEY=your_key_here     # sent as ``Authorization: Bearer ...``

Failure policy:
  Any non-2xx response, transport error, timeout or non-JSON body raises
  ``UpstreamFetchError``. Nothing is retried; the caller decides.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, ClassVar, Optional

import httpx

from item_sync.errors import UpstreamFetchError
from item_sync.models.query import FetchParams

logger = logging.getLogger(__name__)


def build_query_params(params: FetchParams | Mapping[str, Any] | None) -> dict[str, str]:
    """Render request parameters as the strings the API expects.

    Booleans become ``"true"``/``"false"``; ``None`` and ``""`` are dropped.
    """
    if params is None:
        raw: dict[str, Any] = {}
    elif isinstance(params, FetchParams):
        raw = params.to_api_params()
    else:
        raw = dict(params)

    query: dict[str, str] = {}
    for key, value in raw.items():
        if value is None or value == "":
            continue
        if isinstance(value, bool):
            query[key] = "true" if value else "false"
        else:
            query[key] = str(value)
    return query


class ItemsApiClient:
    """Thin synchronous client for the external item API.

    Usage::

        client = ItemsApiClient(base_url="https://api.example.com",
                                api_key=api_key_from_env())
        payload = client.fetch_items(FetchParams(category="combat", page=1))

    Args:
        base_url: Scheme + host (+ optional path prefix) of the API.
        items_endpoint: Path of the list endpoint.
        api_key: Optional bearer token.
        timeout: Per-request timeout in seconds.
        user_agent: ``User-Agent`` header value.
        transport: Optional httpx transport (``httpx.MockTransport`` in tests).
    """

    DEFAULT_ENDPOINT: ClassVar[str] = "/items"

    def __init__(
        self,
        base_url: str,
        items_endpoint: str = DEFAULT_ENDPOINT,
        api_key: Optional[str] = None,
        timeout: float = 30.0,
        user_agent: str = "item-sync/0.1",
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.items_endpoint = items_endpoint if items_endpoint.startswith("/") else f"/{items_endpoint}"
        self.api_key = api_key
        self.timeout = timeout
        self.user_agent = user_agent
        self._transport = transport

    @classmethod
    def from_config(
        cls,
        api_config: Any,
        api_key: Optional[str] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> "ItemsApiClient":
        """Build a client from an ``ApiConfig`` section."""
        return cls(
            base_url=api_config.base_url,
            items_endpoint=api_config.items_endpoint,
            api_key=api_key,
            timeout=api_config.timeout_seconds,
            user_agent=api_config.user_agent,
            transport=transport,
        )

    @property
    def endpoint(self) -> str:
        """Endpoint path used as the response-cache namespace."""
        return self.items_endpoint

    def fetch_items(self, params: FetchParams | Mapping[str, Any] | None = None) -> Any:
        """GET the items endpoint and return the decoded JSON body.

        Raises:
            UpstreamFetchError: Non-2xx status, transport failure, timeout, or
                a body that is not valid JSON.
        """
        query = build_query_params(params)
        url = f"{self.base_url}{self.items_endpoint}"
        logger.info("Fetching %s params=%s", url, query)

        try:
            with httpx.Client(
                timeout=self.timeout,
                headers=self._headers(),
                transport=self._transport,
            ) as client:
                resp = client.get(url, params=query)
                resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            raise UpstreamFetchError(
                f"Item API returned HTTP {status} for {exc.request.url}",
                url=str(exc.request.url),
                status_code=status,
            ) from exc
        except httpx.HTTPError as exc:
            raise UpstreamFetchError(
                f"Item API request failed: {exc.__class__.__name__}: {exc}",
                url=url,
            ) from exc

        try:
            payload = resp.json()
        except ValueError as exc:
            raise UpstreamFetchError(
                f"Item API returned a non-JSON body for {resp.request.url}",
                url=str(resp.request.url),
                status_code=resp.status_code,
            ) from exc

        logger.debug("Fetched %s → HTTP %d", resp.request.url, resp.status_code)
        return payload

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json", "User-Agent": self.user_agent}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers
