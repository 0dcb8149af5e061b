"""Tests for the external item API client, using httpx.MockTransport."""

from __future__ import annotations

import httpx
import pytest

from item_sync.config import ApiConfig
from item_sync.errors import UpstreamFetchError
from item_sync.ingestion.api_client import ItemsApiClient, build_query_params
from item_sync.models.query import FetchParams


def _client(handler, **kwargs) -> ItemsApiClient:
    return ItemsApiClient(
        base_url="https://api.test",
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


class TestBuildQueryParams:
    def test_api_spelling_and_bools(self):
        query = build_query_params(FetchParams(item_type="weapon", learnable=False, page=2))
        assert query == {"itemType": "weapon", "learnable": "false", "page": "2"}

    def test_empty_values_dropped(self):
        assert build_query_params({"category": "", "stats": None, "page": 1}) == {"page": "1"}

    def test_none(self):
        assert build_query_params(None) == {}


class TestFetchItems:
    def test_returns_decoded_json_and_sends_params(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"items": [{"name": "A"}]})

        payload = _client(handler).fetch_items(FetchParams(category="combat", min_level=5))
        assert payload == {"items": [{"name": "A"}]}
        assert seen[0].url.path == "/items"
        assert seen[0].url.params["category"] == "combat"
        assert seen[0].url.params["minLevel"] == "5"

    def test_bearer_header_when_key_set(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.headers["Authorization"] == "Bearer s3cret"
            return httpx.Response(200, json=[])

        assert _client(handler, api_key="s3cret").fetch_items() == []

    def test_no_auth_header_without_key(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert "Authorization" not in request.headers
            return httpx.Response(200, json=[])

        _client(handler).fetch_items()

    @pytest.mark.parametrize("status", [400, 404, 500, 503])
    def test_non_2xx_raises_with_status(self, status):
        client = _client(lambda request: httpx.Response(status, text="nope"))
        with pytest.raises(UpstreamFetchError) as exc_info:
            client.fetch_items()
        assert exc_info.value.status_code == status
        assert str(status) in str(exc_info.value)

    def test_transport_error_raises_without_status(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(UpstreamFetchError) as exc_info:
            _client(handler).fetch_items()
        assert exc_info.value.status_code is None

    def test_non_json_body_raises(self):
        client = _client(lambda request: httpx.Response(200, text="<html>"))
        with pytest.raises(UpstreamFetchError, match="non-JSON"):
            client.fetch_items()


class TestFromConfig:
    def test_builds_from_api_config(self):
        cfg = ApiConfig(base_url="https://api.test/v1/", items_endpoint="catalog")
        client = ItemsApiClient.from_config(cfg)
        assert client.base_url == "https://api.test/v1"
        assert client.endpoint == "/catalog"
