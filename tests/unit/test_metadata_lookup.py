"""Unit tests for attribute metadata lookups and the attribute cache."""

from __future__ import annotations

import asyncio
from unittest.mock import MagicMock, patch

import pytest
import requests
from conftest import ANNOTATION_ID, ANNOTATION_TYPE, LINEAGE_ID

from search_request.exceptions import MetadataConnectionError, MetadataLookupError
from search_request.metadata.lookup import (
    AttributeCache,
    RegistryAttributeLookup,
    RemoteAttributeLookup,
)
from search_request.metadata.registry import AttributeMetadata


def _make_response(
    json_data: list | dict,
    status_code: int = 200,
    headers: dict | None = None,
) -> MagicMock:
    """Create a mock requests.Response."""
    resp = MagicMock(spec=requests.Response)
    resp.status_code = status_code
    resp.json.return_value = json_data
    resp.headers = headers or {}
    resp.raise_for_status = MagicMock()
    if status_code >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(response=resp)
    return resp


ATTRIBUTE_DATA = [
    {
        "attribute": LINEAGE_ID,
        "attrObj": {"nestedAttribute": {"attribute": ANNOTATION_TYPE}},
        "facetFilter": None,
    },
    {
        "attribute": ANNOTATION_ID,
        "attrObj": {},
        "facetFilter": {
            "type": "terminal",
            "service": "text",
            "parameters": {
                "attribute": ANNOTATION_TYPE,
                "operator": "exact_match",
                "value": "CATH",
            },
        },
    },
]


class TestRegistryAttributeLookup:
    def test_known_and_unknown(self, registry) -> None:
        lookup = RegistryAttributeLookup(registry)
        result = lookup([LINEAGE_ID, "unknown.attribute"], "structure")

        assert result[LINEAGE_ID].nested_attribute == ANNOTATION_TYPE
        assert result["unknown.attribute"] == AttributeMetadata()


class TestRemoteAttributeLookup:
    def test_url(self) -> None:
        client = RemoteAttributeLookup("https://www.rcsb.org/")
        assert client.url == "https://www.rcsb.org/search/attribute-data"

    def test_fetch(self) -> None:
        client = RemoteAttributeLookup("https://www.rcsb.org")
        resp = _make_response(ATTRIBUTE_DATA)

        with patch.object(client._session, "post", return_value=resp) as mock_post:
            result = client.fetch([LINEAGE_ID, ANNOTATION_ID], "structure")

        mock_post.assert_called_once()
        assert mock_post.call_args.kwargs["json"] == {
            "attributes": [LINEAGE_ID, ANNOTATION_ID],
            "schema": "structure",
        }
        assert result[LINEAGE_ID].nested_attribute == ANNOTATION_TYPE
        assert result[LINEAGE_ID].facet_filter is None
        assert result[ANNOTATION_ID].facet_filter_attribute == ANNOTATION_TYPE

    def test_call_is_awaitable(self) -> None:
        client = RemoteAttributeLookup("https://www.rcsb.org")
        resp = _make_response(ATTRIBUTE_DATA[:1])

        with patch.object(client._session, "post", return_value=resp):
            result = asyncio.run(client([LINEAGE_ID], "structure"))

        assert list(result) == [LINEAGE_ID]

    @patch("search_request.metadata.lookup.time.sleep")
    def test_retries_rate_limit(self, mock_sleep: MagicMock) -> None:
        client = RemoteAttributeLookup("https://www.rcsb.org")
        limited = _make_response([], status_code=429, headers={"Retry-After": "3"})
        ok = _make_response(ATTRIBUTE_DATA[:1])

        with patch.object(client._session, "post", side_effect=[limited, ok]):
            result = client.fetch([LINEAGE_ID], "structure")

        assert LINEAGE_ID in result
        mock_sleep.assert_called_once_with(3.0)

    @patch("search_request.metadata.lookup.time.sleep")
    def test_rate_limit_exhausted(self, mock_sleep: MagicMock) -> None:
        client = RemoteAttributeLookup("https://www.rcsb.org", max_retries=2)
        limited = _make_response([], status_code=503)

        with patch.object(client._session, "post", return_value=limited):
            with pytest.raises(MetadataLookupError, match="Rate limited"):
                client.fetch([LINEAGE_ID], "structure")

        assert mock_sleep.call_count == 1

    @patch("search_request.metadata.lookup.time.sleep")
    def test_connection_error(self, mock_sleep: MagicMock) -> None:
        client = RemoteAttributeLookup("https://www.rcsb.org", max_retries=3)

        with patch.object(
            client._session, "post", side_effect=requests.ConnectionError("refused")
        ) as mock_post:
            with pytest.raises(MetadataConnectionError):
                client.fetch([LINEAGE_ID], "structure")

        assert mock_post.call_count == 3
        assert [c.args[0] for c in mock_sleep.call_args_list] == [2.0, 4.0]

    def test_http_error(self) -> None:
        client = RemoteAttributeLookup("https://www.rcsb.org")
        resp = _make_response({}, status_code=500)

        with patch.object(client._session, "post", return_value=resp):
            with pytest.raises(MetadataLookupError, match="HTTP 500"):
                client.fetch([LINEAGE_ID], "structure")

    def test_response_not_a_list(self) -> None:
        client = RemoteAttributeLookup("https://www.rcsb.org")
        resp = _make_response({"attribute": LINEAGE_ID})

        with patch.object(client._session, "post", return_value=resp):
            with pytest.raises(MetadataLookupError):
                client.fetch([LINEAGE_ID], "structure")

    def test_malformed_item(self) -> None:
        client = RemoteAttributeLookup("https://www.rcsb.org")
        resp = _make_response([{"attrObj": {}}])

        with patch.object(client._session, "post", return_value=resp):
            with pytest.raises(MetadataLookupError, match="Malformed"):
                client.fetch([LINEAGE_ID], "structure")

    def test_invalid_json(self) -> None:
        client = RemoteAttributeLookup("https://www.rcsb.org")
        resp = _make_response([])
        resp.json.side_effect = ValueError("Expecting value")

        with patch.object(client._session, "post", return_value=resp):
            with pytest.raises(MetadataLookupError, match="not JSON"):
                client.fetch([LINEAGE_ID], "structure")


class TestAttributeCache:
    def test_get_put(self) -> None:
        cache = AttributeCache()
        metadata = AttributeMetadata(nested_attribute="b")
        cache.put("structure", "a", metadata)

        assert cache.get("structure", "a") is metadata
        assert cache.get("chemical", "a") is None
        assert ("structure", "a") in cache
        assert len(cache) == 1

    def test_missing_distinct_in_order(self) -> None:
        cache = AttributeCache()
        cache.put("structure", "b", AttributeMetadata())

        assert cache.missing("structure", ["c", "b", "a", "c"]) == ["c", "a"]
        assert cache.missing("chemical", ["b"]) == ["b"]

    def test_lru_eviction(self) -> None:
        cache = AttributeCache(max_size=2)
        cache.put("structure", "a", AttributeMetadata())
        cache.put("structure", "b", AttributeMetadata())
        cache.get("structure", "a")
        cache.put("structure", "c", AttributeMetadata())

        assert ("structure", "a") in cache
        assert ("structure", "b") not in cache
        assert ("structure", "c") in cache

    def test_zero_size_is_unbounded(self) -> None:
        cache = AttributeCache(max_size=0)
        for name in "abcdef":
            cache.put("structure", name, AttributeMetadata())
        assert len(cache) == 6

    def test_clear(self) -> None:
        cache = AttributeCache()
        cache.put("structure", "a", AttributeMetadata())
        cache.clear()
        assert len(cache) == 0
