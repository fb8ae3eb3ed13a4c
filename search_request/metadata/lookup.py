"""Attribute metadata lookups and the attribute metadata cache.

A lookup is any callable ``lookup(attributes, schema)`` returning a mapping
of attribute name to ``AttributeMetadata``, either directly or as an
awaitable. Two are provided:

- ``RegistryAttributeLookup`` answers from an in-process ``MetadataRegistry``.
- ``RemoteAttributeLookup`` asks the attribute data endpoint of a search
  site over HTTP.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import OrderedDict
from collections.abc import Awaitable, Callable, Iterable, Mapping
from typing import Any, Union

import requests

from search_request.exceptions import (
    MetadataConnectionError,
    MetadataLookupError,
    NodeShapeError,
)
from search_request.metadata.registry import AttributeMetadata, MetadataRegistry

logger = logging.getLogger(__name__)

_USER_AGENT = "search-request/0.3"
_REQUEST_TIMEOUT = 30
_MAX_RETRIES = 3
_BACKOFF_BASE = 2.0  # seconds

ATTRIBUTE_DATA_PATH = "/search/attribute-data"

LookupResult = Mapping[str, AttributeMetadata]
AttributeLookup = Callable[
    [list[str], str], Union[LookupResult, Awaitable[LookupResult]]
]


class RegistryAttributeLookup:
    """Answer lookups from an in-process metadata registry.

    Attributes the registry does not know are returned with empty metadata.
    """

    def __init__(self, registry: MetadataRegistry) -> None:
        self.registry = registry

    def __call__(self, attributes: list[str], schema: str) -> dict[str, AttributeMetadata]:
        logger.debug("Reading %d attribute(s) from the %s registry", len(attributes), schema)
        return {
            attribute: self.registry.get(schema, attribute) or AttributeMetadata()
            for attribute in attributes
        }


class RemoteAttributeLookup:
    """Fetch attribute metadata from a search site's attribute data endpoint.

    Posts ``{"attributes": [...], "schema": ...}`` and expects a list of
    ``{"attribute", "attrObj", "facetFilter"}`` items back.

    Args:
        base_url: Site root, e.g. ``https://www.rcsb.org``.
        timeout: Per-request timeout in seconds.
        max_retries: Attempts before giving up on connection errors and
            HTTP 429/503 responses.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = _REQUEST_TIMEOUT,
        max_retries: int = _MAX_RETRIES,
    ) -> None:
        self.url = base_url.rstrip("/") + ATTRIBUTE_DATA_PATH
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self._session = requests.Session()
        self._session.headers.update({"User-Agent": _USER_AGENT})

    def _request(self, payload: dict[str, Any]) -> requests.Response:
        """POST ``payload`` with retry and backoff logic.

        Raises:
            MetadataConnectionError: If the service cannot be reached.
            MetadataLookupError: If the service keeps rate limiting or
                answers with an error status.
        """
        for attempt in range(self.max_retries):
            try:
                resp = self._session.post(self.url, json=payload, timeout=self.timeout)
            except requests.RequestException as e:
                if attempt == self.max_retries - 1:
                    raise MetadataConnectionError(
                        f"Request to {self.url} failed after {self.max_retries} attempts: {e}"
                    ) from e
                wait = _BACKOFF_BASE * (2**attempt)
                logger.warning("Request failed, retrying in %.1fs: %s", wait, e)
                time.sleep(wait)
                continue

            if resp.status_code in (429, 503):
                if attempt == self.max_retries - 1:
                    raise MetadataLookupError(
                        f"Rate limited after {self.max_retries} retries "
                        f"(HTTP {resp.status_code}). Try again later."
                    )
                retry_after = resp.headers.get("Retry-After")
                if retry_after:
                    try:
                        wait = max(float(retry_after), _BACKOFF_BASE)
                    except ValueError:
                        wait = _BACKOFF_BASE * (2**attempt)
                else:
                    wait = _BACKOFF_BASE * (2**attempt)
                logger.warning(
                    "Rate limit detected (HTTP %d), waiting %.1fs...",
                    resp.status_code,
                    wait,
                )
                time.sleep(wait)
                continue

            try:
                resp.raise_for_status()
            except requests.HTTPError as e:
                raise MetadataLookupError(
                    f"Attribute data request failed: HTTP {resp.status_code}"
                ) from e
            return resp

        raise MetadataLookupError(f"Request to {self.url} failed unexpectedly")  # pragma: no cover

    def fetch(self, attributes: list[str], schema: str) -> dict[str, AttributeMetadata]:
        """Fetch metadata for ``attributes`` of ``schema``, blocking."""
        resp = self._request({"attributes": list(attributes), "schema": schema})
        try:
            items = resp.json()
        except ValueError as e:
            raise MetadataLookupError(f"Attribute data response is not JSON: {e}") from e

        if not isinstance(items, list):
            raise MetadataLookupError("Attribute data response must be a list")

        result: dict[str, AttributeMetadata] = {}
        for item in items:
            try:
                result[item["attribute"]] = AttributeMetadata.from_dict(item)
            except (KeyError, TypeError, NodeShapeError) as e:
                raise MetadataLookupError(f"Malformed attribute data item: {item!r}") from e
        return result

    async def __call__(self, attributes: list[str], schema: str) -> dict[str, AttributeMetadata]:
        return await asyncio.to_thread(self.fetch, attributes, schema)


class AttributeCache:
    """Resolved attribute metadata keyed by ``(schema, attribute)``.

    Unbounded by default, which suits a single client session. Give
    ``max_size`` for long-lived processes; the least recently used entry is
    then evicted first.
    """

    def __init__(self, max_size: int | None = None) -> None:
        self.max_size = max_size or None
        self._entries: OrderedDict[tuple[str, str], AttributeMetadata] = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: tuple[str, str]) -> bool:
        return key in self._entries

    def get(self, schema: str, attribute: str) -> AttributeMetadata | None:
        key = (schema, attribute)
        if key not in self._entries:
            return None
        self._entries.move_to_end(key)
        return self._entries[key]

    def put(self, schema: str, attribute: str, metadata: AttributeMetadata) -> None:
        key = (schema, attribute)
        self._entries[key] = metadata
        self._entries.move_to_end(key)
        if self.max_size is not None:
            while len(self._entries) > self.max_size:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("Evicted %s/%s from attribute cache", *evicted)

    def missing(self, schema: str, attributes: Iterable[str]) -> list[str]:
        """Return the distinct ``attributes`` not cached yet, in first-seen order."""
        seen: dict[str, None] = {}
        for attribute in attributes:
            if (schema, attribute) not in self._entries:
                seen.setdefault(attribute, None)
        return list(seen)

    def clear(self) -> None:
        self._entries.clear()
