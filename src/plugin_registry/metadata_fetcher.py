"""Extended metadata fetcher.

Packages may point (via the ``vite-plugin-registry`` field) at a JSON
document hosted anywhere. That document is untrusted, so fetching is
https-only, time-bounded, concurrency-bounded and structurally validated.
Every failure degrades to ``None`` with a warning; nothing raises past
:meth:`MetadataFetcher.fetch`.

The cache lives for the fetcher's lifetime and never expires. Two callers
racing on the same uncached URL may both fetch it; the last write wins and
both still receive a correct result.
"""

from __future__ import annotations

import asyncio
import json
from typing import TYPE_CHECKING, Any, TypeGuard

import httpx
import structlog

from plugin_registry.config import FetcherSettings
from plugin_registry.models.plugin import TOOLS

if TYPE_CHECKING:
    from collections.abc import Mapping

log = structlog.get_logger()

SUPPORTED_SCHEMA_VERSION = "1.0"


def is_valid_metadata(data: Any) -> TypeGuard[dict[str, Any]]:
    """Structural check of an extended metadata document.

    Unknown fields are ignored. Any violation rejects the whole document.
    """
    if not isinstance(data, dict):
        return False
    if data.get("schemaVersion") != SUPPORTED_SCHEMA_VERSION:
        return False

    if "compatibility" not in data:
        return True
    compatibility = data["compatibility"]
    if not isinstance(compatibility, dict):
        return False

    for tool in TOOLS:
        if tool not in compatibility:
            continue
        if not _is_valid_tool_entry(compatibility[tool]):
            return False
    return True


def _is_valid_tool_entry(entry: Any) -> bool:
    if not isinstance(entry, dict):
        return False
    if not isinstance(entry.get("versions"), str):
        return False
    if "incompatibilities" not in entry:
        return True
    incompatibilities = entry["incompatibilities"]
    if not isinstance(incompatibilities, list):
        return False
    return all(
        isinstance(item, dict) and isinstance(item.get("reason"), str)
        for item in incompatibilities
    )


class MetadataFetcher:
    """Fetches and validates extended metadata documents, at most N at a time."""

    def __init__(
        self, client: httpx.AsyncClient, settings: FetcherSettings | None = None
    ) -> None:
        self._client = client
        self._settings = settings or FetcherSettings()
        self._semaphore = asyncio.Semaphore(self._settings.concurrency)
        self._cache: dict[str, dict[str, Any] | None] = {}

    @property
    def headers(self) -> Mapping[str, str]:
        return {"Accept": "application/json", "User-Agent": self._settings.user_agent}

    async def fetch(self, url: str) -> dict[str, Any] | None:
        if url in self._cache:
            return self._cache[url]

        async with self._semaphore:
            result = await self._fetch_uncached(url)

        self._cache[url] = result
        return result

    def clear_cache(self) -> None:
        self._cache.clear()

    async def _fetch_uncached(self, url: str) -> dict[str, Any] | None:
        try:
            scheme = httpx.URL(url).scheme
        except httpx.InvalidURL:
            log.warning("metadata_url_invalid", url=url)
            return None
        if scheme != "https":
            log.warning("metadata_url_not_https", url=url)
            return None

        try:
            response = await asyncio.wait_for(
                self._client.get(url, headers=self.headers, follow_redirects=True),
                timeout=self._settings.timeout_seconds,
            )
        except (TimeoutError, httpx.TimeoutException):
            log.warning(
                "metadata_fetch_timeout", url=url, timeout_seconds=self._settings.timeout_seconds
            )
            return None
        except httpx.HTTPError as exc:
            log.warning("metadata_fetch_error", url=url, error=str(exc))
            return None

        if response.url.scheme != "https":
            log.warning("metadata_redirect_not_https", url=url, final_url=str(response.url))
            return None

        if not response.is_success:
            log.warning("metadata_fetch_failed", url=url, status_code=response.status_code)
            return None

        try:
            data = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            log.warning("metadata_not_json", url=url)
            return None

        if not is_valid_metadata(data):
            log.warning("metadata_invalid", url=url)
            return None

        return data
