"""Async npm registry client.

Search requests are meant to be issued one at a time by the caller; packument
requests are bounded here by a semaphore so callers can fan out freely.
Transport errors, 429 and 5xx responses are retried with exponential backoff.
"""

from __future__ import annotations

import asyncio
from urllib.parse import quote

import httpx
import structlog
from pydantic import ValidationError

from plugin_registry.config import RegistrySettings
from plugin_registry.errors import ErrorCode, PluginRegistryError
from plugin_registry.models.npm import Packument, SearchResponse, SearchResult

log = structlog.get_logger()

_RETRY_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


def build_http_client(settings: RegistrySettings | None = None) -> httpx.AsyncClient:
    settings = settings or RegistrySettings()
    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.timeout_seconds),
        headers={"Accept": "application/json"},
        limits=httpx.Limits(max_connections=settings.concurrency + 5),
    )


def _package_path(name: str) -> str:
    # Scoped names keep the leading "@" but encode the slash: @scope%2Fname
    return quote(name, safe="@")


class NpmClient:
    def __init__(self, client: httpx.AsyncClient, settings: RegistrySettings | None = None) -> None:
        self._client = client
        self._settings = settings or RegistrySettings()
        self._base_url = self._settings.url.rstrip("/")
        self._semaphore = asyncio.Semaphore(self._settings.concurrency)

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    async def search_by_keyword(self, keyword: str) -> list[SearchResult]:
        return await self._search(f"keywords:{keyword}")

    async def search_by_scope(self, scope: str) -> list[SearchResult]:
        results = await self._search(scope)
        return [r for r in results if r.package.name.startswith(scope)]

    async def _search(self, text: str) -> list[SearchResult]:
        size = self._settings.search_page_size
        limit = self._settings.max_search_results
        results: list[SearchResult] = []
        offset = 0

        while offset < limit:
            response = await self._get(
                f"{self._base_url}/-/v1/search",
                params={"text": text, "size": size, "from": offset},
            )
            if not response.is_success:
                raise PluginRegistryError(
                    code=ErrorCode.REGISTRY_UNAVAILABLE,
                    message=f"Search for {text!r} failed with HTTP {response.status_code}",
                    recoverable=True,
                )
            try:
                page = SearchResponse.model_validate(response.json())
            except (ValueError, ValidationError) as exc:
                raise PluginRegistryError(
                    code=ErrorCode.REGISTRY_RESPONSE_INVALID,
                    message=f"Search for {text!r} returned an unexpected body: {exc}",
                ) from exc

            results.extend(page.objects)
            offset += len(page.objects)
            if not page.objects or offset >= page.total:
                break

        log.debug("registry_search_complete", text=text, count=len(results))
        return results[:limit]

    # ------------------------------------------------------------------
    # Package documents
    # ------------------------------------------------------------------

    async def get_package(self, name: str) -> Packument | None:
        """Fetch a packument. ``None`` when the package does not exist."""
        async with self._semaphore:
            response = await self._get(f"{self._base_url}/{_package_path(name)}")

        if response.status_code == 404:
            return None
        if not response.is_success:
            raise PluginRegistryError(
                code=ErrorCode.REGISTRY_UNAVAILABLE,
                message=f"Fetching {name} failed with HTTP {response.status_code}",
                recoverable=True,
            )
        try:
            return Packument.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise PluginRegistryError(
                code=ErrorCode.REGISTRY_RESPONSE_INVALID,
                message=f"Packument for {name} is malformed: {exc}",
            ) from exc

    async def get_latest_version(self, name: str) -> str | None:
        """Latest published version of ``name``, or ``None`` on any failure."""
        try:
            response = await self._get(f"{self._base_url}/{_package_path(name)}/latest")
            if not response.is_success:
                log.warning(
                    "latest_version_lookup_failed", package=name, status_code=response.status_code
                )
                return None
            version = response.json().get("version")
        except (PluginRegistryError, ValueError, AttributeError) as exc:
            log.warning("latest_version_lookup_failed", package=name, error=str(exc))
            return None
        return version if isinstance(version, str) and version else None

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _get(self, url: str, params: dict[str, str | int] | None = None) -> httpx.Response:
        """GET with retries. Returns the last response, or raises if none arrived."""
        attempts = self._settings.max_retries + 1
        last_error: Exception | None = None

        for attempt in range(attempts):
            try:
                response = await self._client.get(url, params=params)
            except httpx.HTTPError as exc:
                last_error = exc
                log.warning("registry_request_error", url=url, attempt=attempt + 1, error=str(exc))
            else:
                if response.status_code not in _RETRY_STATUS_CODES or attempt == attempts - 1:
                    return response
                log.warning(
                    "registry_request_retry",
                    url=url,
                    attempt=attempt + 1,
                    status_code=response.status_code,
                )
                retry_after = _retry_after_seconds(response)
                if retry_after is not None:
                    await asyncio.sleep(retry_after)
                    continue

            if attempt < attempts - 1:
                await asyncio.sleep(self._settings.retry_backoff_seconds * 2**attempt)

        raise PluginRegistryError(
            code=ErrorCode.REGISTRY_UNAVAILABLE,
            message=f"GET {url} failed after {attempts} attempts: {last_error}",
            recoverable=True,
        )


def _retry_after_seconds(response: httpx.Response) -> float | None:
    value = response.headers.get("retry-after")
    if value is None:
        return None
    try:
        return max(float(value), 0.0)
    except ValueError:
        return None
