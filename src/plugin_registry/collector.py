"""Plugin collection: discovery, per-package transformation, persistence.

Discovery searches keywords and then scopes strictly one request at a time
to stay under the registry's search rate limit. Transformation then runs for
every discovered package concurrently; one package failing only drops that
package. Output order is not meaningful until ``save_plugins`` sorts it.
"""

from __future__ import annotations

import asyncio
import json
import sys
import time
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol, TextIO

import structlog

from plugin_registry.compatibility import (
    ToolEntry,
    derive_from_peer_dependencies,
    from_extended_metadata,
    merge_compatibility,
    validate_compatible_packages,
)
from plugin_registry.config import CollectorSettings
from plugin_registry.models.plugin import PluginLinks, RegistryPlugin
from plugin_registry.urls import extract_repository_url, validate_url

if TYPE_CHECKING:
    from collections.abc import Sequence

    from plugin_registry.metadata_fetcher import MetadataFetcher
    from plugin_registry.models.npm import Packument, SearchResult

log = structlog.get_logger()

PLUGINS_FILE = "all.json"


class RegistryClient(Protocol):
    async def search_by_keyword(self, keyword: str) -> list[SearchResult]: ...

    async def search_by_scope(self, scope: str) -> list[SearchResult]: ...

    async def get_package(self, name: str) -> Packument | None: ...


class ProgressReporter:
    """Single overwritten status line; silent when the stream is not a TTY."""

    def __init__(self, total: int, stream: TextIO | None = None) -> None:
        self.total = total
        self.completed = 0
        self._stream = stream or sys.stdout
        self._interactive = self._stream.isatty()
        self._started = time.monotonic()

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self._started

    def advance(self) -> None:
        self.completed += 1
        if not self._interactive:
            return
        pct = round(self.completed / self.total * 100) if self.total else 100
        self._stream.write(
            f"\r  Progress: {self.completed}/{self.total} ({pct}%) - {self.elapsed:.1f}s"
        )
        self._stream.flush()

    def finish(self) -> None:
        if not self._interactive:
            return
        self._stream.write("\r" + " " * 60 + "\r")
        self._stream.flush()


# ----------------------------------------------------------------------
# Discovery
# ----------------------------------------------------------------------


async def discover_packages(
    client: RegistryClient, settings: CollectorSettings | None = None
) -> list[SearchResult]:
    """Search all keywords, then all scopes; first sighting of a name wins."""
    settings = settings or CollectorSettings()
    seen: set[str] = set()
    discovered: list[SearchResult] = []

    def _add(results: Sequence[SearchResult]) -> None:
        for result in results:
            if result.package.name in seen:
                continue
            seen.add(result.package.name)
            discovered.append(result)

    for keyword in settings.keywords:
        log.info("searching_keyword", keyword=keyword)
        _add(await client.search_by_keyword(keyword))

    for scope in settings.scopes:
        log.info("searching_scope", scope=scope)
        _add(await client.search_by_scope(scope))

    log.info("discovery_complete", unique_packages=len(discovered))
    return discovered


# ----------------------------------------------------------------------
# Transformation
# ----------------------------------------------------------------------


def transform_to_registry_plugin(
    result: SearchResult,
    packument: Packument,
    compatible_packages: dict[str, ToolEntry] | None = None,
    extended_metadata: dict[str, Any] | None = None,
) -> RegistryPlugin:
    package = result.package
    latest = packument.latest
    version_data = packument.latest_version

    compatibility = derive_from_peer_dependencies(
        version_data.peer_dependencies if version_data else None
    )
    compatibility = merge_compatibility(compatibility, compatible_packages)
    compatibility = merge_compatibility(compatibility, from_extended_metadata(extended_metadata))

    npm_url = validate_url(package.links.npm)
    if npm_url is None:
        log.warning("npm_url_invalid", package=package.name, url=package.links.npm)

    repository = extract_repository_url(version_data.repository_url if version_data else None)
    homepage = version_data.homepage if version_data else None

    return RegistryPlugin(
        name=package.name,
        description=package.description or "",
        keywords=package.keywords or [],
        links=PluginLinks(
            npm=npm_url or package.links.npm,
            repository=validate_url(repository or package.links.repository),
            homepage=validate_url(homepage or package.links.homepage),
        ),
        version=latest,
        updated_at=packument.time.get(latest, package.date),
        compatibility=compatibility,
        extended_metadata=extended_metadata,
        weekly_downloads=result.downloads.weekly,
    )


async def process_package(
    result: SearchResult,
    client: RegistryClient,
    metadata_fetcher: MetadataFetcher | None = None,
) -> RegistryPlugin | None:
    name = result.package.name
    try:
        packument = await client.get_package(name)
        if packument is None:
            log.warning("package_not_found", package=name)
            return None

        version_data = packument.latest_version
        compatible_packages = None
        extended_metadata = None
        if version_data is not None:
            compatible_packages = validate_compatible_packages(
                version_data.compatible_packages, package=name
            )
            metadata_url = version_data.extended_metadata_url
            if metadata_url is not None and not isinstance(metadata_url, str):
                log.warning("metadata_url_invalid", package=name, url=repr(metadata_url))
                metadata_url = None
            if metadata_url and metadata_fetcher is not None:
                extended_metadata = await metadata_fetcher.fetch(metadata_url)

        return transform_to_registry_plugin(
            result, packument, compatible_packages, extended_metadata
        )
    except Exception:
        log.warning("package_processing_failed", package=name, exc_info=True)
        return None


async def collect_plugins(
    client: RegistryClient,
    metadata_fetcher: MetadataFetcher | None = None,
    settings: CollectorSettings | None = None,
    progress_stream: TextIO | None = None,
) -> list[RegistryPlugin]:
    """Discover and transform every plugin. Failed packages are omitted."""
    discovered = await discover_packages(client, settings)
    progress = ProgressReporter(len(discovered), progress_stream)

    async def _run(result: SearchResult) -> RegistryPlugin | None:
        plugin = await process_package(result, client, metadata_fetcher)
        progress.advance()
        return plugin

    results = await asyncio.gather(*(_run(result) for result in discovered))
    progress.finish()

    plugins = [plugin for plugin in results if plugin is not None]
    log.info(
        "collection_complete",
        collected=len(plugins),
        failed=len(discovered) - len(plugins),
        elapsed_seconds=round(progress.elapsed, 1),
    )
    return plugins


# ----------------------------------------------------------------------
# Persistence
# ----------------------------------------------------------------------


def dump_plugins(plugins: Sequence[RegistryPlugin]) -> str:
    ordered = sorted(plugins, key=lambda plugin: plugin.name)
    payload = [
        plugin.model_dump(mode="json", by_alias=True, exclude_none=True) for plugin in ordered
    ]
    return json.dumps(payload, indent=2, ensure_ascii=False) + "\n"


def save_plugins(plugins: Sequence[RegistryPlugin], data_dir: str | Path) -> Path:
    """Write ``all.json`` sorted by package name."""
    data_dir = Path(data_dir)
    data_dir.mkdir(parents=True, exist_ok=True)
    output = data_dir / PLUGINS_FILE
    output.write_text(dump_plugins(plugins), encoding="utf-8")
    log.info("plugins_saved", count=len(plugins), path=str(output))
    return output
