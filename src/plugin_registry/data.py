"""Published data: collected plugins with patches applied, ranked by downloads."""

from __future__ import annotations

import asyncio
import json
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING

import structlog
from pydantic import TypeAdapter, ValidationError

from plugin_registry.collector import PLUGINS_FILE
from plugin_registry.errors import ErrorCode, PluginRegistryError
from plugin_registry.models.plugin import LatestVersions, PluginData, RegistryPlugin
from plugin_registry.patches import apply_patches, load_patches

if TYPE_CHECKING:
    from plugin_registry.config import PathSettings
    from plugin_registry.npm_client import NpmClient

log = structlog.get_logger()

# Used when the registry cannot be reached; publication must not block on it.
DEFAULT_LATEST_VERSIONS = {"vite": "7.0.0", "rollup": "4.0.0", "rolldown": "1.0.0"}

_plugin_list = TypeAdapter(list[RegistryPlugin])


def load_plugins(data_dir: str | Path) -> list[RegistryPlugin]:
    """Read the collected ``all.json``. A missing file means no plugins yet."""
    path = Path(data_dir) / PLUGINS_FILE
    if not path.exists():
        log.warning("plugins_file_missing", path=str(path))
        return []
    try:
        return _plugin_list.validate_json(path.read_bytes())
    except ValidationError as exc:
        raise PluginRegistryError(
            code=ErrorCode.DATASET_INVALID,
            message=f"{path} is not a valid plugin dataset: {exc.error_count()} errors",
        ) from exc


async def fetch_latest_versions(client: NpmClient) -> LatestVersions:
    tools = list(DEFAULT_LATEST_VERSIONS)
    versions = await asyncio.gather(*(client.get_latest_version(tool) for tool in tools))
    resolved = {}
    for tool, version in zip(tools, versions, strict=True):
        if version is None:
            version = DEFAULT_LATEST_VERSIONS[tool]
            log.warning("latest_version_defaulted", tool=tool, version=version)
        resolved[tool] = version
    return LatestVersions(**resolved)


async def build_plugin_data(paths: PathSettings, client: NpmClient) -> PluginData:
    plugins = apply_patches(load_plugins(paths.data_dir), load_patches(paths.patches_dir))
    plugins.sort(key=lambda plugin: plugin.weekly_downloads or 0, reverse=True)
    latest_versions = await fetch_latest_versions(client)
    return PluginData(
        plugins=plugins,
        last_updated=datetime.now(UTC).isoformat().replace("+00:00", "Z"),
        latest_versions=latest_versions,
    )


def write_plugin_data(data: PluginData, output_file: str | Path) -> Path:
    output = Path(output_file)
    output.parent.mkdir(parents=True, exist_ok=True)
    payload = data.model_dump(mode="json", by_alias=True, exclude_none=True)
    output.write_text(json.dumps(payload, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
    log.info("plugin_data_written", plugins=len(data.plugins), path=str(output))
    return output
