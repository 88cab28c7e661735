"""Integration test fixtures.

Wires the real NpmClient and MetadataFetcher to a mocked registry. Raw
registry documents come from tests/conftest.py (search_object, packument_doc).
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

import httpx
import pytest

from plugin_registry.config import FetcherSettings, PathSettings, RegistrySettings

if TYPE_CHECKING:
    from pathlib import Path

REGISTRY = "https://registry.npmjs.org"


@pytest.fixture()
def registry_settings() -> RegistrySettings:
    return RegistrySettings(url=REGISTRY, retry_backoff_seconds=0, max_retries=1)


@pytest.fixture()
def fetcher_settings() -> FetcherSettings:
    return FetcherSettings(timeout_seconds=1.0)


@pytest.fixture()
def paths(tmp_path: Path) -> PathSettings:
    return PathSettings(
        data_dir=str(tmp_path / "data" / "plugins"),
        patches_dir=str(tmp_path / "data" / "patches"),
        output_file=str(tmp_path / "data" / "plugin-data.json"),
    )


@pytest.fixture()
async def http_client():
    async with httpx.AsyncClient() as client:
        yield client


@pytest.fixture()
def subprocess_env(tmp_path: Path) -> dict[str, str]:
    """Environment for running the CLI in a subprocess against tmp paths."""
    env = {k: v for k, v in os.environ.items() if not k.startswith("PLUGIN_REGISTRY__")}
    env["PLUGIN_REGISTRY__PATHS__DATA_DIR"] = str(tmp_path / "plugins")
    env["PLUGIN_REGISTRY__PATHS__PATCHES_DIR"] = str(tmp_path / "patches")
    env["PLUGIN_REGISTRY__PATHS__OUTPUT_FILE"] = str(tmp_path / "plugin-data.json")
    return env
