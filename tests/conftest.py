"""Shared fixtures: npm search results and packuments as the registry returns them."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from plugin_registry.models.npm import Packument, SearchResult

REGISTRY = "https://registry.npmjs.org"


def _search_object(name: str, weekly: int | None = 100, **links: str) -> dict[str, Any]:
    obj: dict[str, Any] = {
        "package": {
            "name": name,
            "version": "1.0.0",
            "description": f"{name} description",
            "keywords": ["vite-plugin", "vite"],
            "date": "2024-01-01T00:00:00.000Z",
            "links": {"npm": f"https://www.npmjs.com/package/{name}", **links},
            "publisher": {"username": "someone"},
        },
        "score": {"final": 0.5, "detail": {"quality": 1, "popularity": 0.1, "maintenance": 1}},
    }
    if weekly is not None:
        obj["downloads"] = {"weekly": weekly, "monthly": weekly * 4}
    return obj


def _packument_doc(name: str, version: str = "1.0.0", **version_fields: Any) -> dict[str, Any]:
    return {
        "name": name,
        "dist-tags": {"latest": version},
        "versions": {version: {"name": name, "version": version, **version_fields}},
        "time": {
            "created": "2023-06-01T00:00:00.000Z",
            "modified": "2024-02-02T00:00:00.000Z",
            version: "2024-02-01T12:00:00.000Z",
        },
    }


@pytest.fixture()
def search_object() -> Callable[..., dict[str, Any]]:
    """Factory for raw /-/v1/search objects."""
    return _search_object


@pytest.fixture()
def packument_doc() -> Callable[..., dict[str, Any]]:
    """Factory for raw packument documents."""
    return _packument_doc


@pytest.fixture()
def make_search_result() -> Callable[..., SearchResult]:
    def _make(name: str, weekly: int | None = 100, **links: str) -> SearchResult:
        return SearchResult.model_validate(_search_object(name, weekly, **links))

    return _make


@pytest.fixture()
def make_packument() -> Callable[..., Packument]:
    def _make(name: str, version: str = "1.0.0", **version_fields: Any) -> Packument:
        return Packument.model_validate(_packument_doc(name, version, **version_fields))

    return _make
