"""Subset of the npm registry responses the collector reads.

Unknown fields are ignored so registry additions never break parsing.
"""

from __future__ import annotations

from functools import cached_property
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class SearchLinks(BaseModel):
    npm: str
    homepage: str | None = None
    repository: str | None = None


class SearchPackage(BaseModel):
    name: str
    version: str
    description: str | None = None
    keywords: list[str] | None = None
    date: str
    links: SearchLinks


class SearchDownloads(BaseModel):
    weekly: int | None = None
    monthly: int | None = None


class SearchResult(BaseModel):
    """Single object from /-/v1/search."""

    package: SearchPackage
    downloads: SearchDownloads = SearchDownloads()


class SearchResponse(BaseModel):
    objects: list[SearchResult] = []
    total: int = 0


class RepositoryField(BaseModel):
    type: str | None = None
    url: str | None = None


class PackumentVersion(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str | None = None
    version: str | None = None
    repository: RepositoryField | str | None = None
    homepage: str | None = None
    peer_dependencies: dict[str, str] | None = Field(default=None, alias="peerDependencies")
    # Left raw: validated separately so a bad block only drops itself.
    compatible_packages: Any = Field(default=None, alias="compatiblePackages")
    # Untrusted; anything but a string is treated as absent by the collector.
    extended_metadata_url: Any = Field(default=None, alias="vite-plugin-registry")

    @property
    def repository_url(self) -> str | None:
        if isinstance(self.repository, str):
            return self.repository
        if self.repository is not None:
            return self.repository.url
        return None


class Packument(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    dist_tags: dict[str, str] = Field(alias="dist-tags")
    # Only the latest entry is ever read, so old versions stay unvalidated.
    versions: dict[str, Any] = {}
    time: dict[str, str] = {}

    @property
    def latest(self) -> str:
        return self.dist_tags["latest"]

    @cached_property
    def latest_version(self) -> PackumentVersion | None:
        raw = self.versions.get(self.latest)
        if raw is None:
            return None
        return PackumentVersion.model_validate(raw)
