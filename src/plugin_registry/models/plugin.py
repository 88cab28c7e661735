from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

TOOLS: tuple[Literal["vite", "rollup", "rolldown"], ...] = ("vite", "rollup", "rolldown")


class _CamelModel(BaseModel):
    """Base for records persisted as JSON with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CompatibleTool(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["compatible"] = "compatible"
    versions: str = Field(min_length=1)
    note: str | None = None


class IncompatibleTool(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["incompatible"] = "incompatible"
    reason: str


class UnknownTool(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["unknown"] = "unknown"


ToolCompatibility = Annotated[
    CompatibleTool | IncompatibleTool | UnknownTool,
    Field(discriminator="type"),
]


class Compatibility(BaseModel):
    """Per-tool compatibility. All three tools are always present."""

    model_config = ConfigDict(frozen=True)

    vite: ToolCompatibility
    rollup: ToolCompatibility
    rolldown: ToolCompatibility


class PartialCompatibility(BaseModel):
    """Compatibility declared for some tools only (patches, compatiblePackages)."""

    model_config = ConfigDict(extra="ignore")

    vite: ToolCompatibility | None = None
    rollup: ToolCompatibility | None = None
    rolldown: ToolCompatibility | None = None

    def declared(self) -> dict[str, CompatibleTool | IncompatibleTool | UnknownTool]:
        return {tool: getattr(self, tool) for tool in TOOLS if getattr(self, tool) is not None}


class PluginLinks(_CamelModel):
    npm: str
    repository: str | None = None
    homepage: str | None = None


class RegistryPlugin(_CamelModel):
    """One collected plugin, keyed by its npm package name."""

    name: str
    description: str = ""
    keywords: list[str] = []
    links: PluginLinks
    version: str
    updated_at: str
    compatibility: Compatibility
    extended_metadata: dict[str, Any] | None = None
    weekly_downloads: int | None = Field(default=None, ge=0)


class LatestVersions(_CamelModel):
    vite: str
    rollup: str
    rolldown: str


class PluginData(_CamelModel):
    """Published artifact consumed by the site."""

    plugins: list[RegistryPlugin]
    last_updated: str
    latest_versions: LatestVersions
