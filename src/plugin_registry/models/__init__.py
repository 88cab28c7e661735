from __future__ import annotations

from plugin_registry.models.npm import (
    Packument,
    PackumentVersion,
    RepositoryField,
    SearchLinks,
    SearchPackage,
    SearchResponse,
    SearchResult,
)
from plugin_registry.models.patch import LinkOverrides, PatchExclusion, PatchOverrides, PluginPatch
from plugin_registry.models.plugin import (
    TOOLS,
    Compatibility,
    CompatibleTool,
    IncompatibleTool,
    LatestVersions,
    PartialCompatibility,
    PluginData,
    PluginLinks,
    RegistryPlugin,
    ToolCompatibility,
    UnknownTool,
)

__all__ = [
    # npm
    "SearchResult",
    "SearchResponse",
    "SearchPackage",
    "SearchLinks",
    "Packument",
    "PackumentVersion",
    "RepositoryField",
    # plugin
    "TOOLS",
    "ToolCompatibility",
    "CompatibleTool",
    "IncompatibleTool",
    "UnknownTool",
    "Compatibility",
    "PartialCompatibility",
    "PluginLinks",
    "RegistryPlugin",
    "LatestVersions",
    "PluginData",
    # patch
    "PluginPatch",
    "PatchOverrides",
    "PatchExclusion",
    "LinkOverrides",
]
