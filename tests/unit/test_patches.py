"""Unit tests for plugin_registry.patches."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

import pytest
from pydantic import ValidationError

from plugin_registry.compatibility import derive_from_peer_dependencies
from plugin_registry.models.patch import PluginPatch
from plugin_registry.models.plugin import (
    CompatibleTool,
    IncompatibleTool,
    PluginLinks,
    RegistryPlugin,
    UnknownTool,
)
from plugin_registry.patches import apply_patch, apply_patches, load_patches

if TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture()
def plugin() -> RegistryPlugin:
    return RegistryPlugin(
        name="vite-plugin-demo",
        description="Original description",
        keywords=["vite-plugin"],
        links=PluginLinks(
            npm="https://www.npmjs.com/package/vite-plugin-demo",
            repository="https://github.com/demo/vite-plugin-demo",
            homepage="https://demo.dev",
        ),
        version="1.2.3",
        updated_at="2024-02-01T12:00:00.000Z",
        compatibility=derive_from_peer_dependencies({"vite": "^5", "rollup": "^4"}),
        weekly_downloads=1234,
    )


def _patch(**data: Any) -> PluginPatch:
    return PluginPatch.model_validate({"packageName": "vite-plugin-demo", **data})


def _write(directory: Path, filename: str, content: Any) -> None:
    text = content if isinstance(content, str) else json.dumps(content)
    (directory / filename).write_text(text, encoding="utf-8")


# ---------------------------------------------------------------------------
# apply_patch
# ---------------------------------------------------------------------------


class TestApplyPatch:
    def test_exclusion_returns_none(self, plugin: RegistryPlugin) -> None:
        patch = _patch(exclude={"enabled": True, "reason": "not a plugin"})
        assert apply_patch(plugin, patch) is None

    def test_exclusion_wins_over_overrides(self, plugin: RegistryPlugin) -> None:
        patch = _patch(
            overrides={"description": "Better", "links": {"homepage": "https://x.dev"}},
            exclude={"enabled": True, "reason": "deprecated"},
        )
        assert apply_patch(plugin, patch) is None

    def test_disabled_exclusion_keeps_plugin(self, plugin: RegistryPlugin) -> None:
        patch = _patch(exclude={"enabled": False, "reason": "was deprecated"})
        assert apply_patch(plugin, patch) == plugin

    def test_description_override(self, plugin: RegistryPlugin) -> None:
        patched = apply_patch(plugin, _patch(overrides={"description": "Better"}))
        assert patched is not None
        assert patched.description == "Better"
        assert patched.links == plugin.links
        assert patched.compatibility == plugin.compatibility

    def test_partial_links_keep_other_fields(self, plugin: RegistryPlugin) -> None:
        patched = apply_patch(plugin, _patch(overrides={"links": {"homepage": "https://new.dev"}}))
        assert patched is not None
        assert patched.links.homepage == "https://new.dev"
        assert patched.links.npm == plugin.links.npm
        assert patched.links.repository == plugin.links.repository
        assert patched.description == plugin.description

    def test_links_override_can_add_missing_field(self, plugin: RegistryPlugin) -> None:
        bare = plugin.model_copy(update={"links": PluginLinks(npm=plugin.links.npm)})
        patched = apply_patch(
            bare, _patch(overrides={"links": {"repository": "https://github.com/x/y"}})
        )
        assert patched is not None
        assert patched.links.repository == "https://github.com/x/y"
        assert patched.links.homepage is None

    def test_null_repository_override_clears_link(self, plugin: RegistryPlugin) -> None:
        patched = apply_patch(plugin, _patch(overrides={"links": {"repository": None}}))
        assert patched is not None
        assert patched.links.repository is None
        assert patched.links.npm == plugin.links.npm

    def test_null_npm_override_rejected(self) -> None:
        with pytest.raises(ValidationError, match="links.npm cannot be null"):
            _patch(overrides={"links": {"npm": None}})

    def test_compatibility_override_per_tool(self, plugin: RegistryPlugin) -> None:
        patch = _patch(
            overrides={
                "compatibility": {
                    "rolldown": {"type": "incompatible", "reason": "uses this.meta.watchMode"},
                }
            }
        )
        patched = apply_patch(plugin, patch)
        assert patched is not None
        assert patched.compatibility.rolldown == IncompatibleTool(
            reason="uses this.meta.watchMode"
        )
        assert patched.compatibility.vite == CompatibleTool(versions="^5")
        assert patched.compatibility.rollup == CompatibleTool(versions="^4")

    def test_source_plugin_not_mutated(self, plugin: RegistryPlugin) -> None:
        before = plugin.model_dump()
        apply_patch(
            plugin,
            _patch(
                overrides={
                    "description": "Changed",
                    "links": {"npm": "https://example.com"},
                    "compatibility": {"vite": {"type": "unknown"}},
                }
            ),
        )
        assert plugin.model_dump() == before
        assert plugin.compatibility.vite == CompatibleTool(versions="^5")

    def test_empty_overrides_is_identity(self, plugin: RegistryPlugin) -> None:
        patched = apply_patch(plugin, _patch(overrides={}))
        assert patched == plugin
        assert patched is not plugin

    def test_unknown_override_replaces_compatible(self, plugin: RegistryPlugin) -> None:
        patched = apply_patch(
            plugin, _patch(overrides={"compatibility": {"vite": {"type": "unknown"}}})
        )
        assert patched is not None
        assert patched.compatibility.vite == UnknownTool()


class TestApplyPatches:
    def test_unmatched_plugins_pass_through(self, plugin: RegistryPlugin) -> None:
        other = plugin.model_copy(update={"name": "rollup-plugin-other"})
        patches = {"vite-plugin-demo": _patch(exclude={"enabled": True, "reason": "spam"})}
        assert apply_patches([plugin, other], patches) == [other]

    def test_no_patches(self, plugin: RegistryPlugin) -> None:
        assert apply_patches([plugin], {}) == [plugin]


# ---------------------------------------------------------------------------
# load_patches
# ---------------------------------------------------------------------------


class TestLoadPatches:
    def test_missing_directory(self, tmp_path: Path) -> None:
        assert load_patches(tmp_path / "nope") == {}

    def test_loads_json_files(self, tmp_path: Path) -> None:
        _write(tmp_path, "a.json", {"packageName": "a", "overrides": {"description": "A"}})
        _write(tmp_path, "b.json", {"packageName": "b", "exclude": {"enabled": True, "reason": "x"}})
        patches = load_patches(tmp_path)
        assert set(patches) == {"a", "b"}
        assert patches["a"].overrides is not None
        assert patches["a"].overrides.description == "A"
        assert patches["b"].exclude is not None
        assert patches["b"].exclude.enabled is True

    def test_ignores_other_extensions(self, tmp_path: Path) -> None:
        _write(tmp_path, "a.json", {"packageName": "a"})
        _write(tmp_path, "README.md", "# patches")
        _write(tmp_path, "b.json.bak", {"packageName": "b"})
        assert set(load_patches(tmp_path)) == {"a"}

    def test_malformed_json_skipped(self, tmp_path: Path) -> None:
        _write(tmp_path, "a.json", {"packageName": "a"})
        _write(tmp_path, "broken.json", "{not json")
        assert set(load_patches(tmp_path)) == {"a"}

    def test_missing_package_name_skipped(self, tmp_path: Path) -> None:
        _write(tmp_path, "nameless.json", {"overrides": {"description": "x"}})
        _write(tmp_path, "empty-name.json", {"packageName": ""})
        _write(tmp_path, "list.json", [{"packageName": "a"}])
        assert load_patches(tmp_path) == {}

    def test_invalid_schema_skipped(self, tmp_path: Path) -> None:
        _write(tmp_path, "bad.json", {"packageName": "a", "exclude": {"reason": "no flag"}})
        assert load_patches(tmp_path) == {}

    def test_null_npm_link_skipped(self, tmp_path: Path) -> None:
        _write(tmp_path, "a.json", {"packageName": "a", "overrides": {"links": {"npm": None}}})
        _write(
            tmp_path, "b.json", {"packageName": "b", "overrides": {"links": {"npm": "https://x"}}}
        )
        patches = load_patches(tmp_path)
        assert set(patches) == {"b"}

    def test_last_loaded_wins(self, tmp_path: Path) -> None:
        _write(tmp_path, "1-first.json", {"packageName": "a", "overrides": {"description": "1"}})
        _write(tmp_path, "2-second.json", {"packageName": "a", "overrides": {"description": "2"}})
        patches = load_patches(tmp_path)
        assert patches["a"].overrides is not None
        assert patches["a"].overrides.description == "2"
