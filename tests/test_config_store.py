"""Tests for the scoped configuration store and its watcher."""

from __future__ import annotations

import asyncio
import os

import pytest
import yaml

from ucp_vault.config.ops import stable_dumps
from ucp_vault.config.schema import ApiKeyAuthConfig, ProviderConfig
from ucp_vault.config.store import ConfigScope, ConfigStore
from ucp_vault.config.watcher import ConfigWatcher
from ucp_vault.errors import ConfigurationError


def _load(path: str):
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f)


class TestScopes:
    def test_missing_files_use_defaults(self, tmp_path):
        store = ConfigStore(str(tmp_path / "global.yaml"))
        assert store.raw_endpoints == []
        assert store.endpoints == []
        assert store.store_api_key_in_settings is False
        assert store.verbose is False

    def test_most_specific_scope_wins(self, write_scope):
        g = write_scope("global", {"storeApiKeyInSettings": False, "verbose": True})
        w = write_scope("workspace", {"storeApiKeyInSettings": True})
        store = ConfigStore(g, workspace_path=w)
        assert store.store_api_key_in_settings is True
        assert store.verbose is True

    def test_active_folder_participates(self, write_scope, make_provider):
        g = write_scope("global", {"endpoints": [make_provider("g")]})
        f = write_scope("folder", {"endpoints": [make_provider("f")]})
        assert [p.name for p in ConfigStore(g, folder_paths={"a": f}).endpoints] == ["g"]
        active = ConfigStore(g, folder_paths={"a": f}, active_folder="a")
        assert [p.name for p in active.endpoints] == ["f"]

    def test_unknown_active_folder(self, tmp_path):
        with pytest.raises(ConfigurationError, match="Unknown workspace folder"):
            ConfigStore(str(tmp_path / "g.yaml"), active_folder="nope")

    def test_inspect_is_unmerged(self, write_scope, make_provider):
        g = write_scope("global", {"endpoints": [make_provider("g")]})
        w = write_scope("workspace", {"endpoints": [make_provider("w")]})
        f = write_scope("folder", {"endpoints": [make_provider("f")]})
        store = ConfigStore(g, workspace_path=w, folder_paths={"a": f})

        inspection = store.inspect("endpoints")
        assert inspection.default_value == []
        assert inspection.global_value[0]["name"] == "g"
        assert inspection.workspace_value[0]["name"] == "w"
        assert inspection.workspace_folder_value is None

        folder_inspection = store.inspect("endpoints", folder="a")
        assert folder_inspection.workspace_folder_value[0]["name"] == "f"

    def test_inspect_unknown_folder(self, write_scope):
        store = ConfigStore(write_scope("global", {}))
        with pytest.raises(ConfigurationError):
            store.inspect("endpoints", folder="missing")

    def test_paths(self, tmp_path):
        store = ConfigStore("g.yaml", workspace_path="w.yaml", folder_paths={"a": "a.yaml"})
        assert store.paths == ["g.yaml", "w.yaml", "a.yaml"]
        assert store.folders == ["a"]


class TestReadErrors:
    def test_non_mapping_file(self, tmp_path):
        path = tmp_path / "global.yaml"
        path.write_text("- just\n- a list\n", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="mapping"):
            ConfigStore(str(path)).get("endpoints")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "global.yaml"
        path.write_text("endpoints: [unclosed\n", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="Error reading"):
            ConfigStore(str(path)).get("endpoints")

    def test_empty_file(self, tmp_path):
        path = tmp_path / "global.yaml"
        path.write_text("", encoding="utf-8")
        assert ConfigStore(str(path)).raw_endpoints == []


class TestEndpoints:
    def test_invalid_entries_skipped(self, write_scope, make_provider, caplog):
        g = write_scope(
            "global",
            {
                "endpoints": [
                    make_provider("ok"),
                    "not-a-mapping",
                    {"name": "no-type"},
                    make_provider("bad-auth", auth={"method": "carrier-pigeon"}),
                ]
            },
        )
        store = ConfigStore(g)
        assert [p.name for p in store.endpoints] == ["ok"]
        assert len(store.raw_endpoints) == 4

    def test_string_model_entries_accepted(self, write_scope, make_provider):
        g = write_scope(
            "global", {"endpoints": [make_provider("p", models=["gpt-4o", {"id": "o3"}])]}
        )
        assert ConfigStore(g).endpoints[0].models == ["gpt-4o", {"id": "o3"}]

    def test_entries_pair_raw_with_model(self, write_scope, make_provider):
        bad = make_provider("bad", auth={"method": "carrier-pigeon"})
        g = write_scope("global", {"endpoints": [make_provider("ok"), bad]})
        entries = ConfigStore(g).endpoint_entries
        assert entries[0][1].name == "ok"
        assert entries[1] == (bad, None)

    def test_typed_auth(self, write_scope, make_provider):
        g = write_scope(
            "global",
            {"endpoints": [make_provider("p", auth={"method": "api-key", "apiKey": "sk"})]},
        )
        provider = ConfigStore(g).endpoints[0]
        assert isinstance(provider.auth, ApiKeyAuthConfig)
        assert provider.auth.api_key == "sk"

    def test_unknown_fields_survive_roundtrip(self, write_scope, make_provider):
        g = write_scope("global", {"endpoints": [make_provider("p", temperature=0.2)]})
        store = ConfigStore(g)
        asyncio.run(store.set_endpoints(store.endpoints))
        assert _load(g)["endpoints"][0]["temperature"] == 0.2

    def test_write_goes_to_defining_scope(self, write_scope, make_provider):
        g = write_scope("global", {"endpoints": [make_provider("g")]})
        w = write_scope("workspace", {"endpoints": [make_provider("w")]})
        store = ConfigStore(g, workspace_path=w)
        asyncio.run(store.set_raw_endpoints([make_provider("new")]))
        assert _load(w)["endpoints"][0]["name"] == "new"
        assert _load(g)["endpoints"][0]["name"] == "g"

    def test_write_defaults_to_global(self, tmp_path, make_provider):
        g = str(tmp_path / "global.yaml")
        store = ConfigStore(g)
        asyncio.run(store.set_raw_endpoints([make_provider("first")]))
        assert _load(g)["endpoints"][0]["name"] == "first"

    def test_write_preserves_other_keys(self, write_scope, make_provider):
        g = write_scope("global", {"storeApiKeyInSettings": True, "endpoints": []})
        store = ConfigStore(g)
        asyncio.run(store.set_raw_endpoints([make_provider("p")]))
        assert _load(g)["storeApiKeyInSettings"] is True

    def test_update_without_file_for_scope(self, tmp_path):
        store = ConfigStore(str(tmp_path / "g.yaml"))
        with pytest.raises(ConfigurationError, match="No configuration file"):
            asyncio.run(store.update("verbose", True, ConfigScope.WORKSPACE))


class TestStableDumps:
    def test_key_order_and_none_ignored(self):
        assert stable_dumps({"b": 1, "a": None, "c": [{"y": 2, "x": None}]}) == stable_dumps(
            {"c": [{"y": 2}], "b": 1}
        )

    def test_model_dumped_by_alias(self):
        provider = ProviderConfig(type="t", name="n", baseUrl="https://x")
        assert '"baseUrl"' in stable_dumps(provider)


class TestConfigWatcher:
    @pytest.mark.asyncio
    async def test_change_triggers_callback_once(self, write_scope):
        path = write_scope("global", {"verbose": False})
        calls = []

        async def on_change():
            calls.append(1)

        watcher = ConfigWatcher([path], on_change, poll_interval=0.02, debounce=0.02)
        watcher.start()
        assert watcher.watching
        try:
            st = os.stat(path)
            os.utime(path, (st.st_atime, st.st_mtime + 5))
            for _ in range(100):
                if calls:
                    break
                await asyncio.sleep(0.02)
            await asyncio.sleep(0.1)
        finally:
            await watcher.stop()
        assert calls == [1]
        assert not watcher.watching

    @pytest.mark.asyncio
    async def test_created_file_counts_as_change(self, tmp_path):
        path = tmp_path / "workspace.yaml"
        fired = asyncio.Event()

        async def on_change():
            fired.set()

        watcher = ConfigWatcher([str(path)], on_change, poll_interval=0.02, debounce=0.02)
        watcher.start()
        try:
            path.write_text("verbose: true\n", encoding="utf-8")
            await asyncio.wait_for(fired.wait(), timeout=3)
        finally:
            await watcher.stop()

    @pytest.mark.asyncio
    async def test_callback_error_does_not_stop_watching(self, write_scope):
        path = write_scope("global", {})
        calls = []

        async def on_change():
            calls.append(1)
            raise RuntimeError("boom")

        watcher = ConfigWatcher([path], on_change, poll_interval=0.02, debounce=0.02)
        watcher.start()
        try:
            for bump in (5, 10):
                st = os.stat(path)
                os.utime(path, (st.st_atime, st.st_mtime + bump))
                for _ in range(100):
                    if len(calls) >= (1 if bump == 5 else 2):
                        break
                    await asyncio.sleep(0.02)
            assert watcher.watching
        finally:
            await watcher.stop()
        assert len(calls) == 2
