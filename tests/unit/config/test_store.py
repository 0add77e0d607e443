"""
chessconf - unit tests for the live settings store

File: tests/unit/config/test_store.py

Purpose
- Validate load/save, group and namespace updates, reset/clear and
  fail-soft reporting of persistence failures.

Functional requirements
- Runs entirely in memory; no filesystem access.
"""

from __future__ import annotations

import logging

import pytest

from chessconf.config.codec import parse, serialize
from chessconf.config.schema import DEFAULT_CONFIG, default_config
from chessconf.config.store import ConfigStore
from chessconf.errors import (
    ConfigSerializeError,
    FailureKind,
    NamespaceConflictError,
    PersistenceError,
    UnknownGroupError,
)
from chessconf.persistence.backends import MemoryConfigBackend

pytestmark = pytest.mark.unit


class FlakyBackend(MemoryConfigBackend):
    """Memory backend whose operations can be switched to fail."""

    def __init__(self, text: str | None = None) -> None:
        super().__init__(text)
        self.fail_read = False
        self.fail_write = False
        self.fail_erase = False

    async def read(self) -> str | None:
        if self.fail_read:
            raise PersistenceError("disk unavailable")
        return await super().read()

    async def write(self, text: str) -> None:
        if self.fail_write:
            raise PersistenceError("read-only file system")
        await super().write(text)

    async def erase(self) -> None:
        if self.fail_erase:
            raise PersistenceError("permission denied")
        await super().erase()


async def _loaded_store(text: str | None = None) -> tuple[ConfigStore, FlakyBackend]:
    backend = FlakyBackend(text)
    store = ConfigStore(backend)
    await store.load()
    return store, backend


class TestLoad:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", [None, "", "  \n\n"])
    async def test_absent_or_empty_text_yields_defaults(self, text: str | None) -> None:
        store, backend = await _loaded_store(text)

        assert store.snapshot() == default_config()
        assert store.loaded
        assert store.failures == ()
        assert backend.writes == []

    @pytest.mark.asyncio
    async def test_unknown_section_survives_load_and_save_cycle(self) -> None:
        store, backend = await _loaded_store("[Foo]\nbar=baz\n")
        assert store.get_dynamic("Foo") == {"bar": "baz"}

        assert await store.save()
        reloaded = ConfigStore(MemoryConfigBackend(backend.text))
        assert await reloaded.load()

        assert reloaded.get_dynamic("Foo") == {"bar": "baz"}

    @pytest.mark.asyncio
    async def test_persisted_fields_overlay_defaults(self) -> None:
        store, _ = await _loaded_store("[interfaceSettings]\ndarkMode=true\nlegacyFlag=1\n")

        group = store.get_group("interfaceSettings")
        assert group["darkMode"] is True
        assert group["showAnimations"] is True
        assert group["legacyFlag"] == 1
        assert store.get_group("gameSettings") == DEFAULT_CONFIG["gameSettings"]

    @pytest.mark.asyncio
    async def test_malformed_text_falls_back_to_defaults(self) -> None:
        store, backend = await _loaded_store("[interfaceSettings]\ndarkMode=true\nthis is not ini\n")

        assert store.snapshot() == default_config()
        assert [f.kind for f in store.failures] == [FailureKind.PARSE]
        assert store.failures[0].error_type == "ConfigParseError"
        assert store.metrics.get_counter("config_failures_total", labels={"kind": "parse"}) == 1
        assert backend.writes == []

    @pytest.mark.asyncio
    async def test_read_failure_falls_back_to_defaults(self) -> None:
        backend = FlakyBackend("[interfaceSettings]\ndarkMode=true\n")
        backend.fail_read = True
        store = ConfigStore(backend)

        assert await store.load() is False

        assert store.snapshot() == default_config()
        assert store.failures[0].kind is FailureKind.READ
        assert store.failures[0].message == "disk unavailable"

    @pytest.mark.asyncio
    async def test_load_is_repeatable(self) -> None:
        store, backend = await _loaded_store("locale=en\n")
        backend.text = "locale=de\n"

        await store.load()

        assert store.get_locale() == "de"
        assert store.metrics.get_counter("config_loads_total") == 2


class TestFixedGroups:
    @pytest.mark.asyncio
    async def test_update_group_merges_one_field(self) -> None:
        store, backend = await _loaded_store()

        await store.update_group("interfaceSettings", {"darkMode": True})

        assert store.get_group("interfaceSettings") == {
            **DEFAULT_CONFIG["interfaceSettings"],
            "darkMode": True,
        }
        assert len(backend.writes) == 1
        assert parse(backend.writes[0])["interfaceSettings"]["darkMode"] is True

    @pytest.mark.asyncio
    async def test_update_group_coerces_known_fields(self) -> None:
        store, _ = await _loaded_store()

        await store.update_group("interfaceSettings", {"engineLogLineLimit": "512", "autosave": "off"})

        group = store.get_interface_settings()
        assert group["engineLogLineLimit"] == 512
        assert group["autosave"] is False

    @pytest.mark.asyncio
    async def test_update_group_accepts_unknown_fields(self) -> None:
        store, backend = await _loaded_store()

        await store.update_game_settings(timeControl="5+3")

        assert store.get_game_settings()["timeControl"] == "5+3"  # type: ignore[typeddict-item]
        assert "timeControl=5+3" in backend.text.splitlines()

    @pytest.mark.asyncio
    async def test_none_restores_default_or_removes_extra_field(self) -> None:
        store, _ = await _loaded_store("[analysisSettings]\nmaxDepth=30\nlegacy=1\n")

        await store.update_group("analysisSettings", {"maxDepth": None, "legacy": None})

        assert store.get_analysis_settings() == DEFAULT_CONFIG["analysisSettings"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name", ["noSuchGroup", "uciOptions", "locale", "UciOptions_sf"])
    async def test_unknown_group_is_a_contract_violation(self, name: str) -> None:
        store, backend = await _loaded_store()

        with pytest.raises(UnknownGroupError) as excinfo:
            await store.update_group(name, {"x": 1})
        with pytest.raises(KeyError):
            store.get_group(name)

        assert name in str(excinfo.value)
        assert backend.writes == []

    @pytest.mark.asyncio
    async def test_non_scalar_value_is_rejected_before_saving(self) -> None:
        store, backend = await _loaded_store()

        with pytest.raises(ConfigSerializeError):
            await store.update_group("interfaceSettings", {"darkMode": [True]})

        assert backend.writes == []
        assert store.get_group("interfaceSettings") == DEFAULT_CONFIG["interfaceSettings"]

    @pytest.mark.asyncio
    async def test_getters_return_copies(self) -> None:
        store, _ = await _loaded_store()

        store.get_group("interfaceSettings")["darkMode"] = True
        store.snapshot()["gameSettings"]["flipMode"] = "free"

        assert store.get_group("interfaceSettings")["darkMode"] is False
        assert store.get_group("gameSettings")["flipMode"] == "random"

    @pytest.mark.asyncio
    async def test_chart_settings_accessors(self) -> None:
        store, _ = await _loaded_store()

        await store.update_evaluation_chart_settings(clampToThousand=True)

        assert store.get_evaluation_chart_settings()["clampToThousand"] is True


class TestDynamicNamespaces:
    @pytest.mark.asyncio
    async def test_namespaces_are_isolated(self) -> None:
        store, _ = await _loaded_store()

        await store.update_dynamic("NS_a", {"x": 1})
        await store.update_dynamic("NS_b", {"x": 2})

        assert store.get_dynamic("NS_a") == {"x": 1}
        assert store.get_dynamic("NS_b") == {"x": 2}

    @pytest.mark.asyncio
    async def test_update_dynamic_shallow_merges_and_none_removes(self) -> None:
        store, backend = await _loaded_store("[NS_a]\nx=1\ny=2\n")

        await store.update_dynamic("NS_a", {"y": None, "z": "three"})

        assert store.get_dynamic("NS_a") == {"x": 1, "z": "three"}
        assert len(backend.writes) == 1

    @pytest.mark.asyncio
    async def test_absent_namespace_reads_empty(self) -> None:
        store, _ = await _loaded_store()

        assert store.get_dynamic("NS_missing") == {}
        assert store.get_dynamic("locale") == {}

    @pytest.mark.asyncio
    async def test_clear_dynamic_saves_only_when_present(self) -> None:
        store, backend = await _loaded_store("[NS_a]\nx=1\n")

        assert await store.clear_dynamic("NS_missing") is False
        assert backend.writes == []

        assert await store.clear_dynamic("NS_a") is True
        assert len(backend.writes) == 1
        assert "NS_a" not in parse(backend.writes[0])

    @pytest.mark.asyncio
    async def test_namespace_cannot_shadow_top_level_field(self) -> None:
        store, backend = await _loaded_store()

        with pytest.raises(NamespaceConflictError):
            await store.update_dynamic("locale", {"x": 1})

        assert backend.writes == []

    @pytest.mark.asyncio
    async def test_rejected_update_leaves_no_empty_namespace(self) -> None:
        store, backend = await _loaded_store()
        before = store.snapshot()

        with pytest.raises(ConfigSerializeError):
            await store.update_dynamic("UciOptions_x", {"Hash": [1]})

        assert store.snapshot() == before
        assert store.dynamic_namespaces("UciOptions_") == ()
        await store.update_locale("en")
        assert "UciOptions_x" not in parse(backend.writes[-1])

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name", ["interfaceSettings", "analysisSettings", "uciOptions"])
    async def test_default_schema_entries_are_not_namespaces(self, name: str) -> None:
        store, backend = await _loaded_store("[interfaceSettings]\ndarkMode=true\n")
        before = store.snapshot()

        with pytest.raises(NamespaceConflictError):
            await store.update_dynamic(name, {"maxDepth": "deep"})
        with pytest.raises(NamespaceConflictError):
            await store.clear_dynamic(name)
        with pytest.raises(NamespaceConflictError):
            store.discard_dynamic_field(name, "darkMode")

        assert store.snapshot() == before
        assert store.get_group("interfaceSettings")["darkMode"] is True
        assert backend.writes == []

    @pytest.mark.asyncio
    async def test_dynamic_namespaces_by_prefix(self) -> None:
        store, _ = await _loaded_store("[UciOptions_a]\nHash=1\n\n[Foo]\nbar=1\n\n[UciOptions_b]\nHash=2\n")

        assert store.dynamic_namespaces("UciOptions_") == ("UciOptions_a", "UciOptions_b")

    @pytest.mark.asyncio
    async def test_discard_dynamic_field_does_not_save(self) -> None:
        store, backend = await _loaded_store("[Settings]\nlastSelectedEngineId=sf\n")

        assert store.discard_dynamic_field("Settings", "lastSelectedEngineId") is True
        assert store.discard_dynamic_field("Settings", "lastSelectedEngineId") is False

        assert store.get_dynamic("Settings") == {}
        assert backend.writes == []


class TestLocale:
    @pytest.mark.asyncio
    async def test_default_and_update(self) -> None:
        store, backend = await _loaded_store()
        assert store.get_locale() == "zh_cn"

        await store.update_locale("en")

        assert store.get_locale() == "en"
        assert backend.text is not None
        assert backend.text.splitlines()[0] == "locale=en"

    @pytest.mark.asyncio
    async def test_blank_locale_rejected(self) -> None:
        store, _ = await _loaded_store()

        with pytest.raises(ValueError):
            await store.update_locale("  ")


class TestResetAndClear:
    @pytest.mark.asyncio
    async def test_reset_to_defaults_drops_everything_and_saves(self) -> None:
        store, backend = await _loaded_store("[Foo]\nbar=baz\n\n[interfaceSettings]\ndarkMode=true\n")

        await store.reset_to_defaults()

        assert store.snapshot() == default_config()
        assert backend.writes == [serialize(default_config())]

    @pytest.mark.asyncio
    async def test_clear_all_erases_without_saving(self) -> None:
        store, backend = await _loaded_store("[interfaceSettings]\ndarkMode=true\n")

        await store.clear_all()

        assert backend.erase_count == 1
        assert backend.text is None
        assert backend.writes == []
        assert store.snapshot() == default_config()

    @pytest.mark.asyncio
    async def test_clear_all_erase_failure_still_resets(self) -> None:
        store, backend = await _loaded_store("[interfaceSettings]\ndarkMode=true\n")
        backend.fail_erase = True

        await store.clear_all()

        assert store.snapshot() == default_config()
        assert [f.kind for f in store.failures] == [FailureKind.ERASE]


class TestFailureReporting:
    @pytest.mark.asyncio
    async def test_write_failure_is_absorbed(self, caplog: pytest.LogCaptureFixture) -> None:
        store, backend = await _loaded_store()
        backend.fail_write = True

        with caplog.at_level(logging.WARNING, logger="chessconf"):
            await store.update_group("interfaceSettings", {"darkMode": True})

        assert store.get_group("interfaceSettings")["darkMode"] is True
        assert [f.kind for f in store.failures] == [FailureKind.WRITE]
        assert store.metrics.get_counter("config_saves_total") == 0
        assert store.metrics.get_counter("config_failures_total", labels={"kind": "write"}) == 1
        record = next(r for r in caplog.records if r.levelno == logging.WARNING)
        assert record.failure_kind == "write"  # type: ignore[attr-defined]

    @pytest.mark.asyncio
    async def test_save_counts_successful_writes(self) -> None:
        store, _ = await _loaded_store()

        await store.update_locale("en")
        await store.update_group("gameSettings", {"enablePonder": True})

        assert store.metrics.snapshot() == {"config_loads_total": 1.0, "config_saves_total": 2.0}

    @pytest.mark.asyncio
    async def test_failure_buffer_is_bounded(self) -> None:
        backend = FlakyBackend()
        backend.fail_write = True
        store = ConfigStore(backend, failure_buffer_size=2)

        for _ in range(3):
            assert await store.save() is False

        assert len(store.failures) == 2
        assert store.metrics.get_counter("config_failures_total", labels={"kind": "write"}) == 3

    @pytest.mark.asyncio
    async def test_unexpected_backend_errors_are_absorbed(self) -> None:
        class BrokenBackend(MemoryConfigBackend):
            async def read(self) -> str | None:
                raise RuntimeError("backend crashed")

            async def write(self, text: str) -> None:
                raise RuntimeError("backend crashed")

            async def erase(self) -> None:
                raise RuntimeError("backend crashed")

        store = ConfigStore(BrokenBackend())

        assert await store.load() is False
        await store.update_locale("en")
        await store.clear_all()

        assert [f.kind for f in store.failures] == [
            FailureKind.READ,
            FailureKind.WRITE,
            FailureKind.ERASE,
        ]
        assert {f.error_type for f in store.failures} == {"RuntimeError"}
        assert store.snapshot() == default_config()

    def test_failure_buffer_size_must_be_positive(self) -> None:
        with pytest.raises(ValueError):
            ConfigStore(MemoryConfigBackend(), failure_buffer_size=0)
