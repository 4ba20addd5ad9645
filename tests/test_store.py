from types import MappingProxyType

import pytest

from config_layers import ConfigDocument, ConfigStore


@pytest.fixture
def store(document):
    return ConfigStore(document)


def test_store_scenario_prod_environment():
    doc = ConfigDocument.from_tree(
        {"global": {"theme": "light"}, "environments": {"PROD": {"endpoint": "prod.example"}}}
    )
    store = ConfigStore(doc)
    store.set_env("PROD")
    assert store.get("endpoint") == "prod.example"
    assert store.get("theme") == "light"
    assert store.get("missing") is None
    assert store.contains("missing") is False


def test_store_without_environment_reads_globals_only(store):
    assert store.environment is None
    assert store.get("endpoint") == "global.example"
    assert store.get("dev_only") is None


def test_store_environment_switch_changes_reads_not_data(store):
    store.set_env("DEV")
    assert store.get("dev_only") == "yes"
    store.set_env("PROD")
    assert store.get("dev_only") is None
    store.set_env("DEV")
    assert store.get("dev_only") == "yes"


def test_store_unknown_environment_falls_through_to_globals(store):
    store.set_env("STAGING")
    assert store.get("endpoint") == "global.example"
    assert store.get("theme") == "light"


def test_store_get_default_for_absent_key(store):
    assert store.get("missing", "fallback") == "fallback"
    assert store.get("theme", "fallback") == "light"


def test_store_resolution_order_override_first(store):
    store.set_env("PROD")
    assert store.get("endpoint") == "prod.example"
    assert store.set("endpoint", "override.example") is True
    assert store.get("endpoint") == "override.example"


def test_store_set_unprotected_key_then_get(store):
    assert store.set("new_key", {"nested": [1, 2]}) is True
    assert store.get("new_key") == {"nested": [1, 2]}


def test_store_values_are_detached_copies(store):
    value = {"items": [1]}
    store.set("k", value)
    value["items"].append(2)
    fetched = store.get("k")
    assert fetched == {"items": [1]}
    fetched["items"].append(3)
    assert store.get("k") == {"items": [1]}


def test_store_protected_write_is_silent_noop(store):
    store.protect("theme")
    assert store.set("theme", "dark") is False
    assert store.get("theme") == "light"
    assert "theme" not in store.overrides()


def test_store_preemptive_protection_of_absent_key(store):
    store.protect("future_key")
    assert store.set("future_key", 1) is False
    assert store.contains("future_key") is False


def test_store_protect_many_and_unprotect(store):
    store.protect_many(["theme", "timeout"])
    assert store.protected_keys() == frozenset({"theme", "timeout"})
    store.unprotect("theme")
    assert store.set("theme", "dark") is True
    store.unprotect_many(["timeout"])
    assert store.set("timeout", 5) is True
    assert store.get("timeout") == 5


def test_store_unprotect_all(store):
    store.protect_many(["theme", "timeout"])
    store.unprotect_all()
    assert store.protected_keys() == frozenset()


def test_store_protect_all_snapshots_known_keys(store):
    store.set_env("DEV")
    protected = store.protect_all()
    assert protected == frozenset({"theme", "timeout", "endpoint", "debug", "dev_only"})
    assert store.set("endpoint", "x") is False
    # keys introduced afterwards are not protected automatically
    assert store.set("brand_new", 1) is True
    assert store.get("brand_new") == 1


def test_store_protect_all_ignores_inactive_environment_keys(store):
    store.set_env("PROD")
    store.protect_all()
    assert store.is_protected("dev_only") is False


def test_store_protect_all_includes_existing_overrides(store):
    store.set("remote_flag", True)
    store.protect_all()
    assert store.is_protected("remote_flag") is True


def test_store_overwrite_all_is_partial_under_protection(store):
    store.protect("theme")
    accepted = store.overwrite_all({"a": 1, "theme": "dark", "b": 2})
    assert accepted == ["a", "b"]
    assert store.get("a") == 1
    assert store.get("b") == 2
    assert store.get("theme") == "light"


def test_store_last_write_wins_in_override_layer(store):
    store.set("k", "first")
    store.set("k", "second")
    assert store.get("k") == "second"
    assert store.overrides() == {"k": "second"}


def test_store_staged_previews_without_writing(store):
    store.protect("theme")
    store.set("a", 1)
    staged = store.staged({"a": 2, "b": 3, "theme": "dark"})
    assert staged == {"a": 2, "b": 3}
    assert store.overrides() == {"a": 1}


def test_store_replace_overrides_resets_override_layer(store):
    store.set("s", 1)
    store.replace_overrides({"d": 2})
    assert store.get("s") is None
    assert store.get("d") == 2


def test_store_snapshot_is_merged_and_read_only(store):
    store.set_env("PROD")
    store.set("theme", "dark")
    snap = store.snapshot()
    assert isinstance(snap, MappingProxyType)
    assert snap["theme"] == "dark"
    assert snap["endpoint"] == "prod.example"
    assert "dev_only" not in snap
    with pytest.raises(TypeError):
        snap["theme"] = "light"
