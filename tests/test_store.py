import pytest

from activity_draw.errors import ActivityConfigError
from activity_draw.store import (
    MemoryConfigStore,
    YamlConfigStore,
    default_model,
    load_or_create,
    store_from_config,
)


def test_yaml_store_missing_or_empty(tmp_path):
    path = tmp_path / "activity.yml"
    store = YamlConfigStore(path)
    assert store.load() is None

    path.write_text("", encoding="utf-8")
    assert store.load() is None


def test_yaml_store_save_and_load(tmp_path, default_tree):
    path = tmp_path / "nested" / "activity.yml"
    store = YamlConfigStore(path)
    store.save(default_tree)

    text = path.read_text(encoding="utf-8")
    assert "研究向" in text
    assert "percent: 30.0" in text
    assert store.load().to_dict() == default_tree.to_dict()


def test_yaml_store_keeps_long_names(tmp_path, default_tree):
    # length bounds only apply when creating or renaming
    store = YamlConfigStore(tmp_path / "activity.yml")
    store.save(default_tree)
    loaded = store.load()
    assert loaded.get_category("entertainment").item_by_name("看喜剧/脱口秀") is not None


def test_yaml_store_bad_yaml(tmp_path):
    path = tmp_path / "activity.yml"
    path.write_text("categories: [unclosed", encoding="utf-8")
    with pytest.raises(ActivityConfigError):
        YamlConfigStore(path).load()


def test_memory_store_snapshots(default_tree):
    store = MemoryConfigStore()
    assert store.load() is None

    store.save(default_tree)
    default_tree.get_category("research").name = "改了"

    assert store.load().get_category("research").name == "研究向"
    assert store.load() is not store.load()
    assert store.saves == 1


def test_load_or_create_materializes_defaults(defaults):
    store = MemoryConfigStore()
    model = load_or_create(store, defaults)

    assert [c.percent for c in model.categories] == [30, 30, 15, 15, 10]
    assert store.saves == 1

    again = load_or_create(store, defaults)
    assert again.to_dict() == model.to_dict()
    assert store.saves == 1


def test_default_model_requires_tree(defaults):
    config = dict(defaults)
    config.pop("default_tree")
    with pytest.raises(ActivityConfigError):
        default_model(config)


def test_store_from_config(tmp_config):
    store = store_from_config(tmp_config)
    assert str(store.path) == tmp_config["store"]["config_path"]
    assert store.limits.category_name_max == 4

    with pytest.raises(ActivityConfigError):
        store_from_config({"store": {}})


def test_yaml_store_malformed_percent(tmp_path):
    path = tmp_path / "activity.yml"
    path.write_text("categories:\n  - {id: a, name: a, percent: abc}\n", encoding="utf-8")
    with pytest.raises(ActivityConfigError):
        YamlConfigStore(path).load()
