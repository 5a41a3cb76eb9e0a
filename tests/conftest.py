import pytest

from activity_draw import config_manager
from activity_draw.config_model import Category, ConfigModel, Item
from activity_draw.store import default_model


def _build(tree):
    """[(name, percent, [(item, percent), ...]), ...] -> ConfigModel with ids c0, c0i0, ..."""
    categories = []
    for c, (name, percent, items) in enumerate(tree):
        categories.append(
            Category(
                id=f"c{c}",
                name=name,
                total_probability=percent / 100,
                items=[Item(id=f"c{c}i{i}", name=n, probability=p / 100) for i, (n, p) in enumerate(items)],
            )
        )
    return ConfigModel(categories=categories)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for var in ("ACTIVITY_DRAW_CONFIG", "ACTIVITY_DRAW_STORE", "ACTIVITY_DRAW_HISTORY"):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def build_model():
    return _build


@pytest.fixture
def defaults():
    return config_manager.load_defaults()


@pytest.fixture
def default_tree(defaults):
    return default_model(defaults)


@pytest.fixture
def tmp_config(defaults, tmp_path):
    """Defaults with store and history redirected into tmp_path."""
    config = dict(defaults)
    config["store"] = {
        "config_path": str(tmp_path / "activity_config.yml"),
        "history_path": str(tmp_path / "draw_history.yml"),
    }
    return config
