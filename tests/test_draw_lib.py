import threading

import pytest

from activity_draw.draw_lib import check_and_balance_config, describe_probabilities, simulate_draws
from activity_draw.metrics import DrawMetrics
from activity_draw.store import YamlConfigStore


def test_describe_probabilities(default_tree):
    default_tree.create_category("运动")
    lines = describe_probabilities(default_tree)

    assert lines[0] == "研究向 30%: 创业分析 5%, 经济社会 5%, AI发展 5%, 音乐发展史 5%, 艺术发展史 5%, 类型学 5%"
    assert lines[-2] == "运动 0%"
    assert lines[-1] == "自定义 10%: 自定义活动 10%"


@pytest.fixture
def stored(tmp_path, default_tree):
    store = YamlConfigStore(tmp_path / "activity.yml")
    store.save(default_tree)
    return store


def test_check_missing_file(tmp_path):
    assert check_and_balance_config(str(tmp_path / "nope.yml")) is None


def test_check_valid_file(stored):
    before = stored.path.read_text(encoding="utf-8")
    model = check_and_balance_config(str(stored.path))
    assert model is not None
    assert stored.path.read_text(encoding="utf-8") == before


def test_check_invalid_file(stored, default_tree):
    default_tree.get_category("research").total_probability = 0.4
    stored.save(default_tree)
    assert check_and_balance_config(str(stored.path)) is None


def test_balance_without_save_leaves_file(stored, default_tree):
    default_tree.get_category("research").total_probability = 0.4
    stored.save(default_tree)

    model = check_and_balance_config(str(stored.path), balance=True)
    assert [c.percent for c in model.categories] == [20] * 5
    assert stored.load().get_category("research").percent == 40


def test_balance_and_save(stored, default_tree):
    default_tree.get_category("research").total_probability = 0.4
    stored.save(default_tree)

    check_and_balance_config(str(stored.path), save=True, balance=True)
    assert [c.percent for c in stored.load().categories] == [20] * 5


def test_balance_cannot_fix_empty_category(stored, default_tree):
    default_tree.create_category("运动")
    default_tree.get_category("research").total_probability = 0.4
    stored.save(default_tree)

    assert check_and_balance_config(str(stored.path), save=True, balance=True) is None
    assert stored.load().get_category("research").percent == 40


def test_simulation_follows_weights(default_tree):
    metrics = simulate_draws(default_tree, 5000, seed=42, show_progress=False)

    assert metrics.draws == 5000
    observed = metrics.category_percentages()
    assert observed["研究向"] == pytest.approx(30, abs=3)
    assert observed["自定义"] == pytest.approx(10, abs=2)
    assert sum(metrics.items.values()) == 5000


def test_simulation_is_seeded(default_tree):
    a = simulate_draws(default_tree, 200, seed=3, show_progress=False)
    b = simulate_draws(default_tree, 200, seed=3, show_progress=False)
    assert a.get_summary() == b.get_summary()


def test_metrics_counts():
    metrics = DrawMetrics()
    assert metrics.category_percentages() == {}

    metrics.record("欣赏向", "读书")
    metrics.record("欣赏向", "读书")
    metrics.record("研究向", "类型学")

    assert metrics.get_summary() == {
        "draws": 3,
        "categories": {"欣赏向": 2, "研究向": 1},
        "items": {"欣赏向/读书": 2, "研究向/类型学": 1},
    }
    assert metrics.item_percentages()["研究向/类型学"] == pytest.approx(100 / 3)


def test_metrics_thread_safe():
    metrics = DrawMetrics()

    def work():
        for _ in range(1000):
            metrics.record("a", "x")

    threads = [threading.Thread(target=work) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert metrics.draws == 4000
    assert metrics.categories["a"] == 4000
