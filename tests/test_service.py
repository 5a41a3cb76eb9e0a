import pytest

from activity_draw.config_model import ConfigModel
from activity_draw.errors import (
    AlreadyDrawnError,
    EmptyNameError,
    InvalidConfigError,
    ProtectedEntityError,
    TooLongError,
)
from activity_draw.sampler import sequence_rand
from activity_draw.service import ActivityDrawService, DrawOutcome
from activity_draw.store import MemoryConfigStore, YamlConfigStore

DAY = "2026-03-01"


@pytest.fixture
def store():
    return MemoryConfigStore()


def make_service(store, defaults, values=()):
    return ActivityDrawService(store, defaults, rand=sequence_rand(values))


def test_first_use_creates_default_tree(store, defaults):
    service = make_service(store, defaults)
    assert service.model.distinguished.percent == 10
    assert store.saves == 1
    assert service.validate().valid


def test_add_category_with_default_names(store, defaults):
    service = make_service(store, defaults)
    first = service.add_category()
    second = service.add_category(tag="outdoor")

    assert (first.name, second.name) == ("分类", "分类1")
    assert [c.name for c in store.load().categories][-3:] == ["分类", "分类1", "自定义"]


def test_add_item_with_default_names(store, defaults):
    service = make_service(store, defaults)
    first = service.add_item("learning")
    second = service.add_item("learning", payload="run")

    assert (first.name, second.name) == ("新活动", "新活动1")
    assert first.payload == "custom"
    assert second.payload == "run"


def test_rejected_edit_changes_nothing(store, defaults):
    service = make_service(store, defaults)
    before = service.model.to_dict()
    saves = store.saves

    with pytest.raises(ProtectedEntityError):
        service.delete_category("custom")
    with pytest.raises(ProtectedEntityError):
        service.update_category("custom", probability=0.5)

    assert store.saves == saves
    assert service.model.to_dict() == before


def test_draws_use_last_valid_tree(store, defaults):
    service = make_service(store, defaults, [0.29, 0.5])
    service.model

    # saved, but items of 研究向 no longer match its 20%
    service.update_category("research", probability=0.2)
    assert store.load().get_category("research").percent == 20
    assert service.model.distinguished.percent == 20
    assert not service.validate().valid

    assert service.request_draw() == DrawOutcome("研究向", "AI发展", "ai_development")


def test_draw_without_any_valid_tree(defaults):
    store = MemoryConfigStore()
    store.save(ConfigModel.from_dict([
        {"id": "a", "name": "a", "percent": 50, "items": [{"id": "x", "name": "x", "percent": 30}]},
        {"id": "b", "name": "b", "percent": 50, "items": [{"id": "y", "name": "y", "percent": 50}]},
    ]))
    service = make_service(store, defaults, [0.1, 0.1])
    with pytest.raises(InvalidConfigError):
        service.request_draw()


def test_balancing_saves(store, defaults):
    service = make_service(store, defaults)
    service.add_category("运动")
    service.add_item(service.model.get_category_by_name("运动").id, "跑步")

    service.auto_balance()
    assert [c.percent for c in store.load().categories] == [17, 17, 17, 17, 16, 16]
    assert service.validate().valid

    service.update_item("research", "typology", probability=0.0)
    service.auto_balance_items("research")
    assert sum(i.percent for i in store.load().get_category("research").items) == 17


def test_reset_restores_defaults(store, defaults):
    service = make_service(store, defaults)
    service.delete_category("research")
    service.reset()
    assert [c.percent for c in store.load().categories] == [30, 30, 15, 15, 10]


def test_reorder_and_delete(store, defaults):
    service = make_service(store, defaults)
    service.reorder(["learning", "entertainment", "appreciation", "research"])
    service.reorder_items("appreciation", ["reading", "art_appreciation", "music_appreciation"])
    service.delete_item("appreciation", "reading")

    model = store.load()
    assert [c.id for c in model.categories] == ["learning", "entertainment", "appreciation", "research", "custom"]
    assert [i.id for i in model.get_category("appreciation").items] == ["art_appreciation", "music_appreciation"]


def test_draw_today_records_regular_card(store, defaults):
    service = make_service(store, defaults, [0.1, 0.0])
    record = service.draw_today(DAY)

    assert (record.category_name, record.item_name) == ("研究向", "创业分析")
    assert record.category_tag == "research"
    assert service.history.today_record(DAY) is record

    with pytest.raises(AlreadyDrawnError):
        service.draw_today(DAY)


def test_custom_card_needs_confirmation(store, defaults):
    service = make_service(store, defaults, [0.95, 0.5])
    record = service.draw_today(DAY)

    assert record.payload == "custom"
    assert not service.history.has_drawn(DAY)

    with pytest.raises(EmptyNameError):
        service.confirm_custom(record, "  ")
    with pytest.raises(TooLongError):
        service.confirm_custom(record, "很" * 21)

    service.confirm_custom(record, "去公园散步")
    assert service.history.today_record(DAY).label == "去公园散步"
    with pytest.raises(AlreadyDrawnError):
        service.confirm_custom(record, "再来一次")


def test_clear_today(store, defaults):
    service = make_service(store, defaults, [0.1, 0.0, 0.1, 0.0])
    service.draw_today(DAY)
    assert service.clear_today(DAY) is True
    assert service.clear_today(DAY) is False
    service.draw_today(DAY)


def test_from_config_uses_files(tmp_config):
    service = ActivityDrawService.from_config(tmp_config, rand=sequence_rand([0.1, 0.0]))
    service.add_category("运动")
    service.draw_today(DAY)

    path = tmp_config["store"]["config_path"]
    assert YamlConfigStore(path).load().category_by_name("运动") is not None

    reopened = ActivityDrawService.from_config(tmp_config)
    assert reopened.history.has_drawn(DAY)
    assert reopened.model.category_by_name("运动") is not None


def test_reload_picks_up_external_writes(store, defaults):
    service = make_service(store, defaults, [0.29, 0.5])
    service.update_category("research", probability=0.4)
    assert service.drawable_model.get_category("research").percent == 30

    edited = store.load()
    edited.get_category("research").items[0].probability += 0.1
    edited.distinguished.items[0].probability = 0.0
    store.save(edited)

    service.reload()
    assert service.validate().valid
    assert service.drawable_model.get_category("research").percent == 40
    assert service.request_draw().category_name == "研究向"
