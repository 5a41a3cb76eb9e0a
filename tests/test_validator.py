import pytest

from activity_draw.errors import InvalidConfigError
from activity_draw.validator import ValidationResult, assert_valid, validate


def test_default_tree_is_valid(default_tree):
    result = validate(default_tree)
    assert result.valid
    assert bool(result)


def test_total_reported_first(default_tree):
    default_tree.get_category("research").total_probability = 0.35
    result = validate(default_tree)

    assert not result.valid
    assert result.check == "total"
    assert result.found == 105.0
    assert "105.0%" in result.message


def test_item_mismatch_message(build_model):
    model = build_model([("a", 50, [("x", 30)]), ("b", 50, [("y", 50)])])
    result = validate(model)

    assert result.check == "items"
    assert result.category == "a"
    assert (result.expected, result.found) == (50.0, 30.0)
    assert result.message == 'Items of "a" sum to 30.0%, expected the category probability 50.0%'


def test_first_violation_in_display_order(build_model):
    model = build_model([("a", 50, [("x", 50)]), ("b", 30, [("y", 20)]), ("c", 20, [("z", 10)])])
    assert validate(model).category == "b"


def test_total_wins_over_items(build_model):
    model = build_model([("a", 50, [("x", 10)]), ("b", 40, [("y", 40)])])
    assert validate(model).check == "total"


def test_negative_share(build_model):
    model = build_model([("a", 110, [("x", 110)]), ("自定义", -10, [("c", -10)])])
    result = validate(model)
    assert result.check == "negative"
    assert result.category == "自定义"


def test_duplicate_names(build_model):
    model = build_model([("a", 50, [("x", 50)]), ("a", 50, [("y", 50)])])
    assert validate(model).check == "duplicate_category"

    model = build_model([("a", 50, [("x", 25), ("x", 25)]), ("b", 50, [("y", 50)])])
    result = validate(model)
    assert result.check == "duplicate_item"
    assert result.category == "a"


def test_tolerance(build_model):
    model = build_model([
        ("a", 33.3, [("x", 33.3)]),
        ("b", 33.3, [("y", 33.3)]),
        ("c", 33.3, [("z", 33.3)]),
    ])
    assert validate(model).valid
    assert not validate(model, epsilon=0.0001).valid


def test_empty_category_with_zero_share_is_valid(build_model):
    model = build_model([("a", 0, []), ("b", 100, [("y", 100)])])
    assert validate(model).valid


def test_validate_does_not_mutate(build_model):
    model = build_model([("a", 50, [("x", 30)]), ("b", 40, [("y", 40)])])
    before = model.to_dict()
    validate(model)
    assert model.to_dict() == before


def test_assert_valid_carries_result(build_model):
    model = build_model([("a", 50, [("x", 30)]), ("b", 50, [("y", 50)])])
    with pytest.raises(InvalidConfigError) as exc:
        assert_valid(model)
    assert isinstance(exc.value.result, ValidationResult)
    assert exc.value.result.check == "items"
