"""
Fail-fast validation of an activity probability tree.

Checks run in a fixed order and the first violation wins:
  1. category totals sum to 100%
  2. per category (display order): no negative share, items sum to the category
  3. names are unique (categories, then items within each category)

The message of a failing result is meant to be shown to the user as-is.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .config_model import ConfigModel
from .errors import InvalidConfigError


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    message: str
    check: Optional[str] = None  # "total" | "negative" | "items" | "duplicate_category" | "duplicate_item"
    category: Optional[str] = None
    expected: Optional[float] = None  # percent
    found: Optional[float] = None  # percent

    def __bool__(self) -> bool:
        return self.valid

    @classmethod
    def ok(cls) -> "ValidationResult":
        return cls(True, "Probability configuration is valid")


def _pct(p: float) -> float:
    return round(p * 100, 1)


def validate(model: ConfigModel, epsilon: Optional[float] = None) -> ValidationResult:
    eps = model.policy.epsilon if epsilon is None else epsilon

    total = model.total_probability()
    if abs(total - 1.0) > eps:
        return ValidationResult(
            False,
            f"Category probabilities sum to {_pct(total):.1f}%, must be 100%",
            check="total",
            expected=100.0,
            found=_pct(total),
        )

    for category in model.categories:
        if category.total_probability < -eps:
            return ValidationResult(
                False,
                f'"{category.name}" is at {_pct(category.total_probability):.1f}%: '
                f"the other categories are over-allocated",
                check="negative",
                category=category.name,
                expected=0.0,
                found=_pct(category.total_probability),
            )
        items_total = category.items_total()
        if abs(items_total - category.total_probability) > eps:
            return ValidationResult(
                False,
                f'Items of "{category.name}" sum to {_pct(items_total):.1f}%, '
                f"expected the category probability {_pct(category.total_probability):.1f}%",
                check="items",
                category=category.name,
                expected=_pct(category.total_probability),
                found=_pct(items_total),
            )

    seen: set[str] = set()
    for category in model.categories:
        if category.name in seen:
            return ValidationResult(
                False,
                f'Category name "{category.name}" is used more than once',
                check="duplicate_category",
                category=category.name,
            )
        seen.add(category.name)

    for category in model.categories:
        item_names: set[str] = set()
        for item in category.items:
            if item.name in item_names:
                return ValidationResult(
                    False,
                    f'Item name "{item.name}" is used more than once in "{category.name}"',
                    check="duplicate_item",
                    category=category.name,
                )
            item_names.add(item.name)

    return ValidationResult.ok()


def assert_valid(model: ConfigModel) -> None:
    """Raise InvalidConfigError carrying the first violation."""
    result = validate(model)
    if not result.valid:
        raise InvalidConfigError(result.message, result)


__all__ = ["ValidationResult", "assert_valid", "validate"]
