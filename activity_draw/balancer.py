"""
Integer-percent auto-balancing of an activity probability tree.

Both entry points split a whole-percent target into `base = target // n`
and hand the `target - base * n` leftover points, one each, to the first
entries in display order. The result always sums to the target exactly.
Neither function mutates its input; a balanced copy is returned.
"""

from __future__ import annotations

import logging

from .config_model import Category, ConfigModel
from .errors import EmptyCategoryError, InvalidConfigError


def allocate_percent(total: int, count: int) -> list[int]:
    """Split `total` whole percent over `count` slots, leftovers to the front."""
    if count <= 0:
        raise ValueError("count must be positive")
    base = total // count
    remainder = total - base * count
    return [base + 1 if i < remainder else base for i in range(count)]


def auto_balance_categories(model: ConfigModel) -> ConfigModel:
    """
    Spread 100% evenly over all categories, then spread each category's new
    percent evenly over its items. Categories without items keep no items;
    they are left for the validator to report.
    """
    balanced = model.copy()
    if not balanced.categories:
        logging.warning("⚠️  No categories to balance")
        return balanced

    before = {c.name: c.total_probability * 100 for c in balanced.categories}
    shares = allocate_percent(100, len(balanced.categories))
    for category, percent in zip(balanced.categories, shares):
        category.total_probability = percent / 100
        if category.items:
            _balance_items(category, percent)

    after = {c.name: c.total_probability * 100 for c in balanced.categories}
    _log_percent_diff("categories", before, after)
    logging.info(f"⚖️  Balanced {len(shares)} categories: {', '.join(f'{p}%' for p in shares)}")
    return balanced


def auto_balance_items(model: ConfigModel, category_id: str) -> ConfigModel:
    """Spread one category's current whole percent evenly over its items."""
    balanced = model.copy()
    category = balanced.get_category(category_id)
    if not category.items:
        raise EmptyCategoryError(f'"{category.name}" has no items to balance; add an item first')
    percent = category.percent
    if percent < 0 or percent > 100:
        raise InvalidConfigError(
            f'"{category.name}" is at {percent}%: fix the category probability before balancing'
        )
    _balance_items(category, percent)
    logging.info(f'⚖️  Balanced {len(category.items)} item(s) of "{category.name}" over {percent}%')
    return balanced


def _balance_items(category: Category, percent: int) -> None:
    before = {i.name: i.probability * 100 for i in category.items}
    for item, share in zip(category.items, allocate_percent(percent, len(category.items))):
        item.probability = share / 100
    after = {i.name: i.probability * 100 for i in category.items}
    _log_percent_diff(f"items of {category.name}", before, after)


def _log_percent_diff(key: str, before: dict, after: dict) -> None:
    logging.debug(f"BALANCING: {key}")
    logging.debug(f"   Sum: {round(sum(before.values()), 6)} → {round(sum(after.values()), 6)}")
    any_changed = False
    for k in after:
        b = before.get(k, 0.0)
        a = after[k]
        if _changed(b, a):
            any_changed = True
            logging.debug(f"   • {k:>10}: {b:>6.1f}  →  {a:>6.1f}")
    if not any_changed:
        logging.debug("   • (no per-entry changes)")


def _changed(a, b, eps: float = 1e-9) -> bool:
    return abs(float(a) - float(b)) > eps


__all__ = ["allocate_percent", "auto_balance_categories", "auto_balance_items"]
