"""
Two-stage weighted draw over a validated activity tree.

Stage one picks a category by its share of the whole tree, stage two picks
an item by its share of that category. Randomness comes from a `rand`
callable returning floats in [0, 1); pass a fixed sequence to replay a draw.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable, Optional

import numpy as np

from .config_model import Category, ConfigModel, Item
from .errors import EmptyCategoryError, InvalidConfigError
from .validator import validate

Rand = Callable[[], float]


def make_rand(seed: Optional[int] = None, rng: np.random.Generator | None = None) -> Rand:
    """Uniform [0, 1) source backed by a numpy Generator (seeded when `seed` is given)."""
    if rng is None:
        rng = np.random.default_rng(seed)
    return lambda: float(rng.random())


def sequence_rand(values: Iterable[float]) -> Rand:
    """Replay a fixed sequence of uniforms. Raises ValueError once exhausted."""
    it = iter(values)

    def _next() -> float:
        try:
            return float(next(it))
        except StopIteration:
            raise ValueError("rand sequence exhausted") from None

    return _next


def draw(model: ConfigModel, rand: Rand) -> tuple[Category, Item]:
    """Draw one (category, item) pair. The model must pass validation."""
    result = validate(model)
    if not result.valid:
        raise InvalidConfigError(f"Cannot draw from an invalid configuration: {result.message}", result)

    r1 = rand()
    category = _pick_category(model.categories, r1)
    if not category.items:
        raise EmptyCategoryError(f'"{category.name}" was drawn but has no items')

    r2 = rand()
    item = _pick_item(category, r2)
    logging.debug(f"🎴 Drew {category.name} / {item.name} (r1={r1:.4f}, r2={r2:.4f})")
    return category, item


def _pick_category(categories: list[Category], r: float) -> Category:
    cumulative = 0.0
    last = None
    for category in categories:
        # zero-share categories can never be drawn, even for r == 0
        if category.total_probability <= 0:
            continue
        cumulative += category.total_probability
        last = category
        if cumulative >= r:
            return category
    # totals may fall short of 1.0 by up to epsilon
    return last


def _pick_item(category: Category, r: float) -> Item:
    total = category.total_probability
    n = len(category.items)
    cumulative = 0.0
    last = None
    for item in category.items:
        # draw() never picks a zero-total category; the uniform branch serves direct callers
        weight = item.probability / total if total > 0 else 1.0 / n
        if weight <= 0:
            continue
        cumulative += weight
        last = item
        if cumulative >= r:
            return item
    # rounding left r unreached: fall back to the last drawable item
    return last if last is not None else category.items[-1]


__all__ = ["Rand", "draw", "make_rand", "sequence_rand"]
