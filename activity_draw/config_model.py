"""
================================================================================
 Activity Draw - Configuration Model
--------------------------------------------------------------------------------
 The two-level category -> item probability tree behind the evening activity
 card draw, plus the editing operations that keep it well formed.

 Probabilities are stored as fractions of the whole tree (0.30 == 30%).
 Item probabilities are shares of the whole tree too, not of their parent.
================================================================================
"""

from __future__ import annotations

import copy
import logging
import math
import uuid
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Dict, Iterable, Optional

from .errors import (
    ActivityConfigError,
    DuplicateNameError,
    EmptyNameError,
    InvalidConfigError,
    LimitExceededError,
    NotFoundError,
    OverAllocationError,
    ProtectedEntityError,
    TooLongError,
)

DISTINGUISHED_CATEGORY = "自定义"
EPSILON = 0.005  # integer-percent granularity: half a percent
CUSTOM_PAYLOAD = "custom"


class CardCategory(str, Enum):
    """Closed classification label of a category. Not used for sampling."""

    RESEARCH = "research"
    APPRECIATION = "appreciation"
    LEARNING = "learning"
    ENTERTAINMENT = "entertainment"
    OUTDOOR = "outdoor"
    CUSTOM = "custom"

    @classmethod
    def parse(cls, value: Any) -> "CardCategory":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            allowed = [t.value for t in cls]
            raise ActivityConfigError(f"Unknown category tag {value!r} (expected one of {allowed})") from None


def to_percent(probability: float) -> int:
    """Fraction -> whole percent, halves rounded up (0.345 -> 35, -0.045 -> -4)."""
    return int(math.floor(float(probability) * 100 + 0.5))


def _new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


def _clean_name(name: Any, what: str) -> str:
    cleaned = str(name if name is not None else "").strip()
    if not cleaned:
        raise EmptyNameError(f"{what} name cannot be empty")
    return cleaned


def _check_fraction(value: Any, what: str) -> float:
    p = float(value)
    if p < 0.0 or p > 1.0:
        raise InvalidConfigError(f"{what} must be between 0% and 100%, got {p * 100:.1f}%")
    return p


@dataclass
class Limits:
    """Name-length and entity-count bounds (the stricter source variant)."""

    category_name_max: int = 4
    item_name_max: int = 5
    max_categories: int = 20
    max_items_per_category: int = 20
    custom_content_max: int = 20

    @classmethod
    def from_config(cls, config: Optional[Dict[str, Any]]) -> "Limits":
        """Construct from the `limits:` section of a merged config. Extra keys are ignored."""
        section = (config or {}).get("limits") or {}
        allowed = {f.name for f in fields(cls)}
        return cls(**{k: int(section[k]) for k in section.keys() & allowed})


@dataclass
class Policy:
    """Behavioural switches read from the `policy:` section."""

    distinguished_category: str = DISTINGUISHED_CATEGORY
    epsilon: float = EPSILON
    reject_over_allocation: bool = False
    new_category_name: str = "分类"
    new_item_name: str = "新活动"
    custom_payload: str = CUSTOM_PAYLOAD

    @classmethod
    def from_config(cls, config: Optional[Dict[str, Any]]) -> "Policy":
        section = (config or {}).get("policy") or {}
        allowed = {f.name for f in fields(cls)}
        return cls(**{k: section[k] for k in section.keys() & allowed})


@dataclass
class Item:
    id: str
    name: str
    probability: float = 0.0
    payload: str = CUSTOM_PAYLOAD

    def __post_init__(self):
        self.name = _clean_name(self.name, "Item")
        self.probability = float(self.probability)
        self.payload = str(self.payload)

    @property
    def percent(self) -> int:
        return to_percent(self.probability)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "percent": round(self.probability * 100, 4),
            "payload": self.payload,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Item":
        try:
            return cls(
                id=str(data["id"]),
                name=data["name"],
                probability=float(data.get("percent", 0)) / 100,
                payload=data.get("payload", CUSTOM_PAYLOAD),
            )
        except ActivityConfigError:
            raise
        except KeyError as e:
            raise ActivityConfigError(f"Item record is missing field {e.args[0]!r}: {data!r}") from None
        except (TypeError, ValueError) as e:
            raise ActivityConfigError(f"Malformed item record {data!r}: {e}") from None


@dataclass
class Category:
    id: str
    name: str
    tag: CardCategory = CardCategory.CUSTOM
    total_probability: float = 0.0
    items: list[Item] = field(default_factory=list)

    def __post_init__(self):
        self.name = _clean_name(self.name, "Category")
        self.tag = CardCategory.parse(self.tag)
        self.total_probability = float(self.total_probability)

    @property
    def percent(self) -> int:
        return to_percent(self.total_probability)

    def items_total(self) -> float:
        return sum(item.probability for item in self.items)

    def find_item(self, item_id: str) -> Optional[Item]:
        return next((i for i in self.items if i.id == item_id), None)

    def get_item(self, item_id: str) -> Item:
        item = self.find_item(item_id)
        if item is None:
            raise NotFoundError(f"Item {item_id!r} not found in category {self.name!r}")
        return item

    def item_by_name(self, name: str) -> Optional[Item]:
        return next((i for i in self.items if i.name == name), None)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "tag": self.tag.value,
            "percent": round(self.total_probability * 100, 4),
            "items": [item.to_dict() for item in self.items],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Category":
        try:
            return cls(
                id=str(data["id"]),
                name=data["name"],
                tag=data.get("tag", CardCategory.CUSTOM.value),
                total_probability=float(data.get("percent", 0)) / 100,
                items=[Item.from_dict(i) for i in data.get("items") or []],
            )
        except ActivityConfigError:
            raise
        except KeyError as e:
            raise ActivityConfigError(f"Category record is missing field {e.args[0]!r}: {data!r}") from None
        except (TypeError, ValueError) as e:
            raise ActivityConfigError(f"Malformed category record {data!r}: {e}") from None


@dataclass
class ConfigModel:
    """
    Ordered categories, each holding ordered items.

    Every mutating method checks all of its preconditions before writing
    anything, so a rejected edit leaves the model untouched.
    """

    categories: list[Category] = field(default_factory=list)
    limits: Limits = field(default_factory=Limits)
    policy: Policy = field(default_factory=Policy)

    # -------- lookups --------

    def find_category(self, category_id: str) -> Optional[Category]:
        return next((c for c in self.categories if c.id == category_id), None)

    def get_category(self, category_id: str) -> Category:
        category = self.find_category(category_id)
        if category is None:
            raise NotFoundError(f"Category {category_id!r} not found")
        return category

    def category_by_name(self, name: str) -> Optional[Category]:
        return next((c for c in self.categories if c.name == name), None)

    def get_category_by_name(self, name: str) -> Category:
        category = self.category_by_name(name)
        if category is None:
            raise NotFoundError(f"Category named {name!r} not found")
        return category

    @property
    def distinguished(self) -> Optional[Category]:
        return self.category_by_name(self.policy.distinguished_category)

    def is_distinguished(self, category: Category) -> bool:
        return category.name == self.policy.distinguished_category

    def total_probability(self) -> float:
        return sum(c.total_probability for c in self.categories)

    def item_count(self) -> int:
        return sum(len(c.items) for c in self.categories)

    # -------- names --------

    def _check_name(self, name: Any, *, max_len: int, what: str) -> str:
        cleaned = _clean_name(name, what)
        if len(cleaned) > max_len:
            raise TooLongError(f"{what} name {cleaned!r} is longer than {max_len} characters")
        return cleaned

    def next_category_name(self, base: Optional[str] = None) -> str:
        """First free name of the form base, base1, base2, ..."""
        base = base or self.policy.new_category_name
        name, counter = base, 1
        while self.category_by_name(name) is not None:
            name = f"{base}{counter}"
            counter += 1
        return name

    def next_item_name(self, category_id: str, base: Optional[str] = None) -> str:
        category = self.get_category(category_id)
        base = base or self.policy.new_item_name
        name, counter = base, 1
        while category.item_by_name(name) is not None:
            name = f"{base}{counter}"
            counter += 1
        return name

    # -------- categories --------

    def create_category(self, name: str, tag: CardCategory | str = CardCategory.CUSTOM) -> Category:
        if len(self.categories) >= self.limits.max_categories:
            raise LimitExceededError(
                f"At most {self.limits.max_categories} categories can be created"
            )
        cleaned = self._check_name(name, max_len=self.limits.category_name_max, what="Category")
        if self.category_by_name(cleaned) is not None:
            raise DuplicateNameError(f'Category name "{cleaned}" already exists')
        category = Category(id=_new_id("category"), name=cleaned, tag=CardCategory.parse(tag))

        pinned = self.distinguished
        if pinned is not None:
            self.categories.insert(self.categories.index(pinned), category)
        else:
            self.categories.append(category)
        logging.debug(f"Created category {category.name!r} ({category.id})")
        return category

    def update_category(
        self,
        category_id: str,
        *,
        name: Optional[str] = None,
        probability: Optional[float] = None,
    ) -> Category:
        """Rename and/or re-weight a category; the distinguished share is recomputed afterwards."""
        category = self.get_category(category_id)

        new_name = None
        if name is not None:
            new_name = self._check_name(name, max_len=self.limits.category_name_max, what="Category")
            clash = self.category_by_name(new_name)
            if clash is not None and clash.id != category.id:
                raise DuplicateNameError(f'Category name "{new_name}" already exists')
            if new_name != category.name and (
                self.is_distinguished(category) or new_name == self.policy.distinguished_category
            ):
                raise ProtectedEntityError(
                    f'Category "{self.policy.distinguished_category}" cannot be renamed or taken over'
                )

        new_probability = None
        if probability is not None:
            if self.is_distinguished(category):
                raise ProtectedEntityError(
                    f'Probability of "{category.name}" is derived from the other categories'
                )
            new_probability = _check_fraction(probability, f'Probability of "{category.name}"')
            if self.policy.reject_over_allocation:
                remaining = self._distinguished_share({category.id: new_probability})
                if remaining is not None and remaining < 0:
                    raise OverAllocationError(
                        f'Other categories would total {(1 - remaining) * 100:.1f}%, leaving '
                        f'"{self.policy.distinguished_category}" at {remaining * 100:.1f}%'
                    )

        if new_name is not None:
            category.name = new_name
        if new_probability is not None:
            category.total_probability = new_probability
            self.recompute_distinguished()
        return category

    def rename_category(self, category_id: str, name: str) -> Category:
        return self.update_category(category_id, name=name)

    def set_category_probability(self, category_id: str, probability: float) -> Category:
        return self.update_category(category_id, probability=probability)

    def delete_category(self, category_id: str) -> Category:
        """Remove a category together with all of its items."""
        category = self.get_category(category_id)
        if self.is_distinguished(category):
            raise ProtectedEntityError(f'Category "{category.name}" cannot be deleted')
        self.categories.remove(category)
        self.recompute_distinguished()
        logging.debug(f"Deleted category {category.name!r} with {len(category.items)} item(s)")
        return category

    def reorder(self, category_ids: Iterable[str]) -> None:
        """Replace the category order. The distinguished category always ends up last."""
        ids = list(category_ids)
        by_id = {c.id: c for c in self.categories}
        unknown = [i for i in ids if i not in by_id]
        if unknown:
            raise NotFoundError(f"Unknown category id(s) in reorder: {unknown}")
        pinned = self.distinguished
        ids = [i for i in ids if pinned is None or i != pinned.id]
        movable = [c.id for c in self.categories if c is not pinned]
        if sorted(ids) != sorted(movable):
            raise ActivityConfigError("Reorder must list every category exactly once")
        self.categories = [by_id[i] for i in ids] + ([pinned] if pinned is not None else [])

    # -------- items --------

    def create_item(self, category_id: str, name: str, payload: str = CUSTOM_PAYLOAD) -> Item:
        category = self.get_category(category_id)
        if len(category.items) >= self.limits.max_items_per_category:
            raise LimitExceededError(
                f'Category "{category.name}" already holds '
                f"{self.limits.max_items_per_category} items"
            )
        cleaned = self._check_name(name, max_len=self.limits.item_name_max, what="Item")
        if category.item_by_name(cleaned) is not None:
            raise DuplicateNameError(f'Item name "{cleaned}" already exists in "{category.name}"')
        item = Item(id=_new_id("item"), name=cleaned, payload=payload)
        category.items.append(item)
        logging.debug(f"Created item {item.name!r} in {category.name!r}")
        return item

    def update_item(
        self,
        category_id: str,
        item_id: str,
        *,
        name: Optional[str] = None,
        probability: Optional[float] = None,
    ) -> Item:
        category = self.get_category(category_id)
        item = category.get_item(item_id)

        new_name = None
        if name is not None:
            new_name = self._check_name(name, max_len=self.limits.item_name_max, what="Item")
            clash = category.item_by_name(new_name)
            if clash is not None and clash.id != item.id:
                raise DuplicateNameError(
                    f'Item name "{new_name}" already exists in "{category.name}"'
                )
        new_probability = None
        if probability is not None:
            new_probability = _check_fraction(probability, f'Probability of "{item.name}"')

        if new_name is not None:
            item.name = new_name
        if new_probability is not None:
            item.probability = new_probability
        return item

    def rename_item(self, category_id: str, item_id: str, name: str) -> Item:
        return self.update_item(category_id, item_id, name=name)

    def set_item_probability(self, category_id: str, item_id: str, probability: float) -> Item:
        return self.update_item(category_id, item_id, probability=probability)

    def delete_item(self, category_id: str, item_id: str) -> Item:
        category = self.get_category(category_id)
        item = category.get_item(item_id)
        category.items.remove(item)
        return item

    def reorder_items(self, category_id: str, item_ids: Iterable[str]) -> None:
        category = self.get_category(category_id)
        ids = list(item_ids)
        by_id = {i.id: i for i in category.items}
        unknown = [i for i in ids if i not in by_id]
        if unknown:
            raise NotFoundError(f'Unknown item id(s) in "{category.name}": {unknown}')
        if sorted(ids) != sorted(by_id):
            raise ActivityConfigError("Reorder must list every item exactly once")
        category.items = [by_id[i] for i in ids]

    # -------- distinguished category --------

    def _distinguished_share(self, overrides: Optional[Dict[str, float]] = None) -> Optional[float]:
        pinned = self.distinguished
        if pinned is None:
            return None
        overrides = overrides or {}
        others = sum(
            overrides.get(c.id, c.total_probability)
            for c in self.categories
            if c is not pinned
        )
        return round(1.0 - others, 6)

    def recompute_distinguished(self) -> Optional[float]:
        """Set the distinguished category to 1 - sum(others). Negative values are kept."""
        share = self._distinguished_share()
        if share is None:
            return None
        pinned = self.distinguished
        pinned.total_probability = share
        if share < 0:
            logging.warning(
                f'⚠️  "{pinned.name}" is at {share * 100:.1f}%: other categories exceed 100%'
            )
        return share

    # -------- copying / serialization --------

    def copy(self) -> "ConfigModel":
        return copy.deepcopy(self)

    def to_dict(self) -> Dict[str, Any]:
        return {"categories": [c.to_dict() for c in self.categories]}

    @classmethod
    def from_dict(
        cls,
        data: Dict[str, Any] | list,
        *,
        limits: Optional[Limits] = None,
        policy: Optional[Policy] = None,
    ) -> "ConfigModel":
        """Accepts {"categories": [...]} or a bare list of category records."""
        records = data.get("categories") if isinstance(data, dict) else data
        if not isinstance(records, list):
            raise ActivityConfigError("Activity config must be a list of category records")
        return cls(
            categories=[Category.from_dict(r) for r in records],
            limits=limits or Limits(),
            policy=policy or Policy(),
        )


__all__ = [
    "CUSTOM_PAYLOAD",
    "DISTINGUISHED_CATEGORY",
    "EPSILON",
    "CardCategory",
    "Category",
    "ConfigModel",
    "Item",
    "Limits",
    "Policy",
    "to_percent",
]
