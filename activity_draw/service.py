"""
================================================================================
 Activity Draw - Editing Session & Draw Trigger
--------------------------------------------------------------------------------
 Glue between the probability tree, its store and the daily draw history.

 Each edit is applied to a copy of the current tree and the copy is saved as
 a whole. Draws always use the last tree that passed validation, so an
 edit in progress never changes what can be drawn.
================================================================================
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Callable, Dict, Iterable, NamedTuple, Optional, TypeVar

from . import config_manager
from .balancer import auto_balance_categories, auto_balance_items
from .config_model import CardCategory, Category, ConfigModel, Item, Limits, Policy
from .errors import AlreadyDrawnError, EmptyNameError, TooLongError
from .history import DrawHistory, DrawRecord
from .sampler import Rand, draw, make_rand
from .store import ConfigStore, default_model, load_or_create, store_from_config
from .validator import ValidationResult, validate

T = TypeVar("T")


class DrawOutcome(NamedTuple):
    category_name: str
    item_name: str
    payload: str


class ActivityDrawService:
    def __init__(
        self,
        store: ConfigStore,
        config: Optional[Dict[str, Any]] = None,
        *,
        history: Optional[DrawHistory] = None,
        rand: Optional[Rand] = None,
    ):
        self.config = config if config is not None else config_manager.load_defaults()
        self.store = store
        self.history = history if history is not None else DrawHistory()
        self.rand = rand or make_rand()
        self.limits = Limits.from_config(self.config)
        self.policy = Policy.from_config(self.config)
        self._model: Optional[ConfigModel] = None
        self._last_valid: Optional[ConfigModel] = None

    @classmethod
    def from_config(cls, config: Dict[str, Any], *, rand: Optional[Rand] = None) -> "ActivityDrawService":
        history_path = (config.get("store") or {}).get("history_path")
        return cls(store_from_config(config), config, history=DrawHistory(history_path), rand=rand)

    # -------- model lifecycle --------

    @property
    def model(self) -> ConfigModel:
        if self._model is None:
            model = load_or_create(self.store, self.config)
            model.limits = self.limits
            model.policy = self.policy
            self._model = model
            self._remember_if_valid(model)
        return self._model

    @property
    def drawable_model(self) -> ConfigModel:
        """The last tree that passed validation, else the current one."""
        current = self.model
        return self._last_valid if self._last_valid is not None else current

    def reload(self) -> ConfigModel:
        """Re-read the tree from the store after it was written elsewhere."""
        self._model = None
        return self.model

    def _remember_if_valid(self, model: ConfigModel) -> ValidationResult:
        result = validate(model)
        if result.valid:
            self._last_valid = model.copy()
        return result

    def _commit(self, model: ConfigModel) -> None:
        self.store.save(model)
        self._model = model
        result = self._remember_if_valid(model)
        if not result.valid:
            logging.warning(f"⚠️  Saved, but not drawable yet: {result.message}")

    def _edit(self, change: Callable[[ConfigModel], T]) -> T:
        working = self.model.copy()
        outcome = change(working)
        self._commit(working)
        return outcome

    def validate(self) -> ValidationResult:
        return validate(self.model)

    def reset(self) -> ConfigModel:
        """Replace the stored tree with the default one."""
        model = default_model(self.config)
        model.limits = self.limits
        model.policy = self.policy
        self._commit(model)
        logging.info("🔄 Activity config reset to defaults")
        return model

    # -------- categories --------

    def add_category(self, name: Optional[str] = None, tag: CardCategory | str = CardCategory.CUSTOM) -> Category:
        return self._edit(lambda m: m.create_category(name or m.next_category_name(), tag))

    def update_category(
        self, category_id: str, *, name: Optional[str] = None, probability: Optional[float] = None
    ) -> Category:
        return self._edit(lambda m: m.update_category(category_id, name=name, probability=probability))

    def delete_category(self, category_id: str) -> Category:
        return self._edit(lambda m: m.delete_category(category_id))

    def reorder(self, category_ids: Iterable[str]) -> None:
        ids = list(category_ids)
        self._edit(lambda m: m.reorder(ids))

    # -------- items --------

    def add_item(self, category_id: str, name: Optional[str] = None, payload: Optional[str] = None) -> Item:
        payload = payload or self.policy.custom_payload
        return self._edit(
            lambda m: m.create_item(category_id, name or m.next_item_name(category_id), payload)
        )

    def update_item(
        self,
        category_id: str,
        item_id: str,
        *,
        name: Optional[str] = None,
        probability: Optional[float] = None,
    ) -> Item:
        return self._edit(
            lambda m: m.update_item(category_id, item_id, name=name, probability=probability)
        )

    def delete_item(self, category_id: str, item_id: str) -> Item:
        return self._edit(lambda m: m.delete_item(category_id, item_id))

    def reorder_items(self, category_id: str, item_ids: Iterable[str]) -> None:
        ids = list(item_ids)
        self._edit(lambda m: m.reorder_items(category_id, ids))

    # -------- balancing --------

    def auto_balance(self) -> ConfigModel:
        balanced = auto_balance_categories(self.model)
        self._commit(balanced)
        return balanced

    def auto_balance_items(self, category_id: str) -> ConfigModel:
        balanced = auto_balance_items(self.model, category_id)
        self._commit(balanced)
        return balanced

    # -------- drawing --------

    def _draw(self) -> tuple[Category, Item]:
        # with nothing valid yet the sampler reports why
        source = self.drawable_model
        if source is not self.model and not validate(self.model).valid:
            logging.warning("⚠️  Current config is invalid; drawing from the last valid one")
        return draw(source, self.rand)

    def request_draw(self) -> DrawOutcome:
        """One draw, no bookkeeping."""
        category, item = self._draw()
        return DrawOutcome(category.name, item.name, item.payload)

    def draw_today(self, today: date | str | None = None) -> DrawRecord:
        """
        Draw today's card. Regular cards are recorded immediately; a custom
        card is returned unsaved and must be completed with confirm_custom().
        """
        if self.history.has_drawn(today):
            raise AlreadyDrawnError("Today's card has already been drawn; come back tomorrow")
        category, item = self._draw()
        record = DrawRecord.new(
            today,
            category_name=category.name,
            category_tag=category.tag.value,
            item_name=item.name,
            payload=item.payload,
        )
        if item.payload == self.policy.custom_payload:
            logging.info(f"🎴 Drew {item.name}: enter what you want to do tonight")
            return record
        self.history.add(record)
        logging.info(f"🎴 Today's card: {category.name} / {item.name}")
        return record

    def confirm_custom(self, record: DrawRecord, content: str) -> DrawRecord:
        text = str(content or "").strip()
        if not text:
            raise EmptyNameError("Custom content cannot be empty")
        if len(text) > self.limits.custom_content_max:
            raise TooLongError(f"Custom content cannot exceed {self.limits.custom_content_max} characters")
        if self.history.has_drawn(record.date):
            raise AlreadyDrawnError(f"A card for {record.date} has already been recorded")
        record.custom_content = text
        self.history.add(record)
        logging.info(f"🎴 Today's card: {record.category_name} / {text}")
        return record

    def clear_today(self, today: date | str | None = None) -> bool:
        return self.history.clear_day(today)


__all__ = ["ActivityDrawService", "DrawOutcome"]
