"""
Draw statistics for simulations.
Counts how often each category and item came up, without global variables.
"""

import threading
from dataclasses import dataclass, field
from typing import Any, Dict


@dataclass
class DrawMetrics:
    """Container for draw counts with thread-safe access."""

    categories: Dict[str, int] = field(default_factory=dict)
    items: Dict[str, int] = field(default_factory=dict)
    draws: int = 0

    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def record(self, category_name: str, item_name: str) -> None:
        """Thread-safe count update for one draw."""
        item_key = f"{category_name}/{item_name}"
        with self._lock:
            self.categories[category_name] = self.categories.get(category_name, 0) + 1
            self.items[item_key] = self.items.get(item_key, 0) + 1
            self.draws += 1

    def category_percentages(self) -> Dict[str, float]:
        with self._lock:
            if not self.draws:
                return {}
            return {k: v * 100.0 / self.draws for k, v in self.categories.items()}

    def item_percentages(self) -> Dict[str, float]:
        with self._lock:
            if not self.draws:
                return {}
            return {k: v * 100.0 / self.draws for k, v in self.items.items()}

    def get_summary(self) -> Dict[str, Any]:
        """Get a summary of all metrics."""
        with self._lock:
            return {
                "draws": self.draws,
                "categories": dict(self.categories),
                "items": dict(self.items),
            }
