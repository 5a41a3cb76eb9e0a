"""
Daily draw records. At most one record per calendar day is expected; the
"once per day" policy itself lives in the service layer.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import asdict, dataclass, field, fields
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .errors import ActivityConfigError


def _day(value: date | str | None) -> str:
    if value is None:
        return date.today().isoformat()
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


@dataclass
class DrawRecord:
    id: str
    date: str  # YYYY-MM-DD
    category_name: str
    category_tag: str
    item_name: str
    payload: str
    custom_content: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)

    @classmethod
    def new(cls, day: date | str | None, **kwargs) -> "DrawRecord":
        return cls(id=f"card_{uuid.uuid4().hex[:12]}", date=_day(day), **kwargs)

    @property
    def label(self) -> str:
        """What to show the user: the custom text if any, else the item name."""
        return self.custom_content or self.item_name

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["created_at"] = self.created_at.isoformat(timespec="seconds")
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DrawRecord":
        try:
            data = {k: v for k, v in dict(data).items() if k in _RECORD_FIELDS}
            created = data.get("created_at")
            if isinstance(created, str):
                data["created_at"] = datetime.fromisoformat(created)
            elif created is None:
                data.pop("created_at", None)
            data["date"] = _day(data.get("date"))
            return cls(**data)
        except (TypeError, ValueError) as e:
            raise ActivityConfigError(f"Malformed draw record {data!r}: {e}") from None


_RECORD_FIELDS = {f.name for f in fields(DrawRecord)}


class DrawHistory:
    """Draw records kept in memory and, when `path` is given, mirrored to YAML."""

    def __init__(self, path: str | Path | None = None):
        self.path = Path(path) if path is not None else None
        self._records: list[DrawRecord] = self._load()

    def _load(self) -> list[DrawRecord]:
        if self.path is None or not self.path.exists():
            return []
        with open(self.path, "r", encoding="utf-8") as f:
            try:
                raw = yaml.safe_load(f) or []
            except yaml.YAMLError as e:
                raise ActivityConfigError(f"Cannot parse draw history {self.path}: {e}") from e
        if not isinstance(raw, list):
            raise ActivityConfigError(f"Draw history {self.path} must be a list of records")
        return [DrawRecord.from_dict(r) for r in raw]

    def _save(self) -> None:
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            yaml.safe_dump([r.to_dict() for r in self._records], f, sort_keys=False, allow_unicode=True)

    def records(self) -> list[DrawRecord]:
        return list(self._records)

    def add(self, record: DrawRecord) -> None:
        self._records.append(record)
        self._save()
        logging.debug(f"Recorded draw {record.label!r} for {record.date}")

    def today_record(self, today: date | str | None = None) -> Optional[DrawRecord]:
        day = _day(today)
        return next((r for r in self._records if r.date == day), None)

    def has_drawn(self, today: date | str | None = None) -> bool:
        return self.today_record(today) is not None

    def clear_day(self, day: date | str | None = None) -> bool:
        """Drop the records of one day (today by default). Returns False if there were none."""
        target = _day(day)
        kept = [r for r in self._records if r.date != target]
        if len(kept) == len(self._records):
            return False
        self._records = kept
        self._save()
        return True

    def recent(self, limit: Optional[int] = None) -> list[DrawRecord]:
        """Newest first."""
        ordered = sorted(self._records, key=lambda r: (r.date, r.created_at), reverse=True)
        return ordered[:limit] if limit else ordered

    def between(self, start: date | str, end: date | str) -> list[DrawRecord]:
        """Records with start <= date <= end, newest first."""
        lo, hi = _day(start), _day(end)
        return [r for r in self.recent() if lo <= r.date <= hi]


__all__ = ["DrawHistory", "DrawRecord"]
