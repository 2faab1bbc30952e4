from __future__ import annotations

import json
import secrets
import string
import time
from collections import Counter
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Callable, Mapping, Optional, Sequence

from warikan.config import get_settings
from warikan.logging import get_logger
from warikan.models import CalculationResult, CalculationType


HISTORY_VERSION = "1.0.0"

HIGH_AMOUNT_THRESHOLD = 10_000
LOW_AMOUNT_THRESHOLD = 1_000
LARGE_GROUP_THRESHOLD = 10
SMALL_GROUP_THRESHOLD = 3

_ID_ALPHABET = string.ascii_lowercase + string.digits


log = get_logger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


def extract_tags(result: CalculationResult) -> list[str]:
    tags: list[str] = []

    if result.total_amount >= HIGH_AMOUNT_THRESHOLD:
        tags.append("high_amount")
    elif result.total_amount <= LOW_AMOUNT_THRESHOLD:
        tags.append("low_amount")

    if result.number_of_people >= LARGE_GROUP_THRESHOLD:
        tags.append("large_group")
    elif result.number_of_people <= SMALL_GROUP_THRESHOLD:
        tags.append("small_group")

    if result.remainder > 0:
        tags.append("has_remainder")

    return tags


@dataclass(slots=True)
class HistoryEntry:
    id: str
    result: CalculationResult
    note: str = ""
    tags: Sequence[str] = field(default_factory=list)
    created_at: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "calculationResult": self.result.to_dict(),
            "note": self.note,
            "tags": list(self.tags),
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "HistoryEntry":
        return cls(
            id=str(data["id"]),
            result=CalculationResult.from_dict(data["calculationResult"]),
            note=str(data.get("note") or ""),
            tags=list(data.get("tags") or []),
            created_at=int(data.get("createdAt") or 0),
        )


@dataclass(slots=True)
class HistoryStatistics:
    total_entries: int
    total_amount: int
    average_amount: int
    most_common_type: CalculationType
    type_breakdown: dict[str, int]
    oldest_entry: Optional[int]
    newest_entry: Optional[int]


class HistoryLog:
    """История расчётов в памяти, новые записи идут первыми.

    Хранилище (localStorage, БД) сюда не входит: наружу история уходит
    через ``export_json`` и возвращается через ``import_json``.
    """

    def __init__(self, max_entries: Optional[int] = None, clock: Optional[Callable[[], int]] = None) -> None:
        if max_entries is None:
            max_entries = get_settings().history_max_entries
        if max_entries < 1:
            raise ValueError(f"max_entries must be positive, got {max_entries}")
        self.max_entries = max_entries
        self._clock = clock or _now_ms
        self._entries: list[HistoryEntry] = []
        self._created_at = self._clock()
        self._last_modified = self._created_at

    def __len__(self) -> int:
        return len(self._entries)

    def _generate_id(self) -> str:
        suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
        return f"history_{self._clock()}_{suffix}"

    def _touch(self) -> None:
        self._last_modified = self._clock()

    def _trim(self) -> None:
        if len(self._entries) > self.max_entries:
            dropped = len(self._entries) - self.max_entries
            del self._entries[self.max_entries :]
            log.info("history.trimmed", dropped=dropped, max_entries=self.max_entries)

    def save(self, result: CalculationResult, note: str = "") -> str:
        entry = HistoryEntry(
            id=self._generate_id(),
            result=result,
            note=note,
            tags=extract_tags(result),
            created_at=self._clock(),
        )
        self._entries.insert(0, entry)
        self._trim()
        self._touch()
        return entry.id

    def list_entries(
        self,
        *,
        calculation_type: CalculationType | str | None = None,
        date_from: Optional[int] = None,
        date_to: Optional[int] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[HistoryEntry]:
        entries = self._entries
        if calculation_type:
            try:
                wanted = CalculationType(calculation_type)
            except ValueError:
                return []
            entries = [entry for entry in entries if entry.result.type == wanted]
        if date_from is not None:
            entries = [entry for entry in entries if entry.created_at >= date_from]
        if date_to is not None:
            entries = [entry for entry in entries if entry.created_at <= date_to]
        return list(entries[offset : offset + limit])

    def get(self, entry_id: str) -> Optional[HistoryEntry]:
        for entry in self._entries:
            if entry.id == entry_id:
                return entry
        return None

    def delete(self, entry_id: str) -> bool:
        remaining = [entry for entry in self._entries if entry.id != entry_id]
        if len(remaining) == len(self._entries):
            return False
        self._entries = remaining
        self._touch()
        return True

    def clear(self) -> None:
        self._entries = []
        self._touch()

    def statistics(self) -> HistoryStatistics:
        if not self._entries:
            return HistoryStatistics(
                total_entries=0,
                total_amount=0,
                average_amount=0,
                most_common_type=CalculationType.EQUAL,
                type_breakdown={},
                oldest_entry=None,
                newest_entry=None,
            )

        total_amount = sum(entry.result.total_amount for entry in self._entries)
        breakdown = Counter(entry.result.type.value for entry in self._entries)
        average = (Decimal(total_amount) / Decimal(len(self._entries))).quantize(Decimal("1"), rounding=ROUND_HALF_UP)

        return HistoryStatistics(
            total_entries=len(self._entries),
            total_amount=total_amount,
            average_amount=int(average),
            most_common_type=CalculationType(breakdown.most_common(1)[0][0]),
            type_breakdown=dict(breakdown),
            oldest_entry=self._entries[-1].created_at,
            newest_entry=self._entries[0].created_at,
        )

    def export_json(self) -> str:
        payload = {
            "version": HISTORY_VERSION,
            "entries": [entry.to_dict() for entry in self._entries],
            "settings": {"maxEntries": self.max_entries, "autoCleanup": True},
            "metadata": {"createdAt": self._created_at, "lastModified": self._last_modified},
            "exportedAt": self._clock(),
        }
        return json.dumps(payload, ensure_ascii=False, indent=2)

    def import_json(self, payload: str, merge: bool = True) -> bool:
        try:
            data = json.loads(payload)
            raw_entries = data.get("entries") if isinstance(data, dict) else None
            if not isinstance(raw_entries, list):
                raise ValueError("history payload must contain an entries list")
            imported = [HistoryEntry.from_dict(item) for item in raw_entries]
        except (ValueError, KeyError, TypeError) as exc:
            log.warning("history.import.failed", error=str(exc))
            return False

        if merge:
            known = {entry.id for entry in self._entries}
            self._entries = [entry for entry in imported if entry.id not in known] + self._entries
        else:
            self._entries = imported
        self._trim()
        self._touch()
        log.info("history.imported", entries=len(imported), merge=merge)
        return True
