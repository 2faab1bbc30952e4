from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional, Union


MIN_TOTAL_AMOUNT = 1
MAX_TOTAL_AMOUNT = 10_000_000_000
MIN_PEOPLE = 1
MAX_PEOPLE = 9_999
MIN_BURDEN_PERCENT, MAX_BURDEN_PERCENT = 1, 100
MIN_REDUCTION_PERCENT, MAX_REDUCTION_PERCENT = 1, 99


class CalculationType(str, Enum):
    EQUAL = "equal"
    ORGANIZER_MORE = "organizer_more"
    ORGANIZER_LESS = "organizer_less"
    ORGANIZER_FIXED = "organizer_fixed"


@dataclass(frozen=True, slots=True)
class EqualSplit:
    total_amount: int
    number_of_people: int

    @property
    def type(self) -> CalculationType:
        return CalculationType.EQUAL


@dataclass(frozen=True, slots=True)
class OrganizerMoreSplit:
    total_amount: int
    number_of_people: int
    burden_percent: int

    @property
    def type(self) -> CalculationType:
        return CalculationType.ORGANIZER_MORE


@dataclass(frozen=True, slots=True)
class OrganizerLessSplit:
    total_amount: int
    number_of_people: int
    reduction_percent: int

    @property
    def type(self) -> CalculationType:
        return CalculationType.ORGANIZER_LESS


@dataclass(frozen=True, slots=True)
class OrganizerFixedSplit:
    total_amount: int
    number_of_people: int
    fixed_amount: int

    @property
    def type(self) -> CalculationType:
        return CalculationType.ORGANIZER_FIXED


CalculationInput = Union[EqualSplit, OrganizerMoreSplit, OrganizerLessSplit, OrganizerFixedSplit]


@dataclass(frozen=True, slots=True)
class CalculationResult:
    type: CalculationType
    total_amount: int
    number_of_people: int
    per_person: int
    organizer_payment: int
    participant_payment: int
    remainder: int
    timestamp: int
    organizer_burden_percent: Optional[int] = None
    organizer_reduction_percent: Optional[int] = None
    organizer_fixed_amount: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        """Словарь в camelCase-формате, который понимают история и шаринг."""
        data: dict[str, Any] = {
            "type": self.type.value,
            "totalAmount": self.total_amount,
            "numberOfPeople": self.number_of_people,
            "perPerson": self.per_person,
            "remainder": self.remainder,
            "organizerPayment": self.organizer_payment,
            "participantPayment": self.participant_payment,
        }
        if self.organizer_burden_percent is not None:
            data["organizerBurdenPercent"] = self.organizer_burden_percent
        if self.organizer_reduction_percent is not None:
            data["organizerReductionPercent"] = self.organizer_reduction_percent
        if self.organizer_fixed_amount is not None:
            data["organizerFixedAmount"] = self.organizer_fixed_amount
        data["timestamp"] = self.timestamp
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CalculationResult":
        return cls(
            type=CalculationType(data.get("type") or CalculationType.EQUAL.value),
            total_amount=int(data["totalAmount"]),
            number_of_people=int(data["numberOfPeople"]),
            per_person=int(data["perPerson"]),
            organizer_payment=int(data["organizerPayment"]),
            participant_payment=int(data["participantPayment"]),
            remainder=int(data["remainder"]),
            timestamp=int(data["timestamp"]),
            organizer_burden_percent=_optional_int(data.get("organizerBurdenPercent")),
            organizer_reduction_percent=_optional_int(data.get("organizerReductionPercent")),
            organizer_fixed_amount=_optional_int(data.get("organizerFixedAmount")),
        )


def _optional_int(value: Any) -> Optional[int]:
    return None if value is None else int(value)
