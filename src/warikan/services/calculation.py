from __future__ import annotations

import math
import time
from fractions import Fraction
from typing import Callable, Optional, TypeGuard

from warikan.models import (
    MAX_BURDEN_PERCENT,
    MAX_PEOPLE,
    MAX_REDUCTION_PERCENT,
    MAX_TOTAL_AMOUNT,
    MIN_BURDEN_PERCENT,
    MIN_PEOPLE,
    MIN_REDUCTION_PERCENT,
    MIN_TOTAL_AMOUNT,
    CalculationInput,
    CalculationResult,
    CalculationType,
    EqualSplit,
    OrganizerFixedSplit,
    OrganizerLessSplit,
    OrganizerMoreSplit,
)


Clock = Callable[[], int]


class CalculationError(ValueError):
    pass


class InvalidInputError(CalculationError):
    def __init__(self, message: str, code: Optional[str] = None) -> None:
        super().__init__(message)
        self.code = code


class UnknownCalculationTypeError(CalculationError):
    pass


def _now_ms() -> int:
    return int(time.time() * 1000)


def _is_int(value: object) -> TypeGuard[int]:
    return isinstance(value, int) and not isinstance(value, bool)


def _require_int_in_range(name: str, value: object, low: int, high: Optional[int] = None) -> None:
    if not _is_int(value):
        raise InvalidInputError(f"{name} must be an integer")
    if value < low or (high is not None and value > high):
        bounds = f"{low}..{high}" if high is not None else f">= {low}"
        raise InvalidInputError(f"{name} must be within {bounds}, got {value}")


def _floor_share(total_amount: int, rate: Fraction, number_of_people: int) -> int:
    return math.floor(total_amount * rate / number_of_people)


class CalculationEngine:
    """Считает раздел счёта по одной из четырёх схем.

    Движок не хранит состояния: от внешнего мира он зависит только через часы,
    из которых берётся ``timestamp`` результата.
    """

    def __init__(self, clock: Optional[Clock] = None) -> None:
        self._clock = clock or _now_ms

    def calculate(self, split: CalculationInput) -> CalculationResult:
        if not isinstance(split, (EqualSplit, OrganizerMoreSplit, OrganizerLessSplit, OrganizerFixedSplit)):
            raise UnknownCalculationTypeError(f"Unknown calculation type: {getattr(split, 'type', split)!r}")

        self.validate(split)
        timestamp = self._clock()

        if isinstance(split, OrganizerMoreSplit):
            return self._organizer_more(split, timestamp)
        if isinstance(split, OrganizerLessSplit):
            return self._organizer_less(split, timestamp)
        if isinstance(split, OrganizerFixedSplit):
            return self._organizer_fixed(split, timestamp)
        return self._equal(split.total_amount, split.number_of_people, timestamp)

    def validate(self, split: CalculationInput) -> None:
        _require_int_in_range("total_amount", split.total_amount, MIN_TOTAL_AMOUNT, MAX_TOTAL_AMOUNT)
        _require_int_in_range("number_of_people", split.number_of_people, MIN_PEOPLE, MAX_PEOPLE)

        if isinstance(split, OrganizerMoreSplit):
            _require_int_in_range("burden_percent", split.burden_percent, MIN_BURDEN_PERCENT, MAX_BURDEN_PERCENT)
        elif isinstance(split, OrganizerLessSplit):
            _require_int_in_range(
                "reduction_percent", split.reduction_percent, MIN_REDUCTION_PERCENT, MAX_REDUCTION_PERCENT
            )
        elif isinstance(split, OrganizerFixedSplit):
            _require_int_in_range("fixed_amount", split.fixed_amount, 0)

    def _equal(self, total_amount: int, number_of_people: int, timestamp: int) -> CalculationResult:
        per_person, remainder = divmod(total_amount, number_of_people)
        return CalculationResult(
            type=CalculationType.EQUAL,
            total_amount=total_amount,
            number_of_people=number_of_people,
            per_person=per_person,
            organizer_payment=per_person,
            participant_payment=per_person,
            remainder=remainder,
            timestamp=timestamp,
        )

    def _organizer_more(self, split: OrganizerMoreSplit, timestamp: int) -> CalculationResult:
        total, n = split.total_amount, split.number_of_people
        if n == 1:
            return self._equal(total, n, timestamp)

        organizer_rate = 1 + Fraction(split.burden_percent, 100)
        participant_rate = (n - organizer_rate) / (n - 1)
        if participant_rate <= 0:
            return self._equal(total, n, timestamp)

        organizer_payment = _floor_share(total, organizer_rate, n)
        participant_payment = _floor_share(total, participant_rate, n)

        # Излишек от округления целиком уходит организатору
        shortfall = total - (organizer_payment + participant_payment * (n - 1))
        if shortfall > 0:
            organizer_payment += shortfall
        elif shortfall < 0:
            participant_payment += abs(shortfall)

        return CalculationResult(
            type=CalculationType.ORGANIZER_MORE,
            total_amount=total,
            number_of_people=n,
            per_person=participant_payment,
            organizer_payment=organizer_payment,
            participant_payment=participant_payment,
            remainder=0,
            timestamp=timestamp,
            organizer_burden_percent=split.burden_percent,
        )

    def _organizer_less(self, split: OrganizerLessSplit, timestamp: int) -> CalculationResult:
        total, n = split.total_amount, split.number_of_people
        if n == 1:
            return self._equal(total, n, timestamp)

        organizer_rate = 1 - Fraction(split.reduction_percent, 100)
        participant_rate = (n - organizer_rate) / (n - 1)
        if organizer_rate <= 0 or participant_rate <= 0:
            return self._equal(total, n, timestamp)

        organizer_payment = _floor_share(total, organizer_rate, n)
        participant_payment = _floor_share(total, participant_rate, n)

        remainder = 0
        shortfall = total - (organizer_payment + participant_payment * (n - 1))
        if shortfall > 0:
            per_head = shortfall // (n - 1)
            participant_payment += per_head
            remainder = shortfall - per_head * (n - 1)
        elif shortfall < 0:
            organizer_payment += abs(shortfall)

        return CalculationResult(
            type=CalculationType.ORGANIZER_LESS,
            total_amount=total,
            number_of_people=n,
            per_person=participant_payment,
            organizer_payment=organizer_payment,
            participant_payment=participant_payment,
            remainder=remainder,
            timestamp=timestamp,
            organizer_reduction_percent=split.reduction_percent,
        )

    def _organizer_fixed(self, split: OrganizerFixedSplit, timestamp: int) -> CalculationResult:
        total, n, fixed = split.total_amount, split.number_of_people, split.fixed_amount
        participant_count = n - 1
        if fixed >= total or fixed < 0 or participant_count <= 0:
            return self._equal(total, n, timestamp)

        participant_payment, remainder = divmod(total - fixed, participant_count)
        return CalculationResult(
            type=CalculationType.ORGANIZER_FIXED,
            total_amount=total,
            number_of_people=n,
            per_person=participant_payment,
            organizer_payment=fixed,
            participant_payment=participant_payment,
            remainder=remainder,
            timestamp=timestamp,
            organizer_fixed_amount=fixed,
        )


calculation_engine = CalculationEngine()


def calculate(split: CalculationInput) -> CalculationResult:
    return calculation_engine.calculate(split)
