from __future__ import annotations

import math
import re
from decimal import Decimal
from typing import Annotated, Any, Mapping, Optional

from annotated_types import Ge, Le
from pydantic import AfterValidator, AliasChoices, BaseModel, BeforeValidator, ConfigDict, Field, ValidationError
from pydantic_core import PydanticCustomError

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
    CalculationType,
    EqualSplit,
    OrganizerFixedSplit,
    OrganizerLessSplit,
    OrganizerMoreSplit,
)
from warikan.services.calculation import InvalidInputError, UnknownCalculationTypeError


_NUMBER_RE = re.compile(r"[+-]?(\d+(\.\d*)?|\.\d+)")

ERROR_MESSAGES = {
    "PRICE_EMPTY": "金額を入力してください",
    "PRICE_NAN": "有効な数字を入力してください",
    "PRICE_TOO_SMALL": "金額は1円以上で入力してください",
    "PRICE_TOO_LARGE": "金額が大きすぎます。100億円以下で入力してください",
    "PRICE_DECIMAL": "金額は整数で入力してください",
    "COUNT_EMPTY": "人数を入力してください",
    "COUNT_NAN": "有効な数字を入力してください",
    "COUNT_TOO_SMALL": "人数は1人以上で入力してください",
    "COUNT_TOO_LARGE": "人数が多すぎます。9999人以下で入力してください",
    "COUNT_DECIMAL": "人数は整数で入力してください",
    "PARAM_MISSING": "幹事の負担条件を入力してください",
    "PARAM_INVALID": "幹事の負担条件が正しくありません",
}

# Поле формы -> префикс кода ошибки; всё прочее считается параметром схемы
_FIELD_PREFIXES = {"totalAmount": "PRICE", "numberOfPeople": "COUNT"}

_ERROR_SUFFIXES = {
    "missing": "EMPTY",
    "empty": "EMPTY",
    "nan": "NAN",
    "decimal": "DECIMAL",
    "greater_than_equal": "TOO_SMALL",
    "less_than_equal": "TOO_LARGE",
}


def _coerce_form_number(value: Any) -> Decimal:
    """Строгое приведение значения формы к числу.

    Принимаются ``int``, конечные ``float`` и десятичные строки. Всё остальное
    отклоняется, молчаливого приведения нечисловых строк нет. Дробная часть
    проверяется уже после границ диапазона.
    """
    if isinstance(value, bool):
        raise PydanticCustomError("nan", "value is not a number")
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        if not math.isfinite(value):
            raise PydanticCustomError("nan", "value is not a number")
        return Decimal(repr(value))
    if isinstance(value, str):
        text = value.strip()
        if not text:
            raise PydanticCustomError("empty", "value is empty")
        if _NUMBER_RE.fullmatch(text):
            return Decimal(text)
    raise PydanticCustomError("nan", "value is not a number")


def _require_integral(value: Decimal) -> int:
    if value != value.to_integral_value():
        raise PydanticCustomError("decimal", "value must be an integer")
    return int(value)


def _form_int(low: int, high: Optional[int] = None) -> Any:
    # Порядок важен: сначала границы, потом проверка на целое
    bounds = [Ge(low)] if high is None else [Ge(low), Le(high)]
    return Annotated[(Decimal, BeforeValidator(_coerce_form_number), *bounds, AfterValidator(_require_integral))]


TotalAmount = _form_int(MIN_TOTAL_AMOUNT, MAX_TOTAL_AMOUNT)
PeopleCount = _form_int(MIN_PEOPLE, MAX_PEOPLE)
BurdenPercent = _form_int(MIN_BURDEN_PERCENT, MAX_BURDEN_PERCENT)
ReductionPercent = _form_int(MIN_REDUCTION_PERCENT, MAX_REDUCTION_PERCENT)
FixedAmount = _form_int(0)


class _SplitForm(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    total_amount: TotalAmount = Field(alias="totalAmount")
    number_of_people: PeopleCount = Field(alias="numberOfPeople")

    def to_input(self) -> CalculationInput:
        return EqualSplit(total_amount=self.total_amount, number_of_people=self.number_of_people)


class _OrganizerMoreForm(_SplitForm):
    burden_percent: BurdenPercent = Field(validation_alias=AliasChoices("organizerBurdenPercent", "organizerBurden"))

    def to_input(self) -> CalculationInput:
        return OrganizerMoreSplit(self.total_amount, self.number_of_people, self.burden_percent)


class _OrganizerLessForm(_SplitForm):
    reduction_percent: ReductionPercent = Field(
        validation_alias=AliasChoices("organizerReductionPercent", "organizerBurden")
    )

    def to_input(self) -> CalculationInput:
        return OrganizerLessSplit(self.total_amount, self.number_of_people, self.reduction_percent)


class _OrganizerFixedForm(_SplitForm):
    fixed_amount: FixedAmount = Field(validation_alias=AliasChoices("organizerFixedAmount", "organizerFixed"))

    def to_input(self) -> CalculationInput:
        return OrganizerFixedSplit(self.total_amount, self.number_of_people, self.fixed_amount)


_FORMS: dict[CalculationType, type[_SplitForm]] = {
    CalculationType.EQUAL: _SplitForm,
    CalculationType.ORGANIZER_MORE: _OrganizerMoreForm,
    CalculationType.ORGANIZER_LESS: _OrganizerLessForm,
    CalculationType.ORGANIZER_FIXED: _OrganizerFixedForm,
}


def parse_calculation_type(value: Any) -> CalculationType:
    if value is None or value == "":
        return CalculationType.EQUAL
    try:
        return CalculationType(value)
    except ValueError as exc:
        raise UnknownCalculationTypeError(f"Unknown calculation type: {value!r}") from exc


def _error_code(error: Mapping[str, Any]) -> str:
    loc = error.get("loc") or ("",)
    prefix = _FIELD_PREFIXES.get(str(loc[0]))
    if prefix is None:
        return "PARAM_MISSING" if error["type"] == "missing" else "PARAM_INVALID"
    return f"{prefix}_{_ERROR_SUFFIXES.get(error['type'], 'NAN')}"


def parse_calculation_input(data: Mapping[str, Any]) -> CalculationInput:
    """Разбирает данные формы (camelCase) в типизированный ввод калькулятора.

    Поддерживаются и старые ключи формы ``organizerBurden``/``organizerFixed``.
    """
    calculation_type = parse_calculation_type(data.get("type"))
    form_cls = _FORMS[calculation_type]
    try:
        form = form_cls.model_validate(dict(data))
    except ValidationError as exc:
        code = _error_code(exc.errors()[0])
        raise InvalidInputError(ERROR_MESSAGES[code], code=code) from exc
    return form.to_input()
