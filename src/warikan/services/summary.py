from __future__ import annotations

from warikan.models import CalculationResult, CalculationType


TYPE_LABELS = {
    CalculationType.EQUAL: "均等割り",
    CalculationType.ORGANIZER_MORE: "幹事多め",
    CalculationType.ORGANIZER_LESS: "幹事少なめ",
    CalculationType.ORGANIZER_FIXED: "幹事固定",
}


TYPE_DESCRIPTIONS = {
    CalculationType.EQUAL: "全員で均等に割り勘します",
    CalculationType.ORGANIZER_MORE: "幹事が指定した割合だけ多く負担します",
    CalculationType.ORGANIZER_LESS: "幹事が指定した割合だけ少なく負担します",
    CalculationType.ORGANIZER_FIXED: "幹事が固定額を負担し、残りを均等に割ります",
}


REMAINDER_POLICIES = {
    CalculationType.EQUAL: "余りは表示され、調整は行いません",
    CalculationType.ORGANIZER_MORE: "余りは幹事が負担します",
    CalculationType.ORGANIZER_LESS: "余りは参加者間で分配されます",
    CalculationType.ORGANIZER_FIXED: "参加者間の割り勘で生じた余りは表示されます",
}


def format_yen(amount: int) -> str:
    return f"{amount:,}円"


def available_types() -> list[dict[str, str]]:
    return [
        {
            "type": calculation_type.value,
            "label": TYPE_LABELS[calculation_type],
            "description": TYPE_DESCRIPTIONS[calculation_type],
        }
        for calculation_type in CalculationType
    ]


def format_summary(result: CalculationResult) -> str:
    if result.type == CalculationType.EQUAL:
        return f"一人 {format_yen(result.per_person)}"
    return f"幹事: {format_yen(result.organizer_payment)}、参加者: 一人 {format_yen(result.participant_payment)}"


def remainder_policy(calculation_type: CalculationType | str) -> str:
    try:
        return REMAINDER_POLICIES[CalculationType(calculation_type)]
    except ValueError:
        return "特別な端数処理はありません"
