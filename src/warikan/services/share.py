from __future__ import annotations

import base64
import json
from dataclasses import dataclass
from typing import Any, Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from warikan.config import get_settings
from warikan.logging import get_logger
from warikan.models import CalculationInput, CalculationResult, CalculationType
from warikan.services.summary import format_yen
from warikan.utils.parse import parse_calculation_input


SHARE_QUERY_PARAM = "calc"

SHARE_TYPE_LABELS = {
    CalculationType.EQUAL: "均等割り",
    CalculationType.ORGANIZER_MORE: "幹事多め負担",
    CalculationType.ORGANIZER_LESS: "幹事少なめ負担",
    CalculationType.ORGANIZER_FIXED: "幹事固定額",
}


@dataclass(slots=True)
class SnsInfo:
    name: str
    url: str
    max_length: Optional[int]


SUPPORTED_SNS = {
    "twitter": SnsInfo(name="X (Twitter)", url="https://twitter.com/intent/tweet", max_length=280),
    "line": SnsInfo(name="LINE", url="https://social-plugins.line.me/lineit/share", max_length=1000),
    "facebook": SnsInfo(name="Facebook", url="https://www.facebook.com/sharer/sharer.php", max_length=None),
}


log = get_logger(__name__)


def encode_token(result: CalculationResult) -> str:
    payload: dict[str, Any] = {
        "t": result.total_amount,
        "n": result.number_of_people,
        "type": result.type.value,
        "ts": result.timestamp,
    }
    if result.type == CalculationType.ORGANIZER_MORE:
        payload["b"] = result.organizer_burden_percent
    elif result.type == CalculationType.ORGANIZER_LESS:
        payload["b"] = result.organizer_reduction_percent
    elif result.type == CalculationType.ORGANIZER_FIXED:
        payload["f"] = result.organizer_fixed_amount

    raw = json.dumps(payload, separators=(",", ":"), ensure_ascii=False)
    return base64.b64encode(raw.encode("utf-8")).decode("ascii")


def decode_token(token: str) -> Optional[CalculationInput]:
    """Восстанавливает ввод калькулятора из токена ссылки.

    Вычисляемые поля в токен не попадают, поэтому результат нужно
    пересчитать через ``calculate``. Битый токен даёт ``None``.
    """
    try:
        raw = base64.b64decode(token, validate=True).decode("utf-8")
        data = json.loads(raw)
        if not isinstance(data, dict):
            raise ValueError("share payload must be an object")

        form: dict[str, Any] = {
            "totalAmount": data.get("t"),
            "numberOfPeople": data.get("n"),
            "type": data.get("type") or CalculationType.EQUAL.value,
        }
        if form["type"] == CalculationType.ORGANIZER_MORE.value:
            form["organizerBurdenPercent"] = data.get("b")
        elif form["type"] == CalculationType.ORGANIZER_LESS.value:
            form["organizerReductionPercent"] = data.get("b")
        elif form["type"] == CalculationType.ORGANIZER_FIXED.value:
            form["organizerFixedAmount"] = data.get("f")
        return parse_calculation_input(form)
    except ValueError as exc:
        log.warning("share.decode.failed", error=str(exc))
        return None


def build_share_url(result: CalculationResult, base_url: Optional[str] = None) -> str:
    parts = urlsplit(base_url or get_settings().share_base_url)
    query = [(key, value) for key, value in parse_qsl(parts.query) if key != SHARE_QUERY_PARAM]
    query.append((SHARE_QUERY_PARAM, encode_token(result)))
    return urlunsplit(parts._replace(query=urlencode(query)))


def decode_share_url(url: str) -> Optional[CalculationInput]:
    try:
        params = dict(parse_qsl(urlsplit(url).query))
    except ValueError as exc:
        log.warning("share.decode.failed", error=str(exc))
        return None
    token = params.get(SHARE_QUERY_PARAM)
    if not token:
        return None
    return decode_token(token)


def generate_share_text(result: CalculationResult, include_details: bool = True) -> str:
    lines = [
        "【割り勘計算】",
        f"総額: {format_yen(result.total_amount)}",
        f"人数: {result.number_of_people}人",
        f"パターン: {SHARE_TYPE_LABELS[result.type]}",
    ]

    if include_details:
        lines.append("")
        if result.type == CalculationType.EQUAL:
            lines.append(f"一人当たり: {format_yen(result.per_person)}")
        else:
            lines.append(f"幹事: {format_yen(result.organizer_payment)}")
            lines.append(f"参加者一人: {format_yen(result.participant_payment)}")
        if result.remainder > 0:
            lines.append(f"余り: {result.remainder}円")
    else:
        # без деталей блок всё равно отбивается пустой строкой
        lines.append("")

    lines.extend(["", "計算アプリで詳細を見る"])
    return "\n".join(lines)


def build_sns_url(
    sns: str,
    result: CalculationResult,
    custom_message: str = "",
    base_url: Optional[str] = None,
) -> Optional[str]:
    info = SUPPORTED_SNS.get(sns)
    if info is None:
        log.warning("share.sns.unsupported", sns=sns)
        return None

    text = generate_share_text(result, include_details=False)
    if custom_message:
        text = f"{custom_message} {text}"
    if info.max_length and len(text) > info.max_length:
        text = text[: info.max_length - 3] + "..."

    share_url = build_share_url(result, base_url)
    if sns == "twitter":
        params = {"text": text, "url": share_url}
    elif sns == "line":
        params = {"url": share_url}
    else:
        params = {"u": share_url, "quote": text}
    return f"{info.url}?{urlencode(params)}"


def supported_sns() -> list[dict[str, str]]:
    return [{"key": key, "name": info.name, "url": info.url} for key, info in SUPPORTED_SNS.items()]
