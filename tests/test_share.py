import base64
import json
from urllib.parse import parse_qs, urlsplit

from structlog.testing import capture_logs

from warikan.models import EqualSplit, OrganizerFixedSplit, OrganizerLessSplit, OrganizerMoreSplit
from warikan.services.calculation import CalculationEngine
from warikan.services.share import (
    build_share_url,
    build_sns_url,
    decode_share_url,
    decode_token,
    encode_token,
    generate_share_text,
    supported_sns,
)


BASE_URL = "https://warikan.test/app"
engine = CalculationEngine(clock=lambda: 1_700_000_000_000)


def _token_payload(token: str) -> dict:
    return json.loads(base64.b64decode(token).decode("utf-8"))


def test_encode_token_is_compact_projection():
    result = engine.calculate(OrganizerMoreSplit(5000, 4, 20))
    payload = _token_payload(encode_token(result))

    assert payload == {"t": 5000, "n": 4, "type": "organizer_more", "ts": 1_700_000_000_000, "b": 20}


def test_token_restores_input_for_every_pattern():
    splits = [
        EqualSplit(1000, 3),
        OrganizerMoreSplit(5000, 4, 20),
        OrganizerLessSplit(10000, 4, 15),
        OrganizerFixedSplit(6000, 4, 2000),
    ]
    for split in splits:
        result = engine.calculate(split)
        restored = decode_token(encode_token(result))
        assert restored == split
        assert engine.calculate(restored) == result


def test_decode_token_rejects_garbage():
    assert decode_token("!!!not-base64!!!") is None
    assert decode_token(base64.b64encode(b"[1, 2]").decode()) is None
    assert decode_token(base64.b64encode(b"{broken").decode()) is None

    bad_burden = base64.b64encode(json.dumps({"t": 1000, "n": 3, "type": "organizer_more", "b": 150}).encode())
    assert decode_token(bad_burden.decode()) is None

    unknown = base64.b64encode(json.dumps({"t": 1000, "n": 3, "type": "dutch"}).encode())
    assert decode_token(unknown.decode()) is None


def test_share_url_keeps_existing_query():
    result = engine.calculate(OrganizerFixedSplit(6000, 4, 2000))
    url = build_share_url(result, BASE_URL + "?lang=ja")

    query = parse_qs(urlsplit(url).query)
    assert query["lang"] == ["ja"]
    assert "calc" in query
    assert decode_share_url(url) == OrganizerFixedSplit(6000, 4, 2000)


def test_decode_share_url_without_token():
    assert decode_share_url(BASE_URL + "?lang=ja") is None


def test_decode_share_url_malformed():
    with capture_logs() as logs:
        assert decode_share_url("http://[bad/?calc=x") is None

    assert [entry["event"] for entry in logs] == ["share.decode.failed"]


def test_share_text_details():
    result = engine.calculate(EqualSplit(1000, 3))
    text = generate_share_text(result)

    assert text.startswith("【割り勘計算】\n総額: 1,000円\n人数: 3人\nパターン: 均等割り")
    assert "一人当たり: 333円" in text
    assert "余り: 1円" in text
    assert text.endswith("計算アプリで詳細を見る")


def test_share_text_without_details():
    result = engine.calculate(OrganizerMoreSplit(5000, 4, 20))
    text = generate_share_text(result, include_details=False)

    assert "パターン: 幹事多め負担" in text
    assert "幹事:" not in text
    assert text.endswith("パターン: 幹事多め負担\n\n\n計算アプリで詳細を見る")


def test_sns_urls():
    result = engine.calculate(EqualSplit(1000, 3))

    twitter = build_sns_url("twitter", result, base_url=BASE_URL)
    assert twitter is not None and twitter.startswith("https://twitter.com/intent/tweet?")
    query = parse_qs(urlsplit(twitter).query)
    assert set(query) == {"text", "url"}
    assert query["url"][0].startswith(BASE_URL + "?calc=")

    line = build_sns_url("line", result, base_url=BASE_URL)
    assert line is not None
    assert set(parse_qs(urlsplit(line).query)) == {"url"}

    facebook = build_sns_url("facebook", result, custom_message="飲み会", base_url=BASE_URL)
    assert facebook is not None
    fb_query = parse_qs(urlsplit(facebook).query)
    assert set(fb_query) == {"u", "quote"}
    assert fb_query["quote"][0].startswith("飲み会 【割り勘計算】")


def test_sns_text_is_truncated_to_network_limit():
    result = engine.calculate(EqualSplit(1000, 3))
    twitter = build_sns_url("twitter", result, custom_message="あ" * 500, base_url=BASE_URL)

    text = parse_qs(urlsplit(twitter).query)["text"][0]
    assert len(text) == 280
    assert text.endswith("...")


def test_unknown_sns():
    result = engine.calculate(EqualSplit(1000, 3))
    assert build_sns_url("myspace", result, base_url=BASE_URL) is None
    assert [item["key"] for item in supported_sns()] == ["twitter", "line", "facebook"]
