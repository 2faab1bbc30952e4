from warikan.models import CalculationType, EqualSplit, OrganizerFixedSplit, OrganizerMoreSplit
from warikan.services.calculation import CalculationEngine
from warikan.services.summary import available_types, format_summary, remainder_policy


engine = CalculationEngine(clock=lambda: 0)


def test_format_summary_equal():
    assert format_summary(engine.calculate(EqualSplit(1000, 3))) == "一人 333円"


def test_format_summary_organizer_patterns():
    more = engine.calculate(OrganizerMoreSplit(5000, 4, 20))
    assert format_summary(more) == "幹事: 1,502円、参加者: 一人 1,166円"

    fixed = engine.calculate(OrganizerFixedSplit(60000, 4, 20000))
    assert format_summary(fixed) == "幹事: 20,000円、参加者: 一人 13,333円"


def test_remainder_policy():
    assert remainder_policy(CalculationType.EQUAL) == "余りは表示され、調整は行いません"
    assert remainder_policy("organizer_more") == "余りは幹事が負担します"
    assert remainder_policy("dutch") == "特別な端数処理はありません"


def test_available_types():
    types = available_types()
    assert [item["type"] for item in types] == ["equal", "organizer_more", "organizer_less", "organizer_fixed"]
    assert types[0]["label"] == "均等割り"
