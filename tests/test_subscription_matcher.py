from __future__ import annotations

from datetime import date

from pytrout.matcher import SubscriptionMatcher
from pytrout.models.stocking import StockingRecord
from pytrout.models.subscription import Subscription, SubscriptionKind


def _record(waterbody: str, county: str, record_id: int) -> StockingRecord:
    return StockingRecord(id=record_id, date=date(2025, 3, 4), county=county, waterbody=waterbody)


def _county(value: str, enabled: bool = True) -> Subscription:
    return Subscription(kind=SubscriptionKind.COUNTY, value=value, enabled=enabled)


def _water(value: str, enabled: bool = True) -> Subscription:
    return Subscription(kind=SubscriptionKind.WATERBODY, value=value, enabled=enabled)


def test_matches_on_county_or_waterbody() -> None:
    records = [
        _record("Back Creek", "Augusta", 1),
        _record("Mill Creek", "Bath", 2),
        _record("Smith River", "Henry", 3),
    ]

    matches = SubscriptionMatcher().match(records, [_county("Augusta"), _water("Mill Creek")])

    assert [m.record.id for m in matches] == [1, 2]
    assert matches[0].subscriptions == (_county("Augusta"),)
    assert matches[1].subscriptions == (_water("Mill Creek"),)


def test_one_match_per_record_with_all_subscriptions() -> None:
    records = [_record("Back Creek", "Augusta", 1)]

    matches = SubscriptionMatcher().match(
        records,
        [_county("Augusta"), _water("Back Creek"), _county("Augusta")],
    )

    assert len(matches) == 1
    assert {s.kind for s in matches[0].subscriptions} == {SubscriptionKind.COUNTY, SubscriptionKind.WATERBODY}


def test_disabled_subscriptions_are_ignored() -> None:
    records = [_record("Back Creek", "Augusta", 1)]

    assert SubscriptionMatcher().match(records, [_county("Augusta", enabled=False)]) == []
    assert SubscriptionMatcher().match(records, []) == []


def test_repeated_record_in_batch_notifies_once() -> None:
    record = _record("Back Creek", "Augusta", 7)

    matches = SubscriptionMatcher().match([record, record], [_county("Augusta")])

    assert len(matches) == 1
