from __future__ import annotations

import pytest

from pytrout.exceptions import TroutStorageError
from pytrout.models.subscription import SubscriptionKind
from pytrout.preferences import PreferenceStore


@pytest.mark.asyncio
async def test_backfill_flag_defaults_false_and_sticks() -> None:
    prefs = PreferenceStore()
    assert await prefs.historical_backfill_complete() is False

    await prefs.mark_historical_backfill_complete()

    assert await prefs.historical_backfill_complete() is True


@pytest.mark.asyncio
async def test_toggle_keeps_disabled_entries() -> None:
    prefs = PreferenceStore()
    await prefs.set_county_subscription("Augusta", True)
    await prefs.set_waterbody_subscription("Back Creek", True)
    await prefs.set_county_subscription("Augusta", False)

    subs = await prefs.subscriptions()
    assert [(s.kind, s.value, s.enabled) for s in subs] == [
        (SubscriptionKind.COUNTY, "Augusta", False),
        (SubscriptionKind.WATERBODY, "Back Creek", True),
    ]
    assert await prefs.subscribed_counties() == []
    assert await prefs.subscribed_waterbodies() == ["Back Creek"]


@pytest.mark.asyncio
async def test_subscriptions_sorted_by_kind_then_value() -> None:
    prefs = PreferenceStore()
    for county in ("Smyth", "Augusta", "Bath"):
        await prefs.set_county_subscription(county, True)
    await prefs.set_waterbody_subscription("Alpha Lake", True)

    assert [s.value for s in await prefs.subscriptions()] == ["Augusta", "Bath", "Smyth", "Alpha Lake"]
    assert await prefs.subscribed_counties() == ["Augusta", "Bath", "Smyth"]


@pytest.mark.asyncio
async def test_preferences_persist_to_file(tmp_path) -> None:
    path = tmp_path / "prefs" / "preferences.json"
    prefs = PreferenceStore(path)
    await prefs.set_waterbody_subscription("Back Creek", True)
    await prefs.mark_historical_backfill_complete()

    reopened = PreferenceStore(path)
    assert await reopened.historical_backfill_complete() is True
    assert await reopened.subscribed_waterbodies() == ["Back Creek"]


@pytest.mark.asyncio
async def test_corrupt_preferences_raise_storage_error(tmp_path) -> None:
    path = tmp_path / "preferences.json"
    path.write_text('{"subscriptions": [{"kind": "lake"}]}', encoding="utf-8")

    with pytest.raises(TroutStorageError):
        await PreferenceStore(path).subscriptions()


@pytest.mark.asyncio
async def test_failed_write_leaves_no_temp_file_and_keeps_old_state(tmp_path, monkeypatch) -> None:
    path = tmp_path / "preferences.json"
    prefs = PreferenceStore(path)
    await prefs.set_county_subscription("Augusta", True)

    def _refuse(src: str, dst: object) -> None:
        raise OSError("disk full")

    monkeypatch.setattr("pytrout.preferences.os.replace", _refuse)
    with pytest.raises(TroutStorageError):
        await prefs.mark_historical_backfill_complete()

    assert [p.name for p in tmp_path.iterdir()] == ["preferences.json"]
    assert await prefs.historical_backfill_complete() is False
    assert await PreferenceStore(path).subscribed_counties() == ["Augusta"]
