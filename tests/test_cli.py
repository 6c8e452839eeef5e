from __future__ import annotations

from datetime import date

import pytest

from pytrout.cli import build_parser, format_record, main
from pytrout.models.stocking import StockingRecord


@pytest.fixture
def paths(tmp_path) -> list[str]:
    return ["--db", str(tmp_path / "trout.db"), "--prefs", str(tmp_path / "prefs.json")]


def test_subscribe_then_list_subscriptions(paths: list[str], capsys: pytest.CaptureFixture[str]) -> None:
    assert main([*paths, "subscribe", "county", "Augusta"]) == 0
    assert main([*paths, "subscribe", "waterbody", "Back Creek"]) == 0
    assert main([*paths, "unsubscribe", "county", "Augusta"]) == 0
    capsys.readouterr()

    assert main([*paths, "subscriptions"]) == 0

    out = capsys.readouterr().out.splitlines()
    assert out == ["  county     Augusta", "* waterbody  Back Creek"]


def test_list_on_empty_store_prints_nothing(paths: list[str], capsys: pytest.CaptureFixture[str]) -> None:
    assert main([*paths, "list", "--county", "Bath", "--nsf", "--all"]) == 0
    assert capsys.readouterr().out == ""


def test_parser_requires_command() -> None:
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_format_record_shows_flags() -> None:
    record = StockingRecord(
        date=date(2025, 3, 4),
        county="Bath",
        waterbody="Jackson River",
        category="DH",
        species=["Rainbow"],
        is_nsf=True,
        is_delayed_harvest=True,
    )

    line = format_record(record)

    assert line.startswith("2025-03-04")
    assert line.endswith("[NSF DH]")


@pytest.mark.parametrize("size", ["0", "-3", "ten"])
def test_list_rejects_non_positive_page_size(size: str) -> None:
    with pytest.raises(SystemExit):
        build_parser().parse_args(["list", "--page-size", size])


def test_list_accepts_positive_page_size() -> None:
    args = build_parser().parse_args(["list", "--page-size", "5"])
    assert args.page_size == 5
