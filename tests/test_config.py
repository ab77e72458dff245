"""Tests for configuration helpers."""

from zoneinfo import ZoneInfo

from meal_agenda.config import resolve_timezone


def test_resolve_timezone() -> None:
    assert resolve_timezone("Europe/Berlin") == ZoneInfo("Europe/Berlin")
    assert resolve_timezone(None) == ZoneInfo("UTC")
    assert resolve_timezone("  ") == ZoneInfo("UTC")
    assert resolve_timezone("Not/AZone") == ZoneInfo("UTC")
