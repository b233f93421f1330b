"""
Test datetime utilities.
"""
from datetime import date, datetime, timezone

import pytest

from backend.app.utils.datetime_utils import (
    from_unix_timestamp,
    parse_ISO_date,
    parse_trading_day,
    utcnow,
    )


def test_utcnow_is_aware():
    now = utcnow()
    assert now.tzinfo is not None
    assert now.utcoffset().total_seconds() == 0


def test_parse_iso_date_variants():
    assert parse_ISO_date("2026-10-16") == date(2026, 10, 16)
    assert parse_ISO_date(date(2026, 10, 16)) == date(2026, 10, 16)
    assert parse_ISO_date(datetime(2026, 10, 16, 15, 30)) == date(2026, 10, 16)


def test_parse_iso_date_invalid():
    with pytest.raises(ValueError):
        parse_ISO_date("16/10/2026")
    with pytest.raises(TypeError):
        parse_ISO_date(20261016)


def test_from_unix_timestamp():
    assert from_unix_timestamp(0) == datetime(1970, 1, 1, tzinfo=timezone.utc)
    assert from_unix_timestamp("1718000000") == datetime.fromtimestamp(1718000000, tz=timezone.utc)


@pytest.mark.parametrize("value", [None, "soon", True])
def test_from_unix_timestamp_invalid(value):
    assert from_unix_timestamp(value) is None


def test_parse_trading_day():
    assert parse_trading_day("2026-10-16") == datetime(2026, 10, 16, tzinfo=timezone.utc)


@pytest.mark.parametrize("value", [None, "", "yesterday"])
def test_parse_trading_day_invalid(value):
    assert parse_trading_day(value) is None
