from datetime import datetime, timedelta, timezone

from datetime_utils import (
    coerce_epoch_ms,
    ensure_utc,
    from_epoch_ms,
    parse_rfc3339,
    to_epoch_ms,
    to_rfc3339_utc,
)


def test_parse_rfc3339_variants():
    assert parse_rfc3339("2024-03-01T10:00:00Z") == datetime(2024, 3, 1, 10, tzinfo=timezone.utc)
    assert parse_rfc3339("2024-03-01T13:00:00.5+03:00") == datetime(
        2024, 3, 1, 10, 0, 0, 500000, tzinfo=timezone.utc
    )
    assert parse_rfc3339("2024-03-01T10:00:00.123456789Z").microsecond == 123456
    assert parse_rfc3339("") is None
    assert parse_rfc3339("yesterday") is None


def test_naive_datetimes_are_treated_as_utc():
    naive = datetime(2024, 1, 1, 12)
    assert ensure_utc(naive).tzinfo is timezone.utc
    assert to_rfc3339_utc(naive) == "2024-01-01T12:00:00Z"
    assert to_rfc3339_utc(None) is None


def test_epoch_ms_conversions():
    moment = datetime(2024, 1, 1, tzinfo=timezone.utc)
    ms = to_epoch_ms(moment)
    assert from_epoch_ms(ms) == moment
    assert from_epoch_ms(ms + 1500) == moment + timedelta(milliseconds=1500)


def test_coerce_epoch_ms():
    moment = datetime(2024, 1, 1, tzinfo=timezone.utc)
    assert coerce_epoch_ms(10) == 10
    assert coerce_epoch_ms(None) == 0
    assert coerce_epoch_ms(True) == 0
    assert coerce_epoch_ms(moment) == to_epoch_ms(moment)
    assert coerce_epoch_ms("2024-01-01T00:00:00Z") == to_epoch_ms(moment)
    assert coerce_epoch_ms(1700.5) == 1700.5
    assert coerce_epoch_ms("n/a") == 0
    assert coerce_epoch_ms({"seconds": 1}) == 0
