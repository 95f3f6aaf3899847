"""Tests for timestamp parsing and day arithmetic."""

from datetime import datetime, timezone

import pytest

from backend.services.datetime_service import (
    MAX_TIMESTAMP_MS,
    add_days_ms,
    coerce_timestamp,
    now_utc,
    parse_datetime,
    start_of_day_ms,
    to_epoch_ms,
)

# 2026-02-02 22:21:29 UTC
SAMPLE_MS = 1_770_070_889_000


class TestDatetimeParsing:
    def test_parse_full_format(self) -> None:
        result = parse_datetime("2026-02-02 22:21:29.975359+00")
        assert result.year == 2026
        assert result.month == 2
        assert result.day == 2
        assert result.hour == 22
        assert result.minute == 21

    def test_parse_date_only(self) -> None:
        result = parse_datetime("2026-02-02")
        assert (result.year, result.month, result.day) == (2026, 2, 2)
        assert result.hour == 0
        assert result.tzinfo is not None

    def test_parse_with_default_timezone(self) -> None:
        result = parse_datetime("2026-02-02 10:30", default_tz="America/New_York")
        assert result.hour == 10
        assert result.utcoffset() is not None
        assert result.utcoffset().total_seconds() == -5 * 3600  # type: ignore[union-attr]

    def test_parse_datetime_naive_adds_tz(self) -> None:
        result = parse_datetime(datetime(2026, 1, 1, 12, 0), default_tz="UTC")
        assert result.tzinfo is not None

    def test_malformed_string_raises_value_error(self) -> None:
        with pytest.raises(ValueError, match="Malformed timestamp"):
            parse_datetime("not a date")

    def test_empty_string_raises(self) -> None:
        with pytest.raises(ValueError):
            parse_datetime("   ")

    def test_now_utc(self) -> None:
        assert now_utc().tzinfo is not None


class TestEpochConversion:
    def test_aware_datetime(self) -> None:
        dt = datetime(2026, 2, 2, 22, 21, 29, tzinfo=timezone.utc)
        assert to_epoch_ms(dt) == SAMPLE_MS

    def test_naive_datetime_is_utc(self) -> None:
        assert to_epoch_ms(datetime(2026, 2, 2, 22, 21, 29)) == SAMPLE_MS


class TestCoerceTimestamp:
    def test_integer_is_verbatim(self) -> None:
        assert coerce_timestamp(SAMPLE_MS) == SAMPLE_MS

    def test_digit_string_is_milliseconds(self) -> None:
        assert coerce_timestamp(str(SAMPLE_MS)) == SAMPLE_MS

    def test_iso_string(self) -> None:
        assert coerce_timestamp("2026-02-02T22:21:29Z") == SAMPLE_MS

    def test_float_is_truncated(self) -> None:
        assert coerce_timestamp(1.9) == 1

    @pytest.mark.parametrize("value", [True, -1, float("nan"), [], {}])
    def test_rejects_invalid(self, value: object) -> None:
        with pytest.raises(ValueError):
            coerce_timestamp(value)

    @pytest.mark.parametrize(
        "value", [10**20, MAX_TIMESTAMP_MS + 1, str(10**20), float("inf"), float("-inf"), 1e300]
    )
    def test_rejects_out_of_range(self, value: object) -> None:
        with pytest.raises(ValueError, match="out of range|finite"):
            coerce_timestamp(value)

    def test_accepts_sqlite_maximum(self) -> None:
        assert coerce_timestamp(MAX_TIMESTAMP_MS) == MAX_TIMESTAMP_MS


class TestDayArithmetic:
    def test_start_of_day_utc(self) -> None:
        assert start_of_day_ms(SAMPLE_MS) == to_epoch_ms(datetime(2026, 2, 2, tzinfo=timezone.utc))

    def test_start_of_day_respects_timezone(self) -> None:
        # 22:21 UTC on Feb 2 is already Feb 3 in Tokyo.
        start = start_of_day_ms(SAMPLE_MS, "Asia/Tokyo")
        assert start == to_epoch_ms(datetime(2026, 2, 2, 15, 0, tzinfo=timezone.utc))

    def test_add_days_across_dst(self) -> None:
        # 2026-03-08 is the US spring-forward day: that calendar day has 23 hours.
        midnight = start_of_day_ms(
            to_epoch_ms(datetime(2026, 3, 8, 12, tzinfo=timezone.utc)), "America/New_York"
        )
        assert add_days_ms(midnight, 1, "America/New_York") - midnight == 23 * 3_600_000
