"""
Tests for utils.time module - UTC timestamp utilities.

This module tests all time utility functions to ensure:
- All timestamps are timezone-aware (UTC)
- Formats match ISO 8601 with 'Z' suffix
- Elapsed time is computed from aware datetimes only
- Deterministic behavior with time mocking (freezegun)
"""

from datetime import UTC, datetime, timedelta

import pytest
from freezegun import freeze_time

from mongo_schema_manager.utils.time import elapsed_seconds, utc_now, utc_timestamp


class TestUtcNow:
    """Test utc_now() function."""

    def test_has_utc_timezone(self):
        """utc_now() should return timezone-aware datetime with UTC."""
        result = utc_now()
        assert result.tzinfo == UTC

    @freeze_time("2025-11-02 08:30:45")
    def test_frozen_time_returns_expected_datetime(self):
        assert utc_now() == datetime(2025, 11, 2, 8, 30, 45, tzinfo=UTC)


class TestUtcTimestamp:
    """Test utc_timestamp() function."""

    @freeze_time("2025-11-02 08:30:45.123456")
    def test_format_drops_microseconds(self):
        assert utc_timestamp() == "2025-11-02T08:30:45Z"

    def test_ends_with_z(self):
        assert utc_timestamp().endswith("Z")


class TestElapsedSeconds:
    """Test elapsed_seconds() function."""

    def test_elapsed_with_frozen_clock(self):
        with freeze_time("2025-11-02 08:30:00") as frozen:
            started = utc_now()
            frozen.tick(timedelta(seconds=12.5))
            assert elapsed_seconds(started) == 12.5

    def test_rejects_naive_datetime(self):
        with pytest.raises(ValueError, match="timezone-aware"):
            elapsed_seconds(datetime(2025, 1, 1))
