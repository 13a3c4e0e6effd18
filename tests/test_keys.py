"""Tests for storage key derivation."""

import pytest

from ratelimit.exceptions import ConfigError
from ratelimit.keys import (
    bucket_end,
    bucket_for,
    identifier_key,
    sliding_window_keys,
    window_key,
)


class TestBuckets:
    """Tests for time bucket arithmetic."""

    def test_bucket_is_floor_division(self):
        assert bucket_for(0, 1000) == 0
        assert bucket_for(999, 1000) == 0
        assert bucket_for(1000, 1000) == 1
        assert bucket_for(1_234_567, 10) == 123_456

    def test_same_bucket_within_window(self):
        """Two calls inside one window share a bucket."""
        assert bucket_for(5_000, 1000) == bucket_for(5_999, 1000)

    def test_bucket_end(self):
        assert bucket_end(5, 1000) == 6000

    @pytest.mark.parametrize("window", [0, -1])
    def test_non_positive_window_rejected(self, window):
        with pytest.raises(ConfigError):
            bucket_for(1000, window)


class TestKeyFormat:
    """Tests for the wire key format."""

    def test_window_key(self):
        assert window_key("@upstash/ratelimit", "user-1", 42) == "@upstash/ratelimit:user-1:42"

    def test_identifier_key(self):
        assert identifier_key("app", "10.0.0.1") == "app:10.0.0.1"

    def test_sliding_window_previous_is_adjacent_bucket(self):
        """The previous counter is bucket - 1, not bucket minus the window length."""
        current, previous = sliding_window_keys("app", "user", 1700)
        assert current == "app:user:1700"
        assert previous == "app:user:1699"
