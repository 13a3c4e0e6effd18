"""Storage key derivation.

Window based limiters key their counters by time bucket:
``{prefix}:{identifier}:{bucket}``. Log and bucket state that lives for
the whole lifetime of an identifier uses ``{prefix}:{identifier}``.
"""

from ratelimit.exceptions import ConfigError


def bucket_for(now_ms: int, window_ms: int) -> int:
    """Return the time bucket index that now_ms falls in.

    Raises:
        ConfigError: If window_ms is not positive.
    """
    if window_ms <= 0:
        raise ConfigError(f"window must be positive, got {window_ms}ms")
    return now_ms // window_ms


def bucket_end(bucket: int, window_ms: int) -> int:
    """Return the epoch millisecond at which a bucket ends."""
    return (bucket + 1) * window_ms


def identifier_key(prefix: str, identifier: str) -> str:
    return f"{prefix}:{identifier}"


def window_key(prefix: str, identifier: str, bucket: int) -> str:
    return f"{prefix}:{identifier}:{bucket}"


def sliding_window_keys(prefix: str, identifier: str, bucket: int) -> tuple[str, str]:
    """Return (current, previous) counter keys for a sliding window.

    The previous counter is the adjacent bucket index, bucket - 1.
    """
    return (
        window_key(prefix, identifier, bucket),
        window_key(prefix, identifier, bucket - 1),
    )
