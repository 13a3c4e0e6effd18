"""Custom exceptions for the rate limiting library."""


class RateLimitError(Exception):
    """Base class for rate limiting exceptions.

    All custom exceptions inherit from this class and define a stable
    error_code so callers can branch on it without string matching.
    """
    error_code: str = "ratelimit_error"

    def __init__(self, message: str = "Rate limit error"):
        self.message = message
        super().__init__(message)


class ConfigError(RateLimitError):
    """Raised when a rate limiter is built with an invalid configuration.

    Covers a missing store, a missing limiter, non-positive windows,
    token counts, refill rates or timeouts, and unknown variant objects.
    """
    error_code = "config_error"


class InvalidIdentifier(RateLimitError, ValueError):
    """Raised when limit() is called with an empty identifier."""
    error_code = "invalid_identifier"

    def __init__(self, detail: str = "Identifier must be a non-empty string"):
        super().__init__(detail)


class ClockError(RateLimitError):
    """Raised when the system clock reports a time before the epoch."""
    error_code = "clock_error"

    def __init__(self, now_ms: int):
        self.now_ms = now_ms
        super().__init__(f"System clock is before the unix epoch ({now_ms}ms)")


class StoreUnavailable(RateLimitError):
    """Raised when the shared store cannot execute an atomic script.

    Connection failures, timeouts, script errors and malformed replies
    all surface as this error.
    """
    error_code = "store_unavailable"

    def __init__(self, detail: str = "Shared store unavailable", script_id: str | None = None):
        self.script_id = script_id
        super().__init__(detail)


class UnsupportedVariant(RateLimitError):
    """Raised when the configured store has no script for a limiter variant."""
    error_code = "unsupported_variant"

    def __init__(self, script_id: str):
        self.script_id = script_id
        super().__init__(f"No atomic script registered for '{script_id}'")
