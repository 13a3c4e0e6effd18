"""Redis Lua scripts for the rate limiting algorithms.

Each script runs as a single atomic unit inside Redis, so concurrent
callers sharing one identifier can never interleave a read with another
caller's write. Counters get their expiration inside the same script
that creates them.
"""

FIXED_WINDOW = "fixed_window"
SLIDING_WINDOW = "sliding_window"
SLIDING_LOGS = "sliding_logs"
TOKEN_BUCKET = "token_bucket"
ANALYTICS = "analytics"

# Increment the bucket counter; the first increment also sets the TTL.
# Returns the post-increment count.
FIXED_WINDOW_SCRIPT = """
    local key    = KEYS[1]
    local window = ARGV[1]

    local count = redis.call("INCR", key)
    if count == 1 then
        -- The first time this key is set the value is 1,
        -- so the expire only needs to happen once
        redis.call("PEXPIRE", key, window)
    end

    return count
"""

# Weighted estimate over the current and previous bucket counters.
# Returns the new current count, or -1 without writing when the
# estimate is already at the limit.
SLIDING_WINDOW_SCRIPT = """
    local current_key  = KEYS[1]
    local previous_key = KEYS[2]
    local tokens       = tonumber(ARGV[1])
    local now          = tonumber(ARGV[2])
    local window       = tonumber(ARGV[3])

    local current  = tonumber(redis.call("GET", current_key) or "0")
    local previous = tonumber(redis.call("GET", previous_key) or "0")

    local elapsed_fraction = (now % window) / window
    local estimated = previous * (1 - elapsed_fraction) + current
    if estimated >= tokens then
        return -1
    end

    local count = redis.call("INCR", current_key)
    if count == 1 then
        -- Must outlive the next window, where it is read as the previous counter
        redis.call("PEXPIRE", current_key, window * 2 + 1000)
    end

    return count
"""

# Sorted set of admitted request timestamps. Returns
# {count_after_insert, oldest_score} or {-1, oldest_score} on denial.
SLIDING_LOGS_SCRIPT = """
    local key    = KEYS[1]
    local tokens = tonumber(ARGV[1])
    local now    = tonumber(ARGV[2])
    local window = tonumber(ARGV[3])
    local member = ARGV[4]

    redis.call("ZREMRANGEBYSCORE", key, "-inf", now - window)
    local count = redis.call("ZCARD", key)

    if count >= tokens then
        local oldest = redis.call("ZRANGE", key, 0, 0, "WITHSCORES")
        return {-1, tonumber(oldest[2])}
    end

    redis.call("ZADD", key, now, member)
    redis.call("PEXPIRE", key, window)

    local oldest = redis.call("ZRANGE", key, 0, 0, "WITHSCORES")
    return {count + 1, tonumber(oldest[2])}
"""

# Hash {tokens, refilled_at}; refill happens lazily on each call using
# the caller supplied timestamp. Returns {remaining, reset_at} or
# {-1, reset_at} without writing on denial.
TOKEN_BUCKET_SCRIPT = """
    local key         = KEYS[1]
    local max_tokens  = tonumber(ARGV[1])
    local now         = tonumber(ARGV[2])
    local interval    = tonumber(ARGV[3])
    local refill_rate = tonumber(ARGV[4])
    local ttl         = tonumber(ARGV[5])

    local state = redis.call("HMGET", key, "tokens", "refilled_at")
    local tokens = max_tokens
    local refilled_at = now
    if state[1] then
        tokens = tonumber(state[1])
        refilled_at = tonumber(state[2])
    end

    local elapsed = math.floor((now - refilled_at) / interval)
    if elapsed < 0 then
        elapsed = 0
    end
    local refilled = math.min(max_tokens, tokens + elapsed * refill_rate)

    if refilled < 1 then
        return {-1, refilled_at + interval}
    end

    local remaining = refilled - 1
    redis.call("HSET", key, "tokens", remaining, "refilled_at", now)
    redis.call("PEXPIRE", key, ttl)

    return {remaining, now + interval}
"""

# Per hour hash of admitted/denied counters for each identifier.
ANALYTICS_SCRIPT = """
    local key   = KEYS[1]
    local field = ARGV[1]
    local ttl   = ARGV[2]

    local count = redis.call("HINCRBY", key, field, 1)
    if redis.call("PTTL", key) == -1 then
        redis.call("PEXPIRE", key, ttl)
    end

    return count
"""

SCRIPTS = {
    FIXED_WINDOW: FIXED_WINDOW_SCRIPT,
    SLIDING_WINDOW: SLIDING_WINDOW_SCRIPT,
    SLIDING_LOGS: SLIDING_LOGS_SCRIPT,
    TOKEN_BUCKET: TOKEN_BUCKET_SCRIPT,
    ANALYTICS: ANALYTICS_SCRIPT,
}
