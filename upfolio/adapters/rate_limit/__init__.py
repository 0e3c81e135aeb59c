"""Fixed-window rate limiting: store and limiter interfaces plus the in-process store."""
