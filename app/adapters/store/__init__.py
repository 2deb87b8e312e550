"""Key-value store adapters.

The limiter, cache and activity log depend only on ``AbstractStore`` so the
backing engine (Redis/Valkey in production, in-memory for local runs and
tests) can be swapped without touching them.
"""
