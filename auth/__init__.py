"""API-key authentication and rate limiting for the public API."""

from .api_keys import ApiKeyService, InMemoryCredentialStore, generate_api_key, hash_api_key
from .rate_limit import FixedWindowRateLimiter, RateLimitDecision

__all__ = [
    "ApiKeyService",
    "FixedWindowRateLimiter",
    "InMemoryCredentialStore",
    "RateLimitDecision",
    "generate_api_key",
    "hash_api_key",
]
