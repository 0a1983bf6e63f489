"""API Resilience Implementations.

Contains the HTTP middlewares that handle session auth and CSRF rotation,
server rate budgets and 429 retries, and exponential backoff for
transient failures, plus the shared state they coordinate through.
Bounded Context: API Resilience
"""

from rbxconfigs.infrastructure.resilience.api_retry import TransientRetryMiddleware
from rbxconfigs.infrastructure.resilience.auth import AuthMiddleware
from rbxconfigs.infrastructure.resilience.rate_limiter import RateLimitMiddleware
from rbxconfigs.infrastructure.resilience.state import SharedAuthState, SharedRateState

__all__ = [
    "AuthMiddleware",
    "RateLimitMiddleware",
    "SharedAuthState",
    "SharedRateState",
    "TransientRetryMiddleware",
]
