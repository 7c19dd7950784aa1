"""Rate limiting configuration using slowapi.

Provides a module-level Limiter instance that routers use for per-endpoint
limits on the mutating leave endpoints, wired into the app in main.py.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

# Default: 120 requests/minute per client IP for all endpoints.
# Mutations override with @limiter.limit("N/period").
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["120/minute"],
)

MUTATION_LIMIT = "30/minute"
