"""Rate limiting configuration using slowapi.

Provides a module-level Limiter instance that routers import for
per-endpoint limits; wired into the FastAPI app in main.py.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from leavedesk.config import settings

# Default: 60 requests/minute per client IP for all endpoints.
# Leave submission is tighter, see SUBMIT_RATE_LIMIT.
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["60/minute"],
    enabled=settings.ENVIRONMENT != "test",
)
