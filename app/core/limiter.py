"""Per-client-IP rate limiting (SlowAPI) for the unauthenticated entry points.

The limiter lives here so main (app.state.limiter) and the route modules share
one instance. Counters are kept in process memory.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from app.core.config import settings

limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)

limit_auth = limiter.limit(settings.RATE_LIMIT_AUTH)
limit_submit = limiter.limit(settings.RATE_LIMIT_SUBMIT)
