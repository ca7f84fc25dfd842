from slowapi import Limiter
from slowapi.util import get_remote_address

from academy.core.config import get_settings

settings = get_settings()

limiter = Limiter(key_func=get_remote_address, enabled=settings.rate_limit_enabled)

# Applied to every endpoint that moves a student's ledger.
WRITE_LIMIT = settings.rate_limit_writes
