from slowapi import Limiter
from slowapi.util import get_remote_address
from fastapi import Request
from app.utils.auth import request_token, token_subject

def get_rate_limit_key(request: Request) -> str:
    """
    Rate limit key: authenticated callers are keyed by username,
    anonymous callers and invalid tokens by client address.
    """
    username = token_subject(request_token(request))
    if username:
        return f"user:{username}"
    return get_remote_address(request)

# Code verification is limited per client on top of the per-code attempt budget
VERIFY_CODE_LIMIT = "20/minute"
SEND_CODE_LIMIT = "10/minute"

limiter = Limiter(key_func=get_rate_limit_key)
