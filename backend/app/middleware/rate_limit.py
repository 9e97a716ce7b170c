"""Per-route rate limiting for the two-factor endpoints."""
from slowapi import Limiter
from slowapi.util import get_remote_address
from starlette.requests import Request

from app.services.auth import AuthService


def get_rate_limit_key(request: Request) -> str:
    """
    Get rate limit key from request.
    Uses the authenticated user ID when a valid bearer token is present.
    """
    authorization = request.headers.get("authorization", "")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() == "bearer" and token:
        token_data = AuthService.decode_token(token)
        if token_data:
            return f"user:{token_data.user_id}"

    # Fall back to IP address
    return get_remote_address(request)


# Limits per route, matching the public API contract
RATE_LIMITS = {
    "setup_totp": "3/minute",
    "verify_totp": "10/minute",
    "disable_totp": "5/minute",
    "setup_sms": "3/minute",
    "verify_sms": "10/minute",
    "disable_sms": "5/minute",
    "resend_sms": "2/minute",
    "verify_backup": "10/minute",
    "regenerate_backup": "3 per 5 minutes",
    "challenge": "2/minute",
    "verify_2fa": "10/minute",
}

limiter = Limiter(key_func=get_rate_limit_key)
