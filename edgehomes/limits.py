from fastapi_limiter.depends import RateLimiter

from .auth import get_key_by_session_or_ip

# Shared instances so tests can swap them out through dependency_overrides
sign_in_limiter = RateLimiter(times=10, minutes=1, identifier=get_key_by_session_or_ip)
sign_up_limiter = RateLimiter(times=5, minutes=1, identifier=get_key_by_session_or_ip)
password_reset_limiter = RateLimiter(times=5, minutes=1, identifier=get_key_by_session_or_ip)
otp_limiter = RateLimiter(times=5, minutes=1, identifier=get_key_by_session_or_ip)
payment_limiter = RateLimiter(times=10, minutes=1, identifier=get_key_by_session_or_ip)

ALL_LIMITERS = (sign_in_limiter, sign_up_limiter, password_reset_limiter, otp_limiter, payment_limiter)
