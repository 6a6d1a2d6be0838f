"""Caller authentication.

- Users: bearer JWT with `sub` (user id) and `role`, decoded into a CallerContext
- Scheduler: bearer CRON_SECRET on the sweep trigger
- Payment gateway: HMAC-SHA256 signature of the raw callback body
"""

from datetime import datetime, timedelta, timezone
import hashlib
import hmac
import logging
import secrets

from fastapi import Depends, Header
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from umoja.models.enums import Role
from umoja.services.caller import CallerContext
from umoja.services.errors import AuthenticationError, CronAuthError, ForbiddenError
from umoja.settings import get_settings

logger = logging.getLogger("uvicorn.error")

# auto_error=False so a missing header renders our own error envelope
security = HTTPBearer(auto_error=False)

SIGNATURE_HEADER = "X-Payment-Signature"


def create_access_token(user_id: int, role: Role, expires_minutes: int | None = None) -> str:
    """Issue a caller token (seed script and tests)."""
    settings = get_settings()
    expire = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes or settings.jwt_expire_minutes)
    payload = {"sub": str(user_id), "role": role.value, "exp": expire}
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> CallerContext:
    """Decode a caller token.

    Raises:
        AuthenticationError: token invalid, expired or missing claims.
    """
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
        user_id = int(payload["sub"])
        role = Role(payload["role"])
    except (JWTError, KeyError, TypeError, ValueError) as e:
        logger.warning(f"[auth] rejected token: {e!r}")
        raise AuthenticationError("Could not validate credentials") from e
    return CallerContext(user_id=user_id, role=role)


def get_caller(credentials: HTTPAuthorizationCredentials | None = Depends(security)) -> CallerContext:
    """FastAPI dependency: the authenticated caller."""
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise AuthenticationError("Authentication required")
    return decode_access_token(credentials.credentials)


def require_role(*roles: Role):
    """Dependency factory restricting an endpoint to the given roles."""

    def dependency(caller: CallerContext = Depends(get_caller)) -> CallerContext:
        if caller.role not in roles:
            raise ForbiddenError(f"Requires role: {', '.join(r.value for r in roles)}")
        return caller

    return dependency


def require_cron_secret(authorization: str | None = Header(default=None)) -> None:
    """FastAPI dependency for the scheduler: `Authorization: Bearer <CRON_SECRET>`."""
    expected = get_settings().cron_secret
    if not expected:
        raise CronAuthError("Cron secret is not configured")
    if not authorization or not authorization.startswith("Bearer "):
        raise CronAuthError("Missing cron bearer token")
    token = authorization.removeprefix("Bearer ").strip()
    if not secrets.compare_digest(token, expected):
        raise CronAuthError("Invalid cron bearer token")


def sign_payment_payload(body: bytes, secret: str | None = None) -> str:
    key = (secret if secret is not None else get_settings().payment_webhook_secret).encode()
    return hmac.new(key, body, hashlib.sha256).hexdigest()


def verify_payment_signature(body: bytes, signature: str | None) -> bool:
    secret = get_settings().payment_webhook_secret
    if not secret or not signature:
        return False
    return hmac.compare_digest(sign_payment_payload(body, secret), signature.strip().lower())
