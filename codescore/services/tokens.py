"""
Token issuing.
- Approval tokens: random bearer strings embedded in the admin's approve/deny links.
- Share tokens: signed JWTs (type "share") that expose one review without a session.
"""
import secrets
from datetime import datetime, timedelta, timezone
from jose import JWTError, jwt

from codescore.config import get_settings

# 32 random bytes = 256 bits, 43 URL-safe characters
APPROVAL_TOKEN_BYTES = 32


def new_approval_token() -> str:
    return secrets.token_urlsafe(APPROVAL_TOKEN_BYTES)


def create_share_token(review_id: str, now: datetime | None = None) -> tuple[str, datetime]:
    """Returns (token, expires_at). expires_at is naive UTC like the DB timestamps."""
    settings = get_settings()
    now = now or datetime.utcnow()
    expires_at = now + timedelta(days=settings.share_token_expire_days)
    payload = {
        "sub": review_id,
        "type": "share",
        "iat": now.replace(tzinfo=timezone.utc),
        "exp": expires_at.replace(tzinfo=timezone.utc),
    }
    token = jwt.encode(payload, settings.secret_key, algorithm=settings.algorithm)
    return token, expires_at


def decode_share_token(token: str) -> tuple[str, datetime] | None:
    """Returns (review_id, shared_at) or None if invalid, expired or not a share token."""
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return None
    if payload.get("type") != "share" or not payload.get("sub"):
        return None
    shared_at = datetime.fromtimestamp(int(payload.get("iat") or 0), tz=timezone.utc).replace(tzinfo=None)
    return payload["sub"], shared_at
