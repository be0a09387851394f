"""Signed analysis tokens handed back to the submitting client."""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt

from config import settings


ANALYSIS_TOKEN_TYPE = "artist_analysis"


def create_analysis_token(
    job_id: str,
    artist_slug: str,
    expires_hours: Optional[int] = None,
) -> str:
    """Create a signed token binding a job id to the artist slug it writes."""
    now = datetime.now(timezone.utc)
    ttl_hours = int(expires_hours or settings.ANALYSIS_TOKEN_EXPIRATION_HOURS or 24)
    expires_at = now + timedelta(hours=max(ttl_hours, 1))
    claims: Dict[str, Any] = {
        "sub": job_id,
        "slug": artist_slug,
        "type": ANALYSIS_TOKEN_TYPE,
        "iat": int(now.timestamp()),
        "exp": int(expires_at.timestamp()),
    }
    return jwt.encode(claims, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_analysis_token(token: str) -> Dict[str, Any]:
    """Decode and validate a signed analysis token."""
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except JWTError as exc:
        raise ValueError("Invalid or expired analysis token.") from exc

    token_type = str(payload.get("type", "")).strip()
    if token_type != ANALYSIS_TOKEN_TYPE:
        raise ValueError("Invalid analysis token type.")

    if not str(payload.get("sub", "")).strip() or not str(payload.get("slug", "")).strip():
        raise ValueError("Analysis token missing subject or slug.")

    return payload
