"""Analysis token dependencies for follow-up requests."""

from dataclasses import dataclass

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from services.analysis_token import decode_analysis_token


auth_scheme = HTTPBearer(auto_error=False)


@dataclass
class AnalysisTokenContext:
    job_id: str
    artist_slug: str


def ensure_slug_scope(token_slug: str, requested_slug: str) -> str:
    """Reject tokens issued for a different artist."""
    if token_slug != requested_slug:
        raise HTTPException(status_code=403, detail="Analysis token does not match this artist.")
    return token_slug


async def get_analysis_token_context(
    credentials: HTTPAuthorizationCredentials = Depends(auth_scheme),
) -> AnalysisTokenContext:
    """Resolve the analysis a Bearer token was issued for."""
    if not credentials or credentials.scheme.lower() != "bearer":
        raise HTTPException(status_code=401, detail="Missing Bearer analysis token.")

    try:
        payload = decode_analysis_token(credentials.credentials)
    except ValueError as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc

    return AnalysisTokenContext(
        job_id=str(payload.get("sub", "")),
        artist_slug=str(payload.get("slug", "")),
    )
