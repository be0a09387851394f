"""Optional music-platform artist data used to enrich the AI prompt."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx

from config import settings

logger = logging.getLogger(__name__)


async def fetch_external_profile(
    artist_id: Optional[str],
    *,
    url_template: Optional[str] = None,
    timeout_seconds: Optional[float] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Optional[Dict[str, Any]]:
    """Return artist data as a dict, or None when unavailable for any reason."""
    template = settings.EXTERNAL_PROFILE_URL_TEMPLATE if url_template is None else url_template
    if not artist_id or not template:
        return None

    timeout = timeout_seconds or settings.EXTERNAL_PROFILE_TIMEOUT_SECONDS
    try:
        url = template.format(artist_id=quote(artist_id, safe=""))
        async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
            response = await client.get(url)
            response.raise_for_status()
            payload = response.json()
    except (httpx.HTTPError, httpx.InvalidURL, KeyError, IndexError, ValueError) as exc:
        logger.warning("External artist data unavailable for %s: %s", artist_id, exc)
        return None

    if not isinstance(payload, dict):
        logger.warning("External artist data for %s is not an object, ignoring", artist_id)
        return None
    return payload
