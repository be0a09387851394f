"""Per-platform collection with synthetic fallback."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from analysis.fallback import generate_posts, generate_profile
from analysis.models import PlatformKey, ProfileSnapshot, SocialPost
from analysis.normalizer import extract_profile, normalize_posts, rank_posts
from services.scrapers import ProviderUnavailableError, ScrapeProviderClient

logger = logging.getLogger(__name__)


@dataclass
class PlatformCollection:
    platform: PlatformKey
    posts: List[SocialPost] = field(default_factory=list)
    profile: Optional[ProfileSnapshot] = None
    posts_fallback: bool = False
    profile_fallback: bool = False


class PlatformCollector:
    """Fetches posts and profile for one handle; never raises."""

    def __init__(self, clients: Dict[str, ScrapeProviderClient], fallback_enabled: bool = True) -> None:
        self.clients = clients
        self.fallback_enabled = fallback_enabled

    async def aclose(self) -> None:
        for client in self.clients.values():
            await client.aclose()

    async def collect(self, platform: PlatformKey, handle: str) -> PlatformCollection:
        posts_result, profile_result = await asyncio.gather(
            self._collect_posts(platform, handle),
            self._collect_profile(platform, handle),
            return_exceptions=True,
        )
        for result in (posts_result, profile_result):
            # Cancellation and interpreter exits propagate, never fall back.
            if isinstance(result, BaseException) and not isinstance(result, Exception):
                raise result
        if isinstance(posts_result, Exception):
            logger.warning("%s post collection crashed for @%s: %s", platform, handle, posts_result)
            posts_result = self._fallback_posts(platform, handle)
        if isinstance(profile_result, Exception):
            logger.warning("%s profile collection crashed for @%s: %s", platform, handle, profile_result)
            profile_result = self._fallback_profile(platform, handle)

        posts, posts_fallback = posts_result
        profile, profile_fallback = profile_result
        return PlatformCollection(
            platform=platform,
            posts=posts,
            profile=profile,
            posts_fallback=posts_fallback,
            profile_fallback=profile_fallback,
        )

    async def _collect_posts(self, platform: PlatformKey, handle: str):
        client = self.clients.get(platform)
        if client is None or not client.configured:
            logger.info("No %s scrape credentials configured, using fallback posts for @%s", platform, handle)
            return self._fallback_posts(platform, handle)
        try:
            items = await client.scrape(handle, mode="posts")
        except ProviderUnavailableError as exc:
            logger.info("%s provider unavailable (%s), using fallback posts", platform, exc)
            return self._fallback_posts(platform, handle)
        except Exception as exc:
            logger.warning("%s post scrape failed for @%s, using fallback posts: %s", platform, handle, exc)
            return self._fallback_posts(platform, handle)

        posts = normalize_posts(platform, items)
        if not posts:
            logger.warning("%s scrape for @%s had no usable posts after filtering, using fallback", platform, handle)
            return self._fallback_posts(platform, handle)
        return posts, False

    async def _collect_profile(self, platform: PlatformKey, handle: str):
        client = self.clients.get(platform)
        if client is None or not client.configured:
            return self._fallback_profile(platform, handle)
        try:
            items = await client.scrape(handle, mode="profile")
        except Exception as exc:
            logger.warning("%s profile scrape failed for @%s, using fallback profile: %s", platform, handle, exc)
            return self._fallback_profile(platform, handle)

        profile = extract_profile(platform, items)
        if profile is None:
            logger.warning("%s profile scrape for @%s had no follower data, using fallback", platform, handle)
            return self._fallback_profile(platform, handle)
        return profile, False

    def _fallback_posts(self, platform: PlatformKey, handle: str):
        if not self.fallback_enabled:
            logger.warning("Fallback data disabled; %s returns no posts for @%s", platform, handle)
            return [], True
        return rank_posts(generate_posts(platform, handle)), True

    def _fallback_profile(self, platform: PlatformKey, handle: str):
        if not self.fallback_enabled:
            return None, True
        return generate_profile(platform, handle), True
