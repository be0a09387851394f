"""
Synthetic posts and profiles used when a scrape provider is unavailable.

Values are pseudo-random but seeded by the handle, so one handle always
gets the same numbers; counts and shape never vary.
"""

import random
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from .models import PlatformKey, PostType, ProfileSnapshot, SocialPost
from .normalizer import engagement_score


INSTAGRAM_FALLBACK_POSTS = 15
TIKTOK_FALLBACK_POSTS = 12
INSTAGRAM_FALLBACK_HASHTAGS = ["#music", "#artist", "#newmusic", "#instagram"]
TIKTOK_FALLBACK_HASHTAGS = ["#fyp", "#music", "#artist", "#viral", "#newmusic"]


def _rng(platform: PlatformKey, handle: str) -> random.Random:
    return random.Random(f"{platform}:{(handle or '').strip().lower()}")


def _clean_handle(handle: str) -> str:
    return (handle or "artist").strip().lstrip("@") or "artist"


def generate_instagram_posts(handle: str, now: Optional[datetime] = None) -> List[SocialPost]:
    """Fifteen posts, one per day, newest first."""
    rng = _rng("instagram", handle)
    username = _clean_handle(handle)
    anchor = now or datetime.now(timezone.utc)
    posts: List[SocialPost] = []
    for i in range(INSTAGRAM_FALLBACK_POSTS):
        likes = rng.randint(100, 5099)
        comments = int(likes * 0.05) + rng.randint(0, 49)
        is_reel = rng.random() > 0.6
        views = likes * 3 if is_reel else 0
        kind = "reel" if is_reel else "photo"
        posts.append(SocialPost(
            platform="instagram",
            type=PostType.REEL if is_reel else PostType.PHOTO,
            caption=f"Check out this amazing {kind} from @{username}! #music #artist #newmusic #instagram",
            likes=likes,
            comments=comments,
            shares=0,
            views=views,
            timestamp=(anchor - timedelta(days=i)).isoformat(),
            hashtags=list(INSTAGRAM_FALLBACK_HASHTAGS),
            media_url=f"https://picsum.photos/400/400?random={i}",
            post_url=f"https://www.instagram.com/{username}/",
            engagement_score=engagement_score("instagram", likes, comments, views, 0),
        ))
    return posts


def generate_tiktok_posts(handle: str, now: Optional[datetime] = None) -> List[SocialPost]:
    """Twelve videos, one per day, newest first."""
    rng = _rng("tiktok", handle)
    username = _clean_handle(handle)
    anchor = now or datetime.now(timezone.utc)
    posts: List[SocialPost] = []
    for i in range(TIKTOK_FALLBACK_POSTS):
        views = rng.randint(1000, 50999)
        likes = int(views * 0.08) + rng.randint(0, 499)
        comments = int(likes * 0.03) + rng.randint(0, 19)
        shares = int(likes * 0.02) + rng.randint(0, 14)
        posts.append(SocialPost(
            platform="tiktok",
            type=PostType.VIDEO,
            caption=f"Amazing music video by @{username}! #fyp #music #artist #viral #newmusic",
            likes=likes,
            comments=comments,
            shares=shares,
            views=views,
            timestamp=(anchor - timedelta(days=i)).isoformat(),
            hashtags=list(TIKTOK_FALLBACK_HASHTAGS),
            media_url=f"https://picsum.photos/320/568?random={i}",
            post_url=f"https://www.tiktok.com/@{username}",
            engagement_score=engagement_score("tiktok", likes, comments, views, shares),
        ))
    return posts


def generate_posts(platform: PlatformKey, handle: str, now: Optional[datetime] = None) -> List[SocialPost]:
    if platform == "tiktok":
        return generate_tiktok_posts(handle, now=now)
    return generate_instagram_posts(handle, now=now)


def generate_profile(platform: PlatformKey, handle: str) -> ProfileSnapshot:
    rng = _rng(platform, f"profile:{handle}")
    if platform == "tiktok":
        followers = rng.randint(3000, 32999)
    else:
        followers = rng.randint(5000, 54999)
    return ProfileSnapshot(platform=platform, follower_count=followers, avatar_url=None)
