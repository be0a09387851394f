"""
Provider payload normalization into the canonical SocialPost shape.

Scrape providers rename fields between actor versions, so every logical
attribute is resolved from an ordered list of candidate keys. Nested keys
use dotted paths (``stats.diggCount``).
"""

import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence

from .models import PlatformKey, PostType, ProfileSnapshot, SocialPost

logger = logging.getLogger(__name__)

HASHTAG_PATTERN = re.compile(r"#\w+")
MAX_HASHTAGS = 10

# Instagram reports -1 likes when the owner hides like counts.
INSTAGRAM_HIDDEN_LIKES = -1

INSTAGRAM_FIELDS: Dict[str, Sequence[str]] = {
    "caption": ("caption", "text"),
    "likes": ("likesCount", "likes"),
    "comments": ("commentsCount", "comments"),
    "views": ("videoViewCount", "videoPlayCount", "viewCount"),
    "timestamp": ("timestamp", "takenAt", "takenAtTimestamp"),
    "media_url": ("displayUrl", "videoUrl"),
}

TIKTOK_FIELDS: Dict[str, Sequence[str]] = {
    "caption": ("text", "desc", "description"),
    "likes": ("diggCount", "stats.diggCount", "likes"),
    "comments": ("commentCount", "stats.commentCount", "comments"),
    "shares": ("shareCount", "stats.shareCount", "shares"),
    "views": ("playCount", "stats.playCount", "views"),
    "timestamp": ("createTimeISO", "createTime", "timestamp"),
    "media_url": ("videoUrl", "video.playAddr", "covers.default", "videoMeta.coverUrl"),
    "post_url": ("webVideoUrl", "url"),
}


def _lookup(item: Dict[str, Any], path: str) -> Any:
    current: Any = item
    for part in path.split("."):
        if not isinstance(current, dict):
            return None
        current = current.get(part)
    return current


def first_present(item: Dict[str, Any], candidates: Iterable[str], default: Any = None) -> Any:
    """Return the first candidate field that is present and not empty."""
    for key in candidates:
        value = _lookup(item, key)
        if value not in (None, ""):
            return value
    return default


def _coerce_int(value: Any, default: int = 0) -> int:
    if value in (None, ""):
        return default
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return default


EPOCH_ISO = datetime(1970, 1, 1, tzinfo=timezone.utc).isoformat()
# Epoch values above this are milliseconds (seconds would be past year 5000).
MILLISECOND_EPOCH_THRESHOLD = 1e11


def _epoch_to_iso(value: float) -> str:
    seconds = value / 1000 if value > MILLISECOND_EPOCH_THRESHOLD else value
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc).isoformat()
    except (OverflowError, OSError, ValueError):
        return EPOCH_ISO


def _coerce_timestamp(value: Any) -> str:
    """Provider timestamps arrive as ISO strings or epoch seconds/milliseconds."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return _epoch_to_iso(float(value))
    if isinstance(value, str) and value.strip():
        text = value.strip()
        if text.isdigit():
            return _epoch_to_iso(float(text))
        return text
    # Undated posts get the epoch.
    return EPOCH_ISO


def _coerce_url(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    return value.strip() or None


def extract_hashtags(text: Optional[str]) -> List[str]:
    """Hashtags in caption order, capped at ten."""
    return HASHTAG_PATTERN.findall(text or "")[:MAX_HASHTAGS]


def engagement_score(platform: PlatformKey, likes: int, comments: int, views: int, shares: int) -> float:
    """Platform-weighted engagement used for ranking.

    Instagram: likes + comments + 0.1 * views + 2 * shares
    TikTok:    likes + comments + 0.01 * views + 3 * shares
    """
    if platform == "tiktok":
        return float(likes + comments + 0.01 * views + 3 * shares)
    return float(likes + comments + 0.1 * views + 2 * shares)


def _instagram_post_type(item: Dict[str, Any]) -> PostType:
    raw_type = str(item.get("type") or "").strip().lower()
    product_type = str(item.get("productType") or "").strip().lower()
    if product_type == "clips" or raw_type == "reel":
        return PostType.REEL
    if raw_type == "story":
        return PostType.STORY
    if raw_type == "video" or item.get("isVideo"):
        return PostType.VIDEO
    return PostType.PHOTO


def _instagram_post_url(item: Dict[str, Any]) -> Optional[str]:
    url = item.get("url")
    if isinstance(url, str) and url.startswith("http"):
        return url
    short_code = item.get("shortCode")
    if short_code:
        return f"https://www.instagram.com/p/{short_code}/"
    return None


def is_hidden_likes(item: Dict[str, Any]) -> bool:
    raw_likes = first_present(item, INSTAGRAM_FIELDS["likes"])
    return _coerce_int(raw_likes, default=0) == INSTAGRAM_HIDDEN_LIKES


def normalize_instagram_post(item: Dict[str, Any]) -> SocialPost:
    caption = str(first_present(item, INSTAGRAM_FIELDS["caption"], "") or "")
    likes = max(_coerce_int(first_present(item, INSTAGRAM_FIELDS["likes"])), 0)
    comments = max(_coerce_int(first_present(item, INSTAGRAM_FIELDS["comments"])), 0)
    views = max(_coerce_int(first_present(item, INSTAGRAM_FIELDS["views"])), 0)
    shares = max(_coerce_int(item.get("sharesCount")), 0)
    return SocialPost(
        platform="instagram",
        type=_instagram_post_type(item),
        caption=caption,
        likes=likes,
        comments=comments,
        shares=shares,
        views=views,
        timestamp=_coerce_timestamp(first_present(item, INSTAGRAM_FIELDS["timestamp"])),
        hashtags=extract_hashtags(caption),
        media_url=_coerce_url(first_present(item, INSTAGRAM_FIELDS["media_url"])),
        post_url=_instagram_post_url(item),
        engagement_score=engagement_score("instagram", likes, comments, views, shares),
    )


def normalize_tiktok_post(item: Dict[str, Any]) -> SocialPost:
    caption = str(first_present(item, TIKTOK_FIELDS["caption"], "") or "")
    likes = max(_coerce_int(first_present(item, TIKTOK_FIELDS["likes"])), 0)
    comments = max(_coerce_int(first_present(item, TIKTOK_FIELDS["comments"])), 0)
    shares = max(_coerce_int(first_present(item, TIKTOK_FIELDS["shares"])), 0)
    views = max(_coerce_int(first_present(item, TIKTOK_FIELDS["views"])), 0)
    return SocialPost(
        platform="tiktok",
        type=PostType.VIDEO,
        caption=caption,
        likes=likes,
        comments=comments,
        shares=shares,
        views=views,
        timestamp=_coerce_timestamp(first_present(item, TIKTOK_FIELDS["timestamp"])),
        hashtags=extract_hashtags(caption),
        media_url=_coerce_url(first_present(item, TIKTOK_FIELDS["media_url"])),
        post_url=_coerce_url(first_present(item, TIKTOK_FIELDS["post_url"])),
        engagement_score=engagement_score("tiktok", likes, comments, views, shares),
    )


def normalize_post(platform: PlatformKey, item: Dict[str, Any]) -> SocialPost:
    if platform == "tiktok":
        return normalize_tiktok_post(item)
    return normalize_instagram_post(item)


def rank_posts(posts: Iterable[SocialPost]) -> List[SocialPost]:
    """Sort by engagement, highest first; ties keep input order."""
    return sorted(posts, key=lambda post: post.engagement_score, reverse=True)


def normalize_posts(platform: PlatformKey, items: Iterable[Any]) -> List[SocialPost]:
    """Normalize and rank a raw provider result set.

    Non-dict items and provider error rows are skipped, as are Instagram
    posts with hidden like counts. An item that cannot be normalized is
    logged and skipped; it never discards the rest of the set.
    """
    posts: List[SocialPost] = []
    for index, item in enumerate(items):
        if not isinstance(item, dict) or item.get("error"):
            continue
        if platform == "instagram" and is_hidden_likes(item):
            continue
        try:
            posts.append(normalize_post(platform, item))
        except (TypeError, ValueError) as exc:
            logger.warning("Skipping malformed %s item %s: %s", platform, index, exc)
    return rank_posts(posts)


def extract_profile(platform: PlatformKey, items: Iterable[Any]) -> Optional[ProfileSnapshot]:
    """Pull follower count and avatar from a profile-mode result set."""
    for item in items:
        if not isinstance(item, dict) or item.get("error"):
            continue
        if platform == "tiktok":
            author = item.get("authorMeta") if isinstance(item.get("authorMeta"), dict) else item
            followers = first_present(author, ("fans", "followerCount", "stats.followerCount"))
            avatar = first_present(author, ("avatar", "avatarThumb", "originalAvatarUrl"))
        else:
            followers = first_present(item, ("followersCount", "followers", "edge_followed_by.count"))
            avatar = first_present(item, ("profilePicUrlHD", "profilePicUrl"))
        if followers is None:
            continue
        return ProfileSnapshot(
            platform=platform,
            follower_count=max(_coerce_int(followers), 0),
            avatar_url=_coerce_url(avatar),
        )
    return None
