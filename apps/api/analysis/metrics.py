"""
Engagement aggregates computed from ranked posts before AI synthesis.
"""

import numpy as np
from collections import Counter
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .models import ProfileSnapshot, SocialPost


def _parse_timestamp(value: str) -> Optional[datetime]:
    try:
        text = str(value)
        if text.endswith("Z"):
            text = text.replace("Z", "+00:00")
        parsed = datetime.fromisoformat(text)
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed.astimezone(timezone.utc)
    except (TypeError, ValueError):
        return None


class EngagementAnalyzer:
    """Summarizes one platform's ranked posts."""

    def __init__(self, posts: List[SocialPost], profile: Optional[ProfileSnapshot] = None):
        self.posts = posts
        self.profile = profile

    def summarize(self) -> Dict[str, Any]:
        if not self.posts:
            return {"post_count": 0}

        scores = np.array([p.engagement_score for p in self.posts], dtype=float)
        likes = np.array([p.likes for p in self.posts], dtype=float)
        comments = np.array([p.comments for p in self.posts], dtype=float)
        views = np.array([p.views for p in self.posts], dtype=float)
        shares = np.array([p.shares for p in self.posts], dtype=float)

        summary: Dict[str, Any] = {
            "post_count": len(self.posts),
            "mean_engagement": round(float(np.mean(scores)), 2),
            "median_engagement": round(float(np.median(scores)), 2),
            "avg_likes": round(float(np.mean(likes)), 2),
            "avg_comments": round(float(np.mean(comments)), 2),
            "avg_views": round(float(np.mean(views)), 2),
            "total_shares": int(np.sum(shares)),
            "top_hashtags": self._top_hashtags(),
            "best_posting_hour_utc": self._best_posting_hour(),
            "engagement_rate": None,
        }
        if self.profile and self.profile.follower_count > 0:
            per_post = (likes + comments) / float(self.profile.follower_count)
            summary["engagement_rate"] = round(float(np.mean(per_post)) * 100, 2)
        return summary

    def _top_hashtags(self, limit: int = 5) -> List[str]:
        counts = Counter(tag.lower() for post in self.posts for tag in post.hashtags)
        return [tag for tag, _ in counts.most_common(limit)]

    def _best_posting_hour(self) -> Optional[int]:
        by_hour: Dict[int, List[float]] = {}
        for post in self.posts:
            parsed = _parse_timestamp(post.timestamp)
            if parsed is None:
                continue
            by_hour.setdefault(parsed.hour, []).append(post.engagement_score)
        if not by_hour:
            return None
        return max(sorted(by_hour), key=lambda hour: float(np.mean(by_hour[hour])))


def summarize_engagement(
    posts_by_platform: Dict[str, List[SocialPost]],
    profiles: Dict[str, ProfileSnapshot],
) -> Dict[str, Any]:
    """Per-platform aggregates plus a combined post total."""
    summary: Dict[str, Any] = {}
    for platform, posts in posts_by_platform.items():
        summary[platform] = EngagementAnalyzer(posts, profiles.get(platform)).summarize()
    summary["total_posts"] = sum(len(posts) for posts in posts_by_platform.values())
    return summary
