"""AI insight synthesis for collected artist posts."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Dict, List, Optional

from openai import OpenAI
from pydantic import ValidationError

from analysis.models import AnalysisResult, SocialPost
from config import settings

logger = logging.getLogger(__name__)

MAX_POSTS_PER_PLATFORM_IN_PROMPT = 15

SYSTEM_PROMPT = (
    "You are an expert social media analyst specializing in music artist growth. "
    "Provide data-driven insights and actionable recommendations. "
    "Respond with a single strict JSON object and nothing else."
)

RESPONSE_SCHEMA = """
{
  "overallScore": number (0-10),
  "insights": [
    {"type": "success" | "warning" | "improvement", "title": "string", "description": "string", "metric": "optional string"}
  ],
  "recommendations": ["string"],
  "contentAnalysis": {
    "bestPerforming": "string",
    "worstPerforming": "string",
    "optimalPostingTime": "string",
    "topHashtags": ["string"]
  },
  "growthPrediction": {"thirtyDays": number, "sixtyDays": number, "ninetyDays": number},
  "brandAnalysis": {
    "personality": "string", "values": "string", "aesthetic": "string", "targetAudience": "string",
    "strengths": ["string"], "risks": ["string"], "projection": "string"
  },
  "contentGuide": {
    "tone": "string", "visualStyle": "string", "captionStyle": "string", "postingCadence": "string",
    "do": ["string"], "avoid": ["string"]
  },
  "topPerformers": [
    {"platform": "instagram" | "tiktok", "caption": "string", "engagementScore": number, "reason": "string", "postUrl": "optional string"}
  ]
}
"""

FALLBACK_ANALYSIS: Dict[str, Any] = {
    "overallScore": 7.5,
    "insights": [
        {
            "type": "success",
            "title": "Strong Engagement Rate",
            "description": "Your content is resonating well with your audience",
            "metric": "8.5% average",
        },
        {
            "type": "improvement",
            "title": "Posting Consistency",
            "description": "Increase posting frequency for better reach",
        },
        {
            "type": "warning",
            "title": "Hashtag Optimization",
            "description": "Using too many generic hashtags, focus on niche tags",
        },
    ],
    "recommendations": [
        "Post 3-4 times per week consistently",
        "Engage with comments within the first hour",
        "Use 5-10 targeted hashtags per post",
        "Create more video content (Reels/TikToks)",
    ],
    "contentAnalysis": {
        "bestPerforming": "Video content / Reels",
        "worstPerforming": "Static image posts",
        "optimalPostingTime": "7-9 PM EST",
        "topHashtags": ["#indiemusic", "#newmusic", "#musician", "#livemusic"],
    },
    "growthPrediction": {
        "thirtyDays": 15,
        "sixtyDays": 35,
        "ninetyDays": 75,
    },
}


def fallback_analysis_result() -> AnalysisResult:
    """Fixed result returned whenever the AI stage cannot produce a valid one."""
    return AnalysisResult.model_validate(FALLBACK_ANALYSIS)


def get_openai_client(api_key: str) -> Optional[OpenAI]:
    """Get OpenAI client, handling placeholders."""
    if not api_key or "your_" in api_key or api_key == "test-key":
        return None
    return OpenAI(api_key=api_key)


def _post_for_prompt(post: SocialPost) -> Dict[str, Any]:
    return post.model_dump(by_alias=True, mode="json", exclude={"media_url"})


def build_analysis_prompt(
    posts: List[SocialPost],
    external_profile_data: Optional[Dict[str, Any]] = None,
    engagement_summary: Optional[Dict[str, Any]] = None,
) -> str:
    instagram_posts = [p for p in posts if p.platform == "instagram"]
    tiktok_posts = [p for p in posts if p.platform == "tiktok"]
    instagram_sample = [_post_for_prompt(p) for p in instagram_posts[:MAX_POSTS_PER_PLATFORM_IN_PROMPT]]
    tiktok_sample = [_post_for_prompt(p) for p in tiktok_posts[:MAX_POSTS_PER_PLATFORM_IN_PROMPT]]
    music_data = json.dumps(external_profile_data, indent=2) if external_profile_data else "No music platform data available"
    summary = json.dumps(engagement_summary, indent=2) if engagement_summary else "Not computed"

    return f"""
You are analyzing the social presence of a music artist.

ARTIST PROFILE DATA FROM MUSIC PLATFORMS:
{music_data}

ENGAGEMENT SUMMARY (posts ranked by engagement score):
{summary}

INSTAGRAM POSTS ANALYZED ({len(instagram_posts)} posts, top {len(instagram_sample)} shown):
{json.dumps(instagram_sample, indent=2)}

TIKTOK POSTS ANALYZED ({len(tiktok_posts)} posts, top {len(tiktok_sample)} shown):
{json.dumps(tiktok_sample, indent=2)}

ANALYSIS REQUIREMENTS:
1. Score overall engagement from 0 to 10 based on like/view ratios, comment engagement and consistency.
2. Give 3-5 insights, each typed "success" (working well), "warning" (potential issue) or "improvement" (growth opportunity).
3. Give 4-6 specific, actionable recommendations.
4. Summarize best and worst performing content type, optimal posting time and top hashtags.
5. Predict follower growth percentage for 30, 60 and 90 days.
6. Optionally describe brand perception, a content style guide and the top performing posts with reasons.

Return JSON matching exactly this structure:
{RESPONSE_SCHEMA}
"""


class InsightSynthesizer:
    """Turns ranked posts into an AnalysisResult. Never raises."""

    def __init__(
        self,
        api_key: str = "",
        model: str = "gpt-4-turbo-preview",
        temperature: float = 0.7,
        max_tokens: int = 2000,
        client: Optional[OpenAI] = None,
    ) -> None:
        self.client = client if client is not None else get_openai_client(api_key)
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens

    def _complete(self, prompt: str) -> str:
        response = self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            response_format={"type": "json_object"},
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )
        return response.choices[0].message.content or ""

    async def synthesize(
        self,
        posts: List[SocialPost],
        external_profile_data: Optional[Dict[str, Any]] = None,
        engagement_summary: Optional[Dict[str, Any]] = None,
    ) -> AnalysisResult:
        if self.client is None:
            logger.warning("OpenAI API key missing; using fallback analysis.")
            return fallback_analysis_result()

        try:
            prompt = build_analysis_prompt(posts, external_profile_data, engagement_summary)
            raw_content = await asyncio.to_thread(self._complete, prompt)
            parsed = json.loads(raw_content or "{}")
            if not isinstance(parsed, dict):
                raise ValueError("AI response is not a JSON object")
            return AnalysisResult.model_validate(parsed)
        except (json.JSONDecodeError, ValidationError, ValueError) as exc:
            logger.warning("AI analysis returned malformed output, using fallback: %s", exc)
        except Exception as exc:
            logger.warning("AI analysis call failed, using fallback: %s", exc)
        return fallback_analysis_result()


def build_insight_synthesizer() -> InsightSynthesizer:
    return InsightSynthesizer(
        api_key=settings.OPENAI_API_KEY,
        model=settings.OPENAI_MODEL,
        temperature=settings.OPENAI_TEMPERATURE,
        max_tokens=settings.OPENAI_MAX_TOKENS,
    )
