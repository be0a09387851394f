"""
Artist analysis models and schemas.
"""

from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


PlatformKey = Literal["instagram", "tiktok"]


class CamelModel(BaseModel):
    """Wire format is camelCase, attributes stay snake_case."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PostType(str, Enum):
    PHOTO = "photo"
    VIDEO = "video"
    REEL = "reel"
    STORY = "story"


class SocialPost(CamelModel):
    """Canonical post shape shared by every platform."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    platform: PlatformKey
    type: PostType
    caption: str = ""
    likes: int = 0
    comments: int = 0
    shares: int = 0
    views: int = 0
    timestamp: str
    hashtags: List[str] = []
    media_url: Optional[str] = None
    post_url: Optional[str] = None
    engagement_score: float = 0.0


class ProfileSnapshot(CamelModel):
    platform: PlatformKey
    follower_count: int = Field(default=0, ge=0)
    avatar_url: Optional[str] = None


class Insight(CamelModel):
    type: Literal["success", "warning", "improvement"]
    title: str
    description: str
    metric: Optional[str] = None


class ContentAnalysis(CamelModel):
    best_performing: str
    worst_performing: str
    optimal_posting_time: str
    top_hashtags: List[str]


class GrowthPrediction(CamelModel):
    thirty_days: float
    sixty_days: float
    ninety_days: float


class BrandAnalysis(CamelModel):
    personality: str
    values: str
    aesthetic: str
    target_audience: str
    strengths: List[str] = []
    risks: List[str] = []
    projection: str = ""


class ContentGuide(CamelModel):
    tone: str
    visual_style: str
    caption_style: str
    posting_cadence: str
    do: List[str] = []
    avoid: List[str] = []


class TopPerformer(CamelModel):
    platform: PlatformKey
    caption: str = ""
    engagement_score: float = 0.0
    reason: str = ""
    post_url: Optional[str] = None


class AnalysisResult(CamelModel):
    """AI synthesized insights for one artist."""

    overall_score: float = Field(ge=0, le=10)
    insights: List[Insight] = Field(min_length=1)
    recommendations: List[str] = Field(min_length=1)
    content_analysis: ContentAnalysis
    growth_prediction: GrowthPrediction
    brand_analysis: Optional[BrandAnalysis] = None
    content_guide: Optional[ContentGuide] = None
    top_performers: Optional[List[TopPerformer]] = None


class AnalysisStage(str, Enum):
    """Pipeline stages, in order, with their progress checkpoint."""

    QUEUED = "queued"
    CONNECTING_INSTAGRAM = "connecting_instagram"
    COLLECTING_INSTAGRAM_POSTS = "collecting_instagram_posts"
    CONNECTING_TIKTOK = "connecting_tiktok"
    COLLECTING_TIKTOK_POSTS = "collecting_tiktok_posts"
    ANALYZING = "analyzing"
    GENERATING_INSIGHTS = "generating_insights"
    PERSISTING = "persisting"
    COMPLETE = "complete"


STAGE_PROGRESS: Dict[AnalysisStage, int] = {
    AnalysisStage.QUEUED: 0,
    AnalysisStage.CONNECTING_INSTAGRAM: 5,
    AnalysisStage.COLLECTING_INSTAGRAM_POSTS: 25,
    AnalysisStage.CONNECTING_TIKTOK: 40,
    AnalysisStage.COLLECTING_TIKTOK_POSTS: 50,
    AnalysisStage.ANALYZING: 65,
    AnalysisStage.GENERATING_INSIGHTS: 80,
    AnalysisStage.PERSISTING: 95,
    AnalysisStage.COMPLETE: 100,
}

# Rough remaining time per stage, used by clients for ETA display.
STAGE_ESTIMATED_MS: Dict[AnalysisStage, int] = {
    AnalysisStage.QUEUED: 120000,
    AnalysisStage.CONNECTING_INSTAGRAM: 110000,
    AnalysisStage.COLLECTING_INSTAGRAM_POSTS: 90000,
    AnalysisStage.CONNECTING_TIKTOK: 70000,
    AnalysisStage.COLLECTING_TIKTOK_POSTS: 60000,
    AnalysisStage.ANALYZING: 30000,
    AnalysisStage.GENERATING_INSIGHTS: 20000,
    AnalysisStage.PERSISTING: 3000,
    AnalysisStage.COMPLETE: 0,
}


class AnalysisJob(CamelModel):
    """Progress snapshot for one background analysis."""

    job_id: str
    stage: AnalysisStage = AnalysisStage.QUEUED
    progress_percent: int = Field(default=0, ge=0, le=100)
    message: str = "Queued for analysis..."
    estimated_duration_ms: int = STAGE_ESTIMATED_MS[AnalysisStage.QUEUED]
    complete: bool = False
    success: Optional[bool] = None
    error: Optional[str] = None
    result_slug: Optional[str] = None


class AnalysisRecord(CamelModel):
    """Everything persisted for an artist after a successful run."""

    artist_slug: str
    artist_name: str
    instagram_username: Optional[str] = None
    tiktok_username: Optional[str] = None
    posts_analyzed: int
    analysis_result: AnalysisResult
    scraped_posts: Dict[str, List[SocialPost]]
    profile_data: Dict[str, ProfileSnapshot] = {}
    engagement_summary: Dict[str, Any] = {}
    external_profile_data: Optional[Dict[str, Any]] = None
    analysis_token: Optional[str] = None
