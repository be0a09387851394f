"""Artist social analysis model."""

from sqlalchemy import Column, String, DateTime, Integer, JSON
from sqlalchemy.sql import func
import uuid

from database import Base


class ArtistAnalysis(Base):
    """Latest social content analysis for an artist, one row per slug."""

    __tablename__ = "artist_analyses"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    artist_slug = Column(String, nullable=False, unique=True, index=True)
    artist_name = Column(String, nullable=False)
    instagram_username = Column(String, nullable=True)
    tiktok_username = Column(String, nullable=True)
    posts_analyzed = Column(Integer, nullable=False, default=0)
    analysis_result = Column(JSON, nullable=False)
    scraped_posts = Column(JSON, nullable=False)  # {"instagram": [...], "tiktok": [...]}
    profile_data = Column(JSON, nullable=True)  # only platforms that were collected
    engagement_summary = Column(JSON, nullable=True)
    external_profile_data = Column(JSON, nullable=True)
    analysis_token = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
