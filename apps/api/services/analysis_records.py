"""Persistence for artist analysis records, keyed by artist slug."""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from analysis.models import AnalysisRecord
from models.artist_analysis import ArtistAnalysis

logger = logging.getLogger(__name__)

_NON_ALPHANUMERIC = re.compile(r"[^a-z0-9]")


class PersistenceError(RuntimeError):
    """Raised when an analysis record cannot be written."""


def artist_slug(artist_name: str) -> str:
    """Lower-cased name with every non-alphanumeric character stripped."""
    return _NON_ALPHANUMERIC.sub("", (artist_name or "").lower())


def _record_columns(record: AnalysisRecord) -> Dict[str, Any]:
    return {
        "artist_name": record.artist_name,
        "instagram_username": record.instagram_username,
        "tiktok_username": record.tiktok_username,
        "posts_analyzed": record.posts_analyzed,
        "analysis_result": record.analysis_result.model_dump(by_alias=True, mode="json", exclude_none=True),
        "scraped_posts": {
            platform: [post.model_dump(by_alias=True, mode="json") for post in posts]
            for platform, posts in record.scraped_posts.items()
        },
        "profile_data": {
            platform: profile.model_dump(by_alias=True, mode="json")
            for platform, profile in record.profile_data.items()
        },
        "engagement_summary": record.engagement_summary,
        "external_profile_data": record.external_profile_data,
        "analysis_token": record.analysis_token,
    }


async def find_by_slug(db: AsyncSession, slug: str) -> Optional[ArtistAnalysis]:
    result = await db.execute(select(ArtistAnalysis).where(ArtistAnalysis.artist_slug == slug))
    return result.scalar_one_or_none()


async def _apply_upsert(db: AsyncSession, record: AnalysisRecord) -> ArtistAnalysis:
    columns = _record_columns(record)
    row = await find_by_slug(db, record.artist_slug)
    if row is None:
        row = ArtistAnalysis(artist_slug=record.artist_slug, **columns)
        db.add(row)
    else:
        for name, value in columns.items():
            setattr(row, name, value)
    await db.commit()
    await db.refresh(row)
    return row


async def _rollback_quietly(db: AsyncSession) -> None:
    try:
        await db.rollback()
    except (SQLAlchemyError, OSError) as exc:
        logger.warning("Rollback after failed save also failed: %s", exc)


async def upsert_by_slug(db: AsyncSession, record: AnalysisRecord) -> ArtistAnalysis:
    """Insert the record, or update the existing row for its slug in place.

    The row id and created_at of an existing record are preserved. An insert
    that loses a race on the unique slug index is retried once as an update.
    Driver-level connection errors (asyncpg raises plain ``OSError``) are
    reported as ``PersistenceError`` like any SQLAlchemy error.
    """
    try:
        try:
            return await _apply_upsert(db, record)
        except IntegrityError:
            await db.rollback()
            logger.info("Concurrent insert for slug %s, retrying as update", record.artist_slug)
            return await _apply_upsert(db, record)
    except (SQLAlchemyError, OSError) as exc:
        await _rollback_quietly(db)
        raise PersistenceError(f"Could not save analysis for {record.artist_slug}: {exc}") from exc


def serialize_record(row: ArtistAnalysis, include_posts: bool = False) -> Dict[str, Any]:
    """Public view of a stored record; the token is never included."""
    payload: Dict[str, Any] = {
        "id": row.id,
        "artistSlug": row.artist_slug,
        "artistName": row.artist_name,
        "instagramUsername": row.instagram_username,
        "tiktokUsername": row.tiktok_username,
        "postsAnalyzed": int(row.posts_analyzed or 0),
        "analysis": row.analysis_result,
        "profileData": row.profile_data or {},
        "engagementSummary": row.engagement_summary or {},
        "externalProfileData": row.external_profile_data,
        "createdAt": row.created_at.isoformat() if row.created_at else None,
        "updatedAt": row.updated_at.isoformat() if row.updated_at else None,
    }
    if include_posts:
        payload["scrapedPosts"] = row.scraped_posts or {}
    return payload
