"""
Artist AI analysis router.
"""

from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import Field
from sqlalchemy.ext.asyncio import AsyncSession

from analysis.models import CamelModel
from database import get_db
from routers.auth_scope import AnalysisTokenContext, ensure_slug_scope, get_analysis_token_context
from services.analysis_records import find_by_slug, serialize_record
from services.artist_analysis import (
    AnalysisNotFoundError,
    AnalysisOrchestrator,
    AnalysisValidationError,
    get_orchestrator,
)

router = APIRouter()


class AnalyzeRequest(CamelModel):
    artist_name: str = Field(default="", max_length=200)
    instagram_username: Optional[str] = Field(default=None, max_length=100)
    tiktok_username: Optional[str] = Field(default=None, max_length=100)
    artist_id: Optional[str] = Field(default=None, max_length=200)


class AnalyzeResponse(CamelModel):
    analysis_id: str
    analysis_token: str
    message: str


class AnalysisStatusResponse(CamelModel):
    stage: str
    progress: int
    message: str
    estimated_time: int
    complete: bool
    success: Optional[bool] = None
    error: Optional[str] = None
    artist_slug: Optional[str] = None


@router.post("/analyze", response_model=AnalyzeResponse, status_code=202)
async def start_analysis(
    request: AnalyzeRequest,
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator),
):
    """Queue a background analysis and return its id immediately."""
    try:
        submission = await orchestrator.submit(
            artist_name=request.artist_name,
            instagram_handle=request.instagram_username,
            tiktok_handle=request.tiktok_username,
            artist_id=request.artist_id,
        )
    except AnalysisValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    return AnalyzeResponse(
        analysis_id=submission.job_id,
        analysis_token=submission.job_token,
        message="Analysis started. Poll the status endpoint for progress.",
    )


@router.get("/status/{analysis_id}", response_model=AnalysisStatusResponse, response_model_exclude_none=True)
async def get_analysis_status(
    analysis_id: str,
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator),
):
    """Current progress snapshot; 404 once the job has expired."""
    try:
        job = await orchestrator.get_progress(analysis_id)
    except AnalysisNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Analysis not found or expired") from exc

    return AnalysisStatusResponse(
        stage=job.stage.value,
        progress=job.progress_percent,
        message=job.message,
        estimated_time=job.estimated_duration_ms,
        complete=job.complete,
        success=job.success if job.complete else None,
        error=job.error,
        artist_slug=job.result_slug,
    )


@router.get("/results/{artist_slug}")
async def get_analysis_results(
    artist_slug: str,
    db: AsyncSession = Depends(get_db),
):
    """Latest stored analysis for an artist."""
    row = await find_by_slug(db, artist_slug)
    if not row:
        raise HTTPException(status_code=404, detail="Analysis not found")
    return serialize_record(row)


@router.get("/results/{artist_slug}/posts")
async def get_analysis_posts(
    artist_slug: str,
    platform: Literal["instagram", "tiktok"],
    token: AnalysisTokenContext = Depends(get_analysis_token_context),
    db: AsyncSession = Depends(get_db),
):
    """Ranked posts for one platform, for holders of the analysis token."""
    ensure_slug_scope(token.artist_slug, artist_slug)
    row = await find_by_slug(db, artist_slug)
    if not row:
        raise HTTPException(status_code=404, detail="Analysis not found")

    posts = (row.scraped_posts or {}).get(platform) or []
    if not posts:
        raise HTTPException(status_code=404, detail=f"No {platform} posts found")
    return {"artistSlug": row.artist_slug, "platform": platform, "posts": posts}
