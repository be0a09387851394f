"""
Artist AI Social Analysis - FastAPI Backend
Submits background analyses of an artist's Instagram and TikTok presence
and serves their progress and stored results.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from config import settings, validate_security_settings
from database import engine, Base
import models  # noqa: F401
from routers import artist_ai, health
from services.artist_analysis import peek_orchestrator


async def _ensure_schema() -> None:
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        print("🗄️ Database schema verified.")
    except Exception as e:
        print(f"⚠️ Database bootstrap skipped: {e}")


async def _stop_analyses() -> None:
    orchestrator = peek_orchestrator()
    if orchestrator is None:
        return
    if orchestrator.active_jobs:
        print(f"⏳ Waiting up to {settings.SHUTDOWN_GRACE_SECONDS}s for {orchestrator.active_jobs} running analyses...")
    await orchestrator.shutdown(grace_seconds=settings.SHUTDOWN_GRACE_SECONDS)


@asynccontextmanager
async def lifespan(app: FastAPI):
    print("🚀 Starting Artist AI Analysis API...")
    validate_security_settings()
    if settings.AUTO_CREATE_DB_SCHEMA:
        await _ensure_schema()
    if not settings.APIFY_TOKEN:
        print("📱 APIFY_TOKEN not configured, analyses will use fallback social data.")
    if not settings.OPENAI_API_KEY:
        print("🤖 OPENAI_API_KEY not configured, analyses will use the fallback result.")
    yield
    await _stop_analyses()
    print("👋 Shutting down API...")


app = FastAPI(
    title="Artist AI Analysis API",
    description="Analyze an artist's Instagram and TikTok content and generate growth insights",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router, tags=["Health"])
app.include_router(artist_ai.router, prefix="/artist-ai", tags=["Artist AI"])


@app.get("/")
async def root():
    return {
        "name": "Artist AI Analysis API",
        "version": app.version,
        "status": "running",
    }
