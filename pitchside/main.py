"""
Pitchside - Main FastAPI Application
Fixtures, match detail, trending and odds served from the aggregation cache
"""
import logging
from datetime import timedelta
from typing import Optional

from fastapi import Cookie, Depends, FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse, RedirectResponse

from pitchside.analytics.service import AnalyticsService
from pitchside.cache.manager import AggregationCache, MatchNotFound, get_aggregation_cache
from pitchside.errors import RateLimited, UpstreamUnavailable
from pitchside.schemas import AnalyticsResponse, CleanupResult, InteractionEvent, OddsEvent
from config.settings import settings

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("pitchside.main")

# Version tracking
APP_VERSION = "v0.3.0"
APP_NAME = "Pitchside"

SESSION_COOKIE = "sessionid"

app = FastAPI(
    title=APP_NAME,
    description="Football fixtures, match detail, trending and odds",
    version=APP_VERSION,
)


# ===== DEPENDENCIES =====

def get_cache() -> AggregationCache:
    return get_aggregation_cache()


def get_analytics(cache: AggregationCache = Depends(get_cache)) -> AnalyticsService:
    return cache.analytics


def require_session(sessionid: Optional[str] = Cookie(None)) -> str:
    """Admin routes need the session cookie of the current request."""
    if not sessionid:
        raise HTTPException(status_code=401, detail="Authentication required")
    return sessionid


# ===== ERROR HANDLERS =====

@app.exception_handler(RateLimited)
async def rate_limited_handler(request: Request, exc: RateLimited):
    logger.warning(f"Rate limited by {exc.source} on {request.url.path}")
    headers = {"Retry-After": str(int(exc.retry_after))} if exc.retry_after else None
    return JSONResponse(status_code=429, content={"error": RateLimited.USER_MESSAGE}, headers=headers)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(status_code=500, content={"error": "Something went wrong. Please try again later."})


# ===== HEALTH =====

@app.get("/health")
def health_check():
    """Health check endpoint."""
    return {"status": "ok", "version": APP_VERSION}


@app.get("/cache/stats")
def cache_stats(cache: AggregationCache = Depends(get_cache)):
    """Get cache statistics."""
    return cache.get_stats()


# ===== FIXTURES & MATCHES =====

@app.get("/api/leagues")
def leagues(cache: AggregationCache = Depends(get_cache)):
    """Scheduled matches grouped by league."""
    return cache.get_leagues().to_dict()


@app.get("/api/fixtures/{date}")
def fixtures_for_date(date: str, cache: AggregationCache = Depends(get_cache)):
    """Fixtures on a date (YYYY-MM-DD) grouped by league."""
    try:
        result = cache.get_fixtures_for_date(date)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return result.to_dict()


@app.get("/api/matches/{match_id}")
def match_detail(match_id: str, cache: AggregationCache = Depends(get_cache)):
    """Match detail with standings and head-to-head."""
    result = cache.get_match_detail(match_id)
    if isinstance(result, MatchNotFound):
        return JSONResponse(status_code=404, content=result.to_dict())
    return result.to_dict()


@app.get("/api/matches/{match_id}/predictions")
def match_predictions(match_id: str, cache: AggregationCache = Depends(get_cache)):
    result = cache.get_predictions(match_id)
    if result.data is None:
        raise HTTPException(status_code=404, detail=result.error or "No predictions available")
    return result.to_dict()


@app.get("/api/matches/{match_id}/analysis")
def match_analysis(
    match_id: str,
    max_age_hours: Optional[float] = Query(None, gt=0, description="Regenerate when older than this"),
    cache: AggregationCache = Depends(get_cache),
):
    max_age = timedelta(hours=max_age_hours) if max_age_hours else None
    result = cache.get_match_analysis(match_id, max_age=max_age)
    if result.data is None:
        raise HTTPException(status_code=404, detail=result.error or "Match not found")
    return result.to_dict()


# ===== TRENDING & ANALYTICS =====

@app.get("/api/trending")
def trending(
    limit: int = Query(settings.trending_limit, ge=1, le=100),
    cache: AggregationCache = Depends(get_cache),
):
    """Most interesting matches of the last week."""
    matches = cache.get_trending(limit)
    return {"matches": matches, "count": len(matches)}


@app.post("/api/analytics/{match_id}", response_model=AnalyticsResponse)
def track_interaction(
    match_id: str,
    event: InteractionEvent,
    analytics: AnalyticsService = Depends(get_analytics),
):
    counters = analytics.track_interaction(match_id, event.interaction, event.payload())
    return counters.to_dict()


@app.get("/api/analytics/{match_id}", response_model=AnalyticsResponse)
def match_analytics(match_id: str, analytics: AnalyticsService = Depends(get_analytics)):
    counters = analytics.get_match_analytics(match_id)
    if counters is None:
        raise HTTPException(status_code=404, detail="No analytics for this match")
    return counters.to_dict()


# ===== ODDS =====

@app.get("/api/sports")
def sports(cache: AggregationCache = Depends(get_cache)):
    """Sports offered by the odds provider, with the remaining request quota."""
    try:
        return cache.get_sports()
    except UpstreamUnavailable as e:
        raise HTTPException(status_code=503, detail=f"Odds provider unavailable: {e.message}")


@app.get("/api/odds/{sport_key}")
def sport_odds(sport_key: str, cache: AggregationCache = Depends(get_cache)):
    result = cache.get_sport_odds(sport_key)
    return {
        "events": [OddsEvent(**event).model_dump(exclude_none=True) for event in result.data],
        "meta": result.meta.to_dict(),
        "error": result.error,
    }


@app.get("/api/odds/{sport_key}/{event_id}")
def event_odds(sport_key: str, event_id: str, cache: AggregationCache = Depends(get_cache)):
    """Bookmaker odds for one event. RateLimited is answered with 429."""
    result = cache.get_odds_event(sport_key, event_id)
    return {
        "event": OddsEvent(**result.data).model_dump(exclude_none=True),
        "meta": result.meta.to_dict(),
        "error": result.error,
    }


# ===== ADMIN =====

@app.post("/admin/cleanup", response_model=CleanupResult)
def admin_cleanup(
    session: str = Depends(require_session),
    cache: AggregationCache = Depends(get_cache),
):
    """Purge past matches and expired analytics."""
    result = CleanupResult(
        matches_removed=cache.cleanup_old_matches(),
        analytics_removed=cache.analytics.cleanup_old_analytics(),
    )
    logger.info(f"Admin cleanup: {result.matches_removed} matches, {result.analytics_removed} analytics records")
    return result


@app.get("/admin/logout")
def admin_logout():
    response = RedirectResponse(url="/", status_code=303)
    response.delete_cookie(SESSION_COOKIE)
    return response
