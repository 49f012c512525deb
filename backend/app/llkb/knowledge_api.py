"""
LLKB API Endpoints
Discovery, learning, analytics and maintenance of a knowledge-base directory
"""

import logging
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from .analytics import update_analytics
from .config import get_settings
from .discovery import load_discovered_profile
from .health import check_health, get_stats, prune
from .learning import handle_learning_event
from .pattern_generation import load_discovered_patterns
from .pipeline import PipelineOptions, run_full_discovery_pipeline
from .similarity import DEFAULT_SIMILARITY_THRESHOLD, calculate_similarity
from .storage import KnowledgeStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/llkb", tags=["llkb"])


# ==================== Request Models ====================

class DiscoverRequest(BaseModel):
    project_root: str
    llkb_dir: Optional[str] = None
    confidence_threshold: Optional[float] = None
    max_patterns: Optional[int] = None
    skip_mining_modules: bool = False
    update_learned: bool = False


class LearnRequest(BaseModel):
    type: str
    journey_id: str
    success: bool
    id: Optional[str] = None
    prompt: Optional[str] = None
    context: Optional[str] = None
    step_text: Optional[str] = None
    selector_strategy: Optional[str] = None
    selector_value: Optional[str] = None
    llkb_dir: Optional[str] = None


class PruneRequest(BaseModel):
    llkb_dir: Optional[str] = None
    history_retention_days: Optional[int] = None
    archive_inactive_lessons: bool = False
    archive_inactive_components: bool = False
    inactive_days: int = 180


class SimilarityRequest(BaseModel):
    a: str
    b: str
    threshold: float = DEFAULT_SIMILARITY_THRESHOLD


def _llkb_dir(llkb_dir: Optional[str]) -> Path:
    return Path(llkb_dir) if llkb_dir else get_settings().root


# ==================== Discovery ====================

@router.post("/discover")
async def discover(request: DiscoverRequest):
    """Run the full discovery pipeline over a project"""
    if not Path(request.project_root).is_dir():
        raise HTTPException(status_code=404, detail=f"Project root not found: {request.project_root}")

    settings = get_settings()
    options = PipelineOptions(
        confidence_threshold=(
            request.confidence_threshold
            if request.confidence_threshold is not None
            else settings.confidence_threshold
        ),
        max_patterns=request.max_patterns or settings.max_patterns,
        max_age_days=settings.max_age_days,
        skip_mining_modules=request.skip_mining_modules,
        update_learned=request.update_learned,
    )
    result = run_full_discovery_pipeline(request.project_root, _llkb_dir(request.llkb_dir), options)
    return result.to_dict()


@router.get("/patterns")
async def get_patterns(llkb_dir: Optional[str] = None):
    patterns_file = load_discovered_patterns(_llkb_dir(llkb_dir))
    if patterns_file is None:
        raise HTTPException(status_code=404, detail="Discovered patterns not found")
    return patterns_file.to_json_dict()


@router.get("/profile")
async def get_profile(llkb_dir: Optional[str] = None):
    profile = load_discovered_profile(_llkb_dir(llkb_dir))
    if profile is None:
        raise HTTPException(status_code=404, detail="Discovered profile not found")
    return profile.to_json_dict()


# ==================== Learning ====================

@router.post("/learn")
async def learn(request: LearnRequest):
    """Record one test outcome against a pattern, component or lesson"""
    result = handle_learning_event(
        _llkb_dir(request.llkb_dir),
        learning_type=request.type,
        journey_id=request.journey_id,
        succeeded=request.success,
        entity_id=request.id,
        prompt=request.prompt,
        context=request.context,
        step_text=request.step_text,
        selector_strategy=request.selector_strategy,
        selector_value=request.selector_value,
    )
    if not result.success:
        error = result.error or "Learning failed"
        logger.info(f"[API] Learning rejected: {error}")
        if "required" in error or error.startswith("Unknown learning type"):
            raise HTTPException(status_code=400, detail=error)
        raise HTTPException(status_code=404, detail=error)
    return result.to_dict()


# ==================== Analytics ====================

@router.post("/analytics/refresh")
async def refresh_analytics(llkb_dir: Optional[str] = None):
    snapshot = update_analytics(_llkb_dir(llkb_dir))
    if snapshot is None:
        raise HTTPException(status_code=409, detail="Lessons or components are unavailable")
    return snapshot.to_json_dict()


@router.get("/analytics")
async def get_analytics(llkb_dir: Optional[str] = None):
    analytics = KnowledgeStore(_llkb_dir(llkb_dir)).load_analytics()
    if analytics is None:
        raise HTTPException(status_code=404, detail="Analytics not found")
    return analytics.to_json_dict()


# ==================== Maintenance ====================

@router.get("/health")
async def health(llkb_dir: Optional[str] = None):
    return check_health(_llkb_dir(llkb_dir)).to_dict()


@router.get("/stats")
async def stats(llkb_dir: Optional[str] = None):
    return get_stats(_llkb_dir(llkb_dir))


@router.post("/prune")
async def prune_knowledge_base(request: PruneRequest):
    retention = request.history_retention_days or get_settings().history_retention_days
    result = prune(
        _llkb_dir(request.llkb_dir),
        history_retention_days=retention,
        archive_inactive_lessons=request.archive_inactive_lessons,
        archive_inactive_components=request.archive_inactive_components,
        inactive_days=request.inactive_days,
    )
    return result.to_dict()


@router.post("/similarity")
async def similarity(request: SimilarityRequest):
    score = calculate_similarity(request.a, request.b)
    return {"similarity": score, "isNearDuplicate": score >= request.threshold}
