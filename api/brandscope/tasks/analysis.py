"""
Session Analysis — Celery task.

Turns the brand data collected for one session into an AnalysisResult:
1. Claim the session (pending/completed/failed -> running)
2. Per-brand platform metrics from stored BrandData
3. Cross-brand comparison and brand equity
4. Keyword clustering per brand and platform
5. Persist the result and mark the session completed

Any failure marks the session failed and is recorded in error_logs.
"""
import json
from datetime import datetime
from typing import Callable
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.orm import Session, selectinload
import structlog

from brandscope.config import get_settings
from brandscope.models import AnalysisSession, AnalysisResult, Brand
from brandscope.services.analytics import analyze_brand, comparative_analysis, data_quality_report
from brandscope.services.keywords import analyze_keywords
from brandscope.tasks import celery_app
from brandscope.tasks.db_helpers import get_sync_db, log_error

logger = structlog.get_logger()
settings = get_settings()

RESULT_BLOBS = (
    "audience_comparison", "post_channel_data", "hashtag_analysis",
    "post_type_engagement", "post_timing_data", "brand_equity_data",
    "additional_metrics",
)


class SessionNotFound(LookupError):
    pass


def claim_session(session: Session, session_id: UUID) -> bool:
    """Mark the session running unless it already is; False means skip."""
    result = session.execute(
        update(AnalysisSession)
        .where(AnalysisSession.id == session_id, AnalysisSession.status != "running")
        .values(status="running", updated_at=datetime.utcnow())
    )
    return result.rowcount == 1


def mark_failed(session: Session, session_id: UUID):
    session.execute(
        update(AnalysisSession)
        .where(AnalysisSession.id == session_id)
        .values(status="failed", updated_at=datetime.utcnow())
    )


def execute_analysis(session: Session, session_id: UUID) -> dict:
    analysis_session = session.execute(
        select(AnalysisSession)
        .where(AnalysisSession.id == session_id)
        .options(
            selectinload(AnalysisSession.focus_brand).selectinload(Brand.brand_data),
            selectinload(AnalysisSession.competitors).selectinload(Brand.brand_data),
            selectinload(AnalysisSession.analysis_result),
        )
    ).scalar_one_or_none()
    if analysis_session is None:
        raise SessionNotFound(f"session {session_id} not found")
    if analysis_session.focus_brand is None:
        raise ValueError("session has no focus brand")

    brands = [analyze_brand(b) for b in analysis_session.brands]
    logger.info("analysis: brands analyzed", session_id=str(session_id),
                brands=len(brands), platforms=sum(len(b.platforms) for b in brands))

    blobs = comparative_analysis(brands, analysis_session.focus_brand.name, settings.ANALYSIS_DATA_RANGE)

    keyword_clustering = []
    for brand in brands:
        for platform, metrics in brand.platforms.items():
            if not metrics.raw_posts:
                continue
            analysis = analyze_keywords(
                metrics.raw_posts, brand.brand_name, platform, settings.ANALYSIS_MAX_KEYWORD_POSTS,
            )
            if analysis.clusters:
                keyword_clustering.append(analysis.to_dict())

    result = analysis_session.analysis_result
    if result is None:
        result = AnalysisResult(session_id=analysis_session.id)
        session.add(result)
    for name in RESULT_BLOBS:
        setattr(result, name, json.dumps(blobs[name]))
    result.keyword_clustering = json.dumps(keyword_clustering)
    result.data_quality_report = json.dumps(data_quality_report(brands))

    now = datetime.utcnow()
    analysis_session.status = "completed"
    analysis_session.completed_at = now
    analysis_session.updated_at = now
    analysis_session.notification_read = False

    return {
        "brands": len(brands),
        "keyword_analyses": len(keyword_clustering),
    }


def analyze_session(session_factory: Callable, session_id: str) -> dict:
    """Claim, run and record one analysis using `session_factory` for DB access."""
    sid = UUID(session_id)
    with session_factory() as session:
        claimed = claim_session(session, sid)
    if not claimed:
        logger.warning("analysis: skipped, session missing or already running", session_id=session_id)
        return {"status": "skipped", "session_id": session_id}

    try:
        with session_factory() as session:
            summary = execute_analysis(session, sid)
    except Exception as e:
        logger.error("analysis: failed", session_id=session_id, error=str(e))
        with session_factory() as session:
            mark_failed(session, sid)
            log_error(session, "run_analysis", type(e).__name__, str(e), {"session_id": session_id})
        return {"status": "failed", "session_id": session_id, "error": str(e)}

    logger.info("analysis: completed", session_id=session_id, **summary)
    return {"status": "completed", "session_id": session_id, **summary}


@celery_app.task(name="run_analysis", bind=True)
def run_analysis(self, session_id: str) -> dict:
    logger.info("analysis: starting", session_id=session_id, task_id=self.request.id)
    return analyze_session(get_sync_db, session_id)
