import json
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from brandscope.database import get_db
from brandscope.models import User
from brandscope.schemas import (
    SessionCreateRequest, SessionSummary, SessionDetail, SuccessResponse, AuthorProfileResponse,
)
from brandscope.dependencies import get_current_user
from brandscope.services import analysis_trigger
from brandscope.services import sessions as session_queries
from brandscope.services.brand_colors import BrandPalette
from brandscope.services.charts import dashboard_charts
from brandscope.services.format import sentiment_breakdown
from brandscope.services.report_data import shape_session_report

router = APIRouter(prefix="/sessions", tags=["sessions"])
logger = structlog.get_logger()


@router.get("", response_model=list[SessionSummary])
async def list_sessions(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await session_queries.list_sessions(db, user.id)


@router.post("", response_model=SessionDetail, status_code=status.HTTP_201_CREATED)
async def create_session(
    request: Request,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    try:
        payload = await request.json()
    except ValueError:
        return JSONResponse(status_code=400, content={"error": "Invalid JSON body"})
    try:
        req = SessionCreateRequest.model_validate(payload)
    except ValidationError as e:
        return JSONResponse(
            status_code=400,
            content={"error": "Validation error", "details": json.loads(e.json(include_url=False))},
        )

    session = await session_queries.create_session(db, user.id, req)
    logger.info("sessions: created", session_id=str(session.id), competitors=len(req.competitors))

    try:
        analysis_trigger.dispatch_analysis(session.id)
    except Exception as e:
        # the session stays pending and can be re-triggered via /analyze
        logger.error("sessions: analysis dispatch failed", session_id=str(session.id), error=str(e))

    return session


@router.get("/{session_id}", response_model=SessionDetail)
async def get_session(
    session_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    session = await session_queries.get_session(db, session_id, user.id)
    if not session:
        raise HTTPException(status_code=404, detail="Session not found")
    return session


@router.patch("/{session_id}", response_model=SuccessResponse)
async def mark_session_read(
    session_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await session_queries.mark_notification_read(db, session_id, user.id)
    return SuccessResponse()


@router.delete("/{session_id}", response_model=SuccessResponse)
async def delete_session(
    session_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    deleted = await session_queries.delete_session(db, session_id, user.id)
    if deleted:
        logger.info("sessions: deleted", session_id=str(session_id))
    return SuccessResponse()


@router.get("/{session_id}/authors", response_model=list[AuthorProfileResponse])
async def list_session_authors(
    session_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Authors ranked by collaboration score, each with their 10 latest posts."""
    if not await session_queries.session_exists(db, session_id, user.id):
        raise HTTPException(status_code=404, detail="Session not found")

    authors = await session_queries.list_author_profiles(db, session_id)
    return [AuthorProfileResponse.model_validate(a) for a in authors]


@router.get("/{session_id}/charts")
async def get_session_charts(
    session_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Chart-ready data for the dashboard widgets."""
    session = await session_queries.get_session(db, session_id, user.id)
    if not session or not session.analysis_result:
        raise HTTPException(status_code=404, detail="Analysis result not found")

    report = shape_session_report(session)
    palette = BrandPalette(report.focus_brand, report.brands)
    sentiment = None
    if session.comment_analysis:
        ca = session.comment_analysis
        sentiment = sentiment_breakdown(ca.positive_count, ca.neutral_count, ca.negative_count)
    return dashboard_charts(report, palette, sentiment)
