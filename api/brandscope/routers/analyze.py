"""
Analysis trigger endpoint.

Callable by the session owner, or by another service presenting the shared
x-internal-token. The analysis itself runs on a Celery worker; poll the
session status for the outcome.
"""
from typing import Optional
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from brandscope.database import get_db
from brandscope.models import User
from brandscope.dependencies import get_optional_user, is_internal_call
from brandscope.schemas import AnalyzeResponse
from brandscope.services import analysis_trigger
from brandscope.services import sessions as session_queries

router = APIRouter(prefix="/analyze", tags=["analysis"])
logger = structlog.get_logger()


@router.post("/{session_id}", response_model=AnalyzeResponse)
async def trigger_analysis(
    session_id: UUID,
    internal: bool = Depends(is_internal_call),
    user: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    if not internal and user is None:
        raise HTTPException(status_code=401, detail="Unauthorized")

    owner_id = None if internal else user.id
    if not await session_queries.session_exists(db, session_id, owner_id):
        raise HTTPException(status_code=404, detail="Session not found")

    try:
        analysis_trigger.dispatch_analysis(session_id)
    except Exception as e:
        logger.error("analyze: dispatch failed", session_id=str(session_id), internal=internal, error=str(e))
        raise HTTPException(status_code=500, detail="Failed to start analysis")

    logger.info("analyze: started", session_id=str(session_id), internal=internal)
    return AnalyzeResponse(message="Analysis started", session_id=session_id)
