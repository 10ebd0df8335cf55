"""Hands a session to the analysis worker without waiting for the outcome."""
from uuid import UUID

import structlog

logger = structlog.get_logger()


def dispatch_analysis(session_id: UUID) -> str:
    """Enqueue run_analysis and return the Celery task id.

    Raises whatever the broker raises; callers decide whether that matters.
    Progress is observable only through the session's status.
    """
    from brandscope.tasks.analysis import run_analysis

    async_result = run_analysis.delay(str(session_id))
    logger.info("analysis: dispatched", session_id=str(session_id), task_id=async_result.id)
    return async_result.id
