"""Notifications router: completed analyses the user has not looked at yet."""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from brandscope.database import get_db
from brandscope.models import User
from brandscope.dependencies import get_current_user
from brandscope.schemas import UnreadCountResponse
from brandscope.services import sessions as session_queries

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("/unread", response_model=UnreadCountResponse)
async def get_unread_count(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Completed sessions whose notification has not been marked read."""
    count = await session_queries.count_unread_notifications(db, user.id)
    return UnreadCountResponse(count=count)
