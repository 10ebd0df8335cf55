"""Session queries. Everything here is scoped to the owning user."""
from typing import Optional
from uuid import UUID

from sqlalchemy import select, update, func, desc, nulls_last
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload, noload, aliased
from sqlalchemy.orm.attributes import set_committed_value

from brandscope.models import (
    AnalysisSession, Brand, AuthorProfile, AuthorPost,
)
from brandscope.schemas import SessionCreateRequest, BrandInput

AUTHOR_RECENT_POSTS = 10

_summary_loads = (
    selectinload(AnalysisSession.focus_brand),
    selectinload(AnalysisSession.competitors),
    selectinload(AnalysisSession.analysis_result),
)

_detail_loads = (
    selectinload(AnalysisSession.focus_brand).selectinload(Brand.brand_data),
    selectinload(AnalysisSession.competitors).selectinload(Brand.brand_data),
    selectinload(AnalysisSession.analysis_result),
    selectinload(AnalysisSession.comment_analysis),
)


async def list_sessions(db: AsyncSession, user_id: UUID) -> list[AnalysisSession]:
    result = await db.execute(
        select(AnalysisSession)
        .where(AnalysisSession.user_id == user_id)
        .options(*_summary_loads)
        .order_by(desc(AnalysisSession.created_at))
    )
    return list(result.scalars().all())


async def get_session(db: AsyncSession, session_id: UUID, user_id: UUID) -> Optional[AnalysisSession]:
    result = await db.execute(
        select(AnalysisSession)
        .where(AnalysisSession.id == session_id, AnalysisSession.user_id == user_id)
        .options(*_detail_loads)
    )
    return result.scalar_one_or_none()


async def session_exists(db: AsyncSession, session_id: UUID, user_id: Optional[UUID] = None) -> bool:
    query = select(AnalysisSession.id).where(AnalysisSession.id == session_id)
    if user_id is not None:
        query = query.where(AnalysisSession.user_id == user_id)
    result = await db.execute(query)
    return result.scalar_one_or_none() is not None


def _brand_from_input(data: BrandInput) -> Brand:
    return Brand(**data.model_dump(by_alias=False))


async def create_session(db: AsyncSession, user_id: UUID, req: SessionCreateRequest) -> AnalysisSession:
    session = AnalysisSession(
        user_id=user_id,
        title=req.title,
        status="pending",
        universe_keywords=req.universe_keywords,
        notification_read=False,
    )
    session.focus_brand = _brand_from_input(req.focus_brand)
    session.competitors = [_brand_from_input(c) for c in req.competitors]
    db.add(session)
    await db.commit()

    # reload so every relationship the response touches is populated
    result = await db.execute(
        select(AnalysisSession)
        .where(AnalysisSession.id == session.id)
        .options(*_detail_loads)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def mark_notification_read(db: AsyncSession, session_id: UUID, user_id: UUID) -> int:
    result = await db.execute(
        update(AnalysisSession)
        .where(AnalysisSession.id == session_id, AnalysisSession.user_id == user_id)
        .values(notification_read=True)
    )
    await db.commit()
    return result.rowcount


async def delete_session(db: AsyncSession, session_id: UUID, user_id: UUID) -> bool:
    """Delete with all owned children. Absent or foreign sessions are a no-op."""
    result = await db.execute(
        select(AnalysisSession)
        .where(AnalysisSession.id == session_id, AnalysisSession.user_id == user_id)
        .options(
            selectinload(AnalysisSession.focus_brand).selectinload(Brand.brand_data),
            selectinload(AnalysisSession.competitors).selectinload(Brand.brand_data),
            selectinload(AnalysisSession.analysis_result),
            selectinload(AnalysisSession.comment_analysis),
            selectinload(AnalysisSession.author_profiles).selectinload(AuthorProfile.posts),
        )
    )
    session = result.scalar_one_or_none()
    if session is None:
        return False
    await db.delete(session)
    await db.commit()
    return True


async def list_author_profiles(db: AsyncSession, session_id: UUID, limit: Optional[int] = None,
                               recent_posts: int = AUTHOR_RECENT_POSTS) -> list[AuthorProfile]:
    """Authors by collaboration score (unscored last), each with its newest `recent_posts` posts."""
    query = (
        select(AuthorProfile)
        .where(AuthorProfile.session_id == session_id)
        .options(noload(AuthorProfile.posts))
        .order_by(nulls_last(desc(AuthorProfile.collaboration_score)), desc(AuthorProfile.followers))
    )
    if limit:
        query = query.limit(limit)
    authors = list((await db.execute(query)).scalars().all())
    if not authors:
        return authors

    ranked = (
        select(
            AuthorPost,
            func.row_number().over(
                partition_by=AuthorPost.author_id,
                order_by=desc(AuthorPost.published_at),
            ).label("rank"),
        )
        .where(AuthorPost.author_id.in_([a.id for a in authors]))
        .subquery()
    )
    recent = aliased(AuthorPost, ranked)
    result = await db.execute(
        select(recent).where(ranked.c.rank <= recent_posts).order_by(ranked.c.author_id, ranked.c.rank)
    )
    posts_by_author: dict[UUID, list[AuthorPost]] = {}
    for post in result.scalars().all():
        posts_by_author.setdefault(post.author_id, []).append(post)
    for author in authors:
        set_committed_value(author, "posts", posts_by_author.get(author.id, []))
    return authors


async def count_unread_notifications(db: AsyncSession, user_id: UUID) -> int:
    result = await db.execute(
        select(func.count(AnalysisSession.id)).where(
            AnalysisSession.user_id == user_id,
            AnalysisSession.status == "completed",
            AnalysisSession.notification_read.is_(False),
        )
    )
    return result.scalar_one()

