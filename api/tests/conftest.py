"""
Shared fixtures: in-memory SQLite in place of Postgres, an HTTP client bound
to the app, two users with bearer tokens and a recorder in place of the
Celery dispatch.
"""
import json
import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["DATABASE_URL_SYNC"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["INTERNAL_API_TOKEN"] = "internal-test-token"
os.environ["PDF_SETTLE_SECONDS"] = "0"

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from brandscope.database import Base, get_db
from brandscope.dependencies import hash_password, create_access_token
from brandscope.main import app
from brandscope.models import (
    User, AnalysisSession, Brand, BrandData, AnalysisResult, CommentAnalysis,
)
from brandscope.services import analysis_trigger

INTERNAL_TOKEN = "internal-test-token"


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory):
    async def _get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def dispatched(monkeypatch):
    """Session ids handed to the analysis worker during the test."""
    calls = []

    def _record(session_id):
        calls.append(str(session_id))
        return f"task-{len(calls)}"

    monkeypatch.setattr(analysis_trigger, "dispatch_analysis", _record)
    return calls


async def _create_user(db, email: str) -> User:
    user = User(email=email, password_hash=hash_password("password123"), name=email.split("@")[0])
    db.add(user)
    await db.commit()
    return user


@pytest.fixture
async def user(db):
    return await _create_user(db, "analyst@example.com")


@pytest.fixture
async def other_user(db):
    return await _create_user(db, "someone@example.com")


def _auth(u: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(str(u.id), u.role)}"}


@pytest.fixture
def auth_headers(user):
    return _auth(user)


@pytest.fixture
def other_auth_headers(other_user):
    return _auth(other_user)


# ─── Seed data ───

def sample_result_columns() -> dict:
    return {
        "audience_comparison": json.dumps([
            {"brand": "Kopi Kita", "platforms": [
                {"platform": "instagram", "followers": 120000},
                {"platform": "tiktok", "followers": 45000},
            ]},
            {"brand": "Brew Co", "platforms": [{"platform": "instagram", "followers": 80000}]},
        ]),
        "post_channel_data": json.dumps([
            {"brand": "Kopi Kita", "channels": [
                {"platform": "instagram", "total_posts": 30, "avg_post_per_day": 1.0},
                {"platform": "tiktok", "total_posts": 12, "avg_post_per_day": 0.4},
            ]},
            {"brand": "Brew Co", "channels": [{"platform": "instagram", "total_posts": 20, "avg_post_per_day": 0.67}]},
        ]),
        "hashtag_analysis": json.dumps([
            {"brand": "Kopi Kita", "top_hashtags": ["#kopi", "#coffee", "#pagi"]},
            {"brand": "Brew Co", "top_hashtags": ["#coffee", "#brew"]},
        ]),
        "post_type_engagement": json.dumps([
            {"brand": "Kopi Kita", "post_types": [
                {"type": "Image", "count": 20, "avg_engagement": 540.5, "platforms": "instagram"},
                {"type": "Video", "count": 10, "avg_engagement": 910.0, "platforms": "instagram, tiktok"},
            ]},
        ]),
        "post_timing_data": json.dumps({
            "focus_brand": {"brand_name": "Kopi Kita", "platforms": {
                "instagram": {
                    "post_times": [{"hour": 9, "count": 5}, {"hour": 19, "count": 8}],
                    "post_days": [{"day": "Mon", "count": 4}, {"day": "Sat", "count": 9}],
                },
            }},
            "competitors": [{"brand_name": "Brew Co", "platforms": {
                "instagram": {"post_times": [{"hour": 12, "count": 3}], "post_days": []},
            }}],
        }),
        "brand_equity_data": json.dumps([
            {"brand": "Kopi Kita", "total_followers": 165000, "avg_engagement": 3.2,
             "content_velocity": 1.4, "equity_score": 52.1},
            {"brand": "Brew Co", "total_followers": 80000, "avg_engagement": 2.1,
             "content_velocity": 0.67, "equity_score": 31.5},
        ]),
        "keyword_clustering": json.dumps([]),
        "additional_metrics": json.dumps({"total_brands_analyzed": 2, "data_range": "30 days"}),
        "ai_insights": json.dumps({
            "summary": "Kopi Kita leads on reach.",
            "recommendations": ["Post more video", "Lean into #kopi"],
        }),
    }


@pytest.fixture
def make_session(db):
    """Create a session for `owner` with a focus brand and one competitor."""
    async def _make(owner: User, *, title: str = "Q3 Coffee", status: str = "pending",
                    result: dict = None, comments: dict = None, notification_read: bool = False):
        session = AnalysisSession(
            user_id=owner.id, title=title, status=status,
            universe_keywords="coffee, kopi", notification_read=notification_read,
        )
        session.focus_brand = Brand(name="Kopi Kita", instagram_handle="kopikita", tiktok_handle="kopikita")
        session.competitors = [Brand(name="Brew Co", instagram_handle="brewco")]
        session.focus_brand.brand_data = [
            BrandData(platform="instagram", follower_count=120000, post_count=30, raw_data='{"data": []}'),
        ]
        if result is not None:
            session.analysis_result = AnalysisResult(**result)
        if comments is not None:
            session.comment_analysis = CommentAnalysis(**comments)
        db.add(session)
        await db.commit()
        return session

    return _make
