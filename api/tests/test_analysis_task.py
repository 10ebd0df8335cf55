"""
Tests for the analysis worker job, run against a sync in-memory database.

Tests:
- Completed run persists the result blobs and flags the notification
- Failure marks the session failed and records an error_logs row
- A session already running is skipped
- Statuses outside the known set are rejected by the database
"""
import json
from contextlib import contextmanager

import pytest
from sqlalchemy import create_engine, select
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from brandscope.database import Base
from brandscope.models import User, AnalysisSession, Brand, BrandData, AnalysisResult, ErrorLog
from brandscope.tasks import analysis


@pytest.fixture
def sync_factory():
    engine = create_engine("sqlite://", poolclass=StaticPool, connect_args={"check_same_thread": False})
    Base.metadata.create_all(engine)
    maker = sessionmaker(bind=engine, expire_on_commit=False)

    @contextmanager
    def _factory():
        session = maker()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    yield _factory
    engine.dispose()


def _posts(n, hashtag="#kopi"):
    return [
        {
            "caption": f"Kopi susu pagi promo diskon {hashtag} edisi {i}",
            "likes": 100 + i,
            "comments": 10,
            "media_type": "video" if i % 2 else "image",
            "published_at": f"2024-03-{i + 1:02d}T09:00:00Z",
        }
        for i in range(n)
    ]


def _seed(factory, status="pending"):
    with factory() as db:
        user = User(email="worker@example.com", password_hash="x")
        session = AnalysisSession(user=user, title="Q3 Coffee", status=status)
        session.focus_brand = Brand(name="Kopi Kita", instagram_handle="kopikita", tiktok_handle="kopikita")
        session.competitors = [Brand(name="Brew Co", instagram_handle="brewco")]
        session.focus_brand.brand_data = [
            BrandData(platform="instagram", follower_count=50000, raw_data=json.dumps({"data": _posts(6)})),
        ]
        session.competitors[0].brand_data = [
            BrandData(platform="instagram", raw_data=json.dumps({"data": _posts(4, "#brew")})),
        ]
        db.add(session)
        db.flush()
        return session.id


def test_analyze_session_completes(sync_factory):
    sid = _seed(sync_factory)

    outcome = analysis.analyze_session(sync_factory, str(sid))

    assert outcome["status"] == "completed"
    assert outcome["brands"] == 2
    with sync_factory() as db:
        session = db.get(AnalysisSession, sid)
        assert session.status == "completed"
        assert session.completed_at is not None
        assert session.notification_read is False

        result = db.execute(select(AnalysisResult).where(AnalysisResult.session_id == sid)).scalar_one()
        audience = json.loads(result.audience_comparison)
        assert [a["brand"] for a in audience] == ["Kopi Kita", "Brew Co"]
        focus_platforms = {p["platform"]: p for p in audience[0]["platforms"]}
        assert focus_platforms["instagram"]["followers"] == 50000
        assert focus_platforms["tiktok"]["data_available"] is False

        equity = json.loads(result.brand_equity_data)
        assert equity[1]["total_followers"] > 0  # estimated from engagement
        assert json.loads(result.post_timing_data)["focus_brand"]["brand_name"] == "Kopi Kita"
        assert json.loads(result.hashtag_analysis)[1]["top_hashtags"] == ["#brew"]
        quality = json.loads(result.data_quality_report)
        assert quality[1]["platforms"][0]["followers_source"] == "estimated"
        assert isinstance(json.loads(result.keyword_clustering), list)


def test_rerun_replaces_result(sync_factory):
    sid = _seed(sync_factory)
    analysis.analyze_session(sync_factory, str(sid))
    assert analysis.analyze_session(sync_factory, str(sid))["status"] == "completed"

    with sync_factory() as db:
        rows = db.execute(select(AnalysisResult).where(AnalysisResult.session_id == sid)).scalars().all()
        assert len(rows) == 1


def test_analyze_session_failure_is_recorded(sync_factory, monkeypatch):
    sid = _seed(sync_factory)

    def _explode(*args, **kwargs):
        raise ValueError("bad payload")

    monkeypatch.setattr(analysis, "comparative_analysis", _explode)
    outcome = analysis.analyze_session(sync_factory, str(sid))

    assert outcome["status"] == "failed"
    assert outcome["error"] == "bad payload"
    with sync_factory() as db:
        assert db.get(AnalysisSession, sid).status == "failed"
        assert db.execute(select(AnalysisResult)).first() is None
        log = db.execute(select(ErrorLog)).scalar_one()
        assert log.source == "run_analysis"
        assert log.error_type == "ValueError"
        assert json.loads(log.context_json) == {"session_id": str(sid)}


def test_running_session_is_skipped(sync_factory):
    sid = _seed(sync_factory, status="running")
    outcome = analysis.analyze_session(sync_factory, str(sid))
    assert outcome["status"] == "skipped"

    with sync_factory() as db:
        assert db.get(AnalysisSession, sid).status == "running"


def test_unknown_status_is_rejected(sync_factory):
    from sqlalchemy.exc import IntegrityError

    with pytest.raises(IntegrityError):
        _seed(sync_factory, status="paused")
