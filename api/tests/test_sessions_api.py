"""
API tests for sessions, notifications and authors.

Tests:
- Create (camelCase and snake_case), read back, list, mark read, delete
- Request validation errors
- Ownership scoping
- Unread notification count
- Author profiles with their latest posts, limited per author in the query
"""
from datetime import datetime, timedelta
from uuid import uuid4

from brandscope.models import AuthorProfile, AuthorPost
from brandscope.services import sessions as session_queries

from conftest import sample_result_columns

CREATE_PAYLOAD = {
    "title": "Q3 Coffee",
    "focusBrand": {"name": "Kopi Kita", "instagramHandle": "kopikita", "website": "https://kopikita.id"},
    "competitors": [{"name": "Brew Co", "tiktokHandle": "brewco"}],
    "universeKeywords": "coffee, kopi",
}


async def test_requires_authentication(client):
    resp = await client.get("/api/sessions")
    assert resp.status_code == 401


async def test_create_session_starts_analysis(client, auth_headers, dispatched):
    resp = await client.post("/api/sessions", json=CREATE_PAYLOAD, headers=auth_headers)
    assert resp.status_code == 201, resp.text

    body = resp.json()
    assert body["status"] == "pending"
    assert body["focus_brand"]["name"] == "Kopi Kita"
    assert body["focus_brand"]["instagram_handle"] == "kopikita"
    assert body["focus_brand"]["brand_data"] == []
    assert [c["name"] for c in body["competitors"]] == ["Brew Co"]
    assert body["competitors"][0]["tiktok_handle"] == "brewco"
    assert body["universe_keywords"] == "coffee, kopi"
    assert dispatched == [body["id"]]


async def test_created_session_reads_back(client, auth_headers):
    resp = await client.post("/api/sessions", json=CREATE_PAYLOAD, headers=auth_headers)
    session_id = resp.json()["id"]

    resp = await client.get(f"/api/sessions/{session_id}", headers=auth_headers)
    assert resp.status_code == 200
    detail = resp.json()
    assert detail["id"] == session_id
    assert detail["title"] == "Q3 Coffee"
    assert detail["status"] == "pending"
    assert detail["focus_brand"]["name"] == "Kopi Kita"
    assert detail["focus_brand"]["website"] == "https://kopikita.id"
    assert [c["name"] for c in detail["competitors"]] == ["Brew Co"]
    assert detail["analysis_result"] is None


async def test_create_session_accepts_snake_case(client, auth_headers):
    resp = await client.post("/api/sessions", json={
        "title": "Snake",
        "focus_brand": {"name": "Kopi Kita", "website": ""},
    }, headers=auth_headers)
    assert resp.status_code == 201, resp.text
    assert resp.json()["focus_brand"]["website"] is None
    assert resp.json()["competitors"] == []


async def test_create_session_survives_dispatch_failure(client, auth_headers, monkeypatch):
    from brandscope.services import analysis_trigger

    def _broken(session_id):
        raise ConnectionError("broker down")

    monkeypatch.setattr(analysis_trigger, "dispatch_analysis", _broken)
    resp = await client.post("/api/sessions", json=CREATE_PAYLOAD, headers=auth_headers)
    assert resp.status_code == 201
    assert resp.json()["status"] == "pending"


async def test_create_session_validation(client, auth_headers, dispatched):
    too_many = dict(CREATE_PAYLOAD, competitors=[{"name": f"C{i}"} for i in range(4)])
    for payload in (
        {"focusBrand": {"name": "Kopi Kita"}},
        dict(CREATE_PAYLOAD, title=""),
        dict(CREATE_PAYLOAD, focusBrand={"name": ""}),
        dict(CREATE_PAYLOAD, focusBrand={"name": "Kopi Kita", "website": "not a url"}),
        too_many,
    ):
        resp = await client.post("/api/sessions", json=payload, headers=auth_headers)
        assert resp.status_code == 400, payload
        assert resp.json()["error"] == "Validation error"
        assert resp.json()["details"]
    assert dispatched == []


async def test_create_session_invalid_json(client, auth_headers):
    resp = await client.post(
        "/api/sessions", content=b"{not json",
        headers={**auth_headers, "Content-Type": "application/json"},
    )
    assert resp.status_code == 400
    assert resp.json() == {"error": "Invalid JSON body"}


async def test_list_and_get_are_owner_scoped(client, user, other_user, auth_headers, other_auth_headers, make_session):
    mine = await make_session(user, result=sample_result_columns())
    await make_session(other_user, title="Not mine")

    resp = await client.get("/api/sessions", headers=auth_headers)
    assert resp.status_code == 200
    assert [s["title"] for s in resp.json()] == ["Q3 Coffee"]
    assert resp.json()[0]["analysis_result"] is not None

    resp = await client.get(f"/api/sessions/{mine.id}", headers=auth_headers)
    assert resp.status_code == 200
    detail = resp.json()
    assert detail["focus_brand"]["brand_data"][0]["follower_count"] == 120000
    assert detail["analysis_result"]["brand_equity_data"].startswith("[")

    resp = await client.get(f"/api/sessions/{mine.id}", headers=other_auth_headers)
    assert resp.status_code == 404


async def test_unknown_session_is_404(client, auth_headers):
    resp = await client.get(f"/api/sessions/{uuid4()}", headers=auth_headers)
    assert resp.status_code == 404


async def test_mark_read_and_unread_count(client, user, auth_headers, make_session):
    done = await make_session(user, status="completed")
    await make_session(user, status="completed", notification_read=True)
    await make_session(user, status="running")

    resp = await client.get("/api/notifications/unread", headers=auth_headers)
    assert resp.json() == {"count": 1}

    resp = await client.patch(f"/api/sessions/{done.id}", headers=auth_headers)
    assert resp.json() == {"success": True}

    resp = await client.get("/api/notifications/unread", headers=auth_headers)
    assert resp.json() == {"count": 0}


async def test_delete_is_idempotent_and_scoped(client, user, auth_headers, other_auth_headers, make_session):
    session = await make_session(user, result=sample_result_columns(),
                                 comments={"total_comments": 3, "positive_count": 2})

    resp = await client.delete(f"/api/sessions/{session.id}", headers=other_auth_headers)
    assert resp.json() == {"success": True}
    assert (await client.get(f"/api/sessions/{session.id}", headers=auth_headers)).status_code == 200

    for _ in range(2):
        resp = await client.delete(f"/api/sessions/{session.id}", headers=auth_headers)
        assert resp.status_code == 200
        assert resp.json() == {"success": True}
    assert (await client.get(f"/api/sessions/{session.id}", headers=auth_headers)).status_code == 404


async def test_authors_ranked_with_latest_posts(client, db, user, other_auth_headers, auth_headers, make_session):
    session = await make_session(user)
    start = datetime(2024, 3, 1)
    top = AuthorProfile(session_id=session.id, platform="instagram", username="kopilover",
                        followers=12000, collaboration_score=88.5, verified=True)
    top.posts = [
        AuthorPost(post_id=f"p{i}", text=f"post {i}", published_at=start + timedelta(days=i), likes=i)
        for i in range(12)
    ]
    unscored = AuthorProfile(session_id=session.id, platform="tiktok", username="newbie", followers=50000)
    low = AuthorProfile(session_id=session.id, platform="twitter", username="barista", followers=300,
                        collaboration_score=12.0)
    db.add_all([top, unscored, low])
    await db.commit()

    resp = await client.get(f"/api/sessions/{session.id}/authors", headers=auth_headers)
    assert resp.status_code == 200
    authors = resp.json()
    assert [a["username"] for a in authors] == ["kopilover", "barista", "newbie"]
    posts = authors[0]["posts"]
    assert len(posts) == 10
    assert posts[0]["post_id"] == "p11"

    resp = await client.get(f"/api/sessions/{session.id}/authors", headers=other_auth_headers)
    assert resp.status_code == 404


async def test_session_charts(client, user, auth_headers, make_session):
    pending = await make_session(user)
    resp = await client.get(f"/api/sessions/{pending.id}/charts", headers=auth_headers)
    assert resp.status_code == 404

    session = await make_session(user, result=sample_result_columns(),
                                 comments={"total_comments": 10, "positive_count": 6,
                                           "neutral_count": 3, "negative_count": 1})
    resp = await client.get(f"/api/sessions/{session.id}/charts", headers=auth_headers)
    assert resp.status_code == 200
    charts = resp.json()
    assert charts["colors"]["Kopi Kita"] == "#3B82F6"
    assert [s["name"] for s in charts["sentiment_pie"]] == ["Positive", "Neutral", "Negative"]
    assert charts["market_position"]["position"] == 1


async def test_recent_posts_limited_per_author(db, user, make_session):
    """Each author keeps only its newest posts, without borrowing from another author's quota"""
    session = await make_session(user)
    start = datetime(2024, 3, 1)
    busy = AuthorProfile(session_id=session.id, platform="instagram", username="busy", followers=900,
                         collaboration_score=70.0)
    busy.posts = [AuthorPost(post_id=f"b{i}", published_at=start + timedelta(hours=i)) for i in range(6)]
    quiet = AuthorProfile(session_id=session.id, platform="instagram", username="quiet", followers=100,
                          collaboration_score=20.0)
    quiet.posts = [AuthorPost(post_id="q0", published_at=start)]
    silent = AuthorProfile(session_id=session.id, platform="tiktok", username="silent", followers=50)
    db.add_all([busy, quiet, silent])
    await db.commit()

    authors = await session_queries.list_author_profiles(db, session.id, recent_posts=3)

    assert [a.username for a in authors] == ["busy", "quiet", "silent"]
    assert [p.post_id for p in authors[0].posts] == ["b5", "b4", "b3"]
    assert [p.post_id for p in authors[1].posts] == ["q0"]
    assert authors[2].posts == []
