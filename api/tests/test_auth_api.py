"""API tests for signup, login and the current-user endpoint."""


async def test_signup_login_me(client):
    resp = await client.post("/api/auth/signup", json={
        "email": "new@example.com", "password": "password123", "name": "New Analyst",
    })
    assert resp.status_code == 201
    assert resp.json()["token_type"] == "bearer"

    resp = await client.post("/api/auth/login", json={"email": "new@example.com", "password": "password123"})
    assert resp.status_code == 200
    token = resp.json()["access_token"]

    resp = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 200
    assert resp.json()["email"] == "new@example.com"
    assert resp.json()["role"] == "analyst"


async def test_duplicate_signup_and_bad_login(client, user):
    resp = await client.post("/api/auth/signup", json={"email": user.email, "password": "password123"})
    assert resp.status_code == 400

    resp = await client.post("/api/auth/login", json={"email": user.email, "password": "wrong-password"})
    assert resp.status_code == 401


async def test_invalid_bearer_token(client):
    resp = await client.get("/api/auth/me", headers={"Authorization": "Bearer garbage"})
    assert resp.status_code == 401


async def test_health(client):
    resp = await client.get("/health")
    assert resp.json()["status"] == "healthy"
