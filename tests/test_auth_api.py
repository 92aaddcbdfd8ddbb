import time

from jose import jwt

from conftest import register


class TestRegisterLogin:
    def test_register_returns_token_and_user(self, client):
        res = client.post(
            "/api/auth/register",
            json={"name": " Ada ", "email": " Ada@Example.com ", "password": "secret123"},
        )
        assert res.status_code == 201
        body = res.json()
        assert body["token"]
        user = body["user"]
        assert user["name"] == "Ada"
        assert user["email"] == "ada@example.com"
        assert "password" not in user and "passwordHash" not in user
        assert "createdAt" in user

    def test_duplicate_email_rejected(self, client):
        register(client, "Ada", email="ada@example.com")
        res = client.post(
            "/api/auth/register",
            json={"name": "Other", "email": "ADA@example.com", "password": "secret123"},
        )
        assert res.status_code == 400
        assert res.json()["message"] == "User already exists"

    def test_register_validation(self, client):
        res = client.post("/api/auth/register", json={"name": "Ada", "email": "not-an-email", "password": "secret123"})
        assert res.status_code == 400
        res = client.post("/api/auth/register", json={"name": "Ada", "email": "ada@example.com", "password": "123"})
        assert res.status_code == 400
        assert res.json()["message"] == "Request validation failed"

    def test_login_round_trip(self, client):
        _, user = register(client, "Ada", email="ada@example.com", password="secret123")
        res = client.post("/api/auth/login", json={"email": "ADA@example.com", "password": "secret123"})
        assert res.status_code == 200
        body = res.json()
        assert body["user"]["id"] == user["id"]

        me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {body['token']}"})
        assert me.status_code == 200
        assert me.json()["email"] == "ada@example.com"

    def test_login_wrong_password(self, client):
        register(client, "Ada", email="ada@example.com", password="secret123")
        res = client.post("/api/auth/login", json={"email": "ada@example.com", "password": "wrong-pass"})
        assert res.status_code == 401
        assert res.json()["message"] == "Invalid email or password"

    def test_login_unknown_email(self, client):
        res = client.post("/api/auth/login", json={"email": "ghost@example.com", "password": "secret123"})
        assert res.status_code == 401
        assert res.json()["message"] == "Invalid email or password"


class TestTokens:
    def test_missing_token(self, client):
        res = client.get("/api/auth/me")
        assert res.status_code == 401
        assert res.json()["message"] == "Not authorized, no token"
        assert res.headers["WWW-Authenticate"] == "Bearer"

    def test_garbage_token(self, client):
        res = client.get("/api/auth/me", headers={"Authorization": "Bearer not.a.jwt"})
        assert res.status_code == 401
        assert res.json()["message"] == "Not authorized, token failed"

    def test_token_signed_with_other_secret(self, client, alice):
        _, user = alice
        forged = jwt.encode({"sub": user["id"], "exp": int(time.time()) + 60}, "other-secret", algorithm="HS256")
        res = client.get("/api/auth/me", headers={"Authorization": f"Bearer {forged}"})
        assert res.status_code == 401

    def test_expired_token(self, client, alice):
        _, user = alice
        expired = jwt.encode({"sub": user["id"], "exp": int(time.time()) - 10}, "test-secret", algorithm="HS256")
        res = client.get("/api/tasks", headers={"Authorization": f"Bearer {expired}"})
        assert res.status_code == 401
        assert res.json()["message"] == "Not authorized, token failed"

    def test_token_for_unknown_user(self, client):
        token = jwt.encode({"sub": "missing", "exp": int(time.time()) + 60}, "test-secret", algorithm="HS256")
        res = client.get("/api/tasks", headers={"Authorization": f"Bearer {token}"})
        assert res.status_code == 401
