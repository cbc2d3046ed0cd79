"""Sign-up, sign-in, sign-out and session resolution."""

from __future__ import annotations

from httpx import AsyncClient

from oceo.auth.jwt import create_session_token, verify_session_token
from oceo.db.models import User


class TestSignUp:
    async def test_sign_up_creates_member_and_session(self, client: AsyncClient) -> None:
        response = await client.post("/api/v1/auth/sign-up", json={
            "name": "New Person",
            "email": "New.Person@Example.com",
            "password": "correct horse battery",
        })
        assert response.status_code == 201
        data = response.json()
        assert data["user"]["email"] == "new.person@example.com"
        assert data["user"]["role"] == "member"
        assert data["user"]["is_active"] is True
        assert "session" in response.cookies

        payload = verify_session_token(data["token"])
        assert payload["user"]["id"] == data["user"]["id"]

    async def test_duplicate_email_rejected(self, client: AsyncClient, member: User) -> None:
        response = await client.post("/api/v1/auth/sign-up", json={
            "email": "MEMBER@example.com",
            "password": "another-password",
        })
        assert response.status_code == 400
        assert response.json()["detail"] == "Email already registered"

    async def test_short_password_rejected(self, client: AsyncClient) -> None:
        response = await client.post("/api/v1/auth/sign-up", json={
            "email": "short@example.com",
            "password": "short",
        })
        assert response.status_code == 400
        assert "at least 8" in response.json()["detail"]

    async def test_blank_password_rejected(self, client: AsyncClient) -> None:
        response = await client.post("/api/v1/auth/sign-up", json={
            "email": "blank@example.com",
            "password": "          ",
        })
        assert response.status_code == 400
        assert response.json()["detail"] == "Password cannot be empty"

    async def test_invalid_email_is_422(self, client: AsyncClient) -> None:
        response = await client.post("/api/v1/auth/sign-up", json={
            "email": "not-an-email",
            "password": "long enough password",
        })
        assert response.status_code == 422


class TestSignIn:
    async def test_valid_credentials(self, client: AsyncClient, member: User) -> None:
        response = await client.post("/api/v1/auth/sign-in", json={
            "email": "member@example.com",
            "password": "Sup3rSecret!",
        })
        assert response.status_code == 200
        assert response.json()["user"]["id"] == member.id
        assert "session" in response.cookies

    async def test_wrong_password(self, client: AsyncClient, member: User) -> None:
        response = await client.post("/api/v1/auth/sign-in", json={
            "email": "member@example.com",
            "password": "wrong-password",
        })
        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid email or password"

    async def test_unknown_email(self, client: AsyncClient) -> None:
        response = await client.post("/api/v1/auth/sign-in", json={
            "email": "ghost@example.com",
            "password": "whatever-password",
        })
        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid email or password"


class TestSession:
    async def test_session_via_bearer(self, client: AsyncClient, member: User, member_headers: dict) -> None:
        response = await client.get("/api/v1/auth/session", headers=member_headers)
        assert response.status_code == 200
        assert response.json()["email"] == "member@example.com"

    async def test_session_via_cookie(self, client: AsyncClient, member: User) -> None:
        await client.post("/api/v1/auth/sign-in", json={
            "email": "member@example.com",
            "password": "Sup3rSecret!",
        })
        response = await client.get("/api/v1/auth/session")
        assert response.status_code == 200
        assert response.json()["id"] == member.id

    async def test_no_credentials(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/auth/session")
        assert response.status_code == 401

    async def test_garbage_token(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/auth/session", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401

    async def test_token_for_missing_user(self, client: AsyncClient) -> None:
        token, _ = create_session_token(9999, "member")
        response = await client.get("/api/v1/auth/session", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401
        assert response.json()["detail"] == "User not found"

    async def test_sign_out_clears_cookie(self, client: AsyncClient, member: User) -> None:
        await client.post("/api/v1/auth/sign-in", json={
            "email": "member@example.com",
            "password": "Sup3rSecret!",
        })
        response = await client.post("/api/v1/auth/sign-out")
        assert response.status_code == 200
        assert response.json() == {"status": "signed_out"}
        assert (await client.get("/api/v1/auth/session")).status_code == 401
