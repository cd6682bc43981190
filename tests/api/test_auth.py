"""Authentication endpoint tests."""

import pytest
from httpx import AsyncClient

from notehub.models import User
from notehub.services.users import CredentialStore
from tests.conftest import PASSWORD, AuthenticatedClient, RecordingNotifier, link_params

REGISTRATION = {
    "name": "Demo",
    "email": "demo@example.com",
    "password": "Passw0rd",
    "confirmPassword": "Passw0rd",
}


class TestRegister:
    @pytest.mark.asyncio
    async def test_register(self, client: AsyncClient, session, notifier: RecordingNotifier):
        response = await client.post("/api/auth/register", json=REGISTRATION)

        assert response.status_code == 201
        data = response.json()
        assert data["message"].startswith("User created successfully")
        assert data["emailSent"] is True
        user = await CredentialStore(session).get_by_email("demo@example.com")
        assert data["userId"] == user.id
        assert notifier.last[0] == "demo@example.com"

    @pytest.mark.asyncio
    async def test_register_accepts_snake_case(self, client: AsyncClient):
        body = {**REGISTRATION, "confirm_password": "Passw0rd"}
        del body["confirmPassword"]

        response = await client.post("/api/auth/register", json=body)

        assert response.status_code == 201

    @pytest.mark.asyncio
    async def test_register_validation_error(self, client: AsyncClient, notifier: RecordingNotifier):
        response = await client.post(
            "/api/auth/register", json={**REGISTRATION, "confirmPassword": "Different1"}
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Passwords don't match", "field": "confirm_password"}
        assert notifier.sent == []

    @pytest.mark.asyncio
    async def test_register_duplicate(self, client: AsyncClient, user: User):
        response = await client.post(
            "/api/auth/register", json={**REGISTRATION, "email": user.email}
        )

        assert response.status_code == 400
        assert response.json() == {"error": "User with this email already exists"}

    @pytest.mark.asyncio
    async def test_register_email_not_sent(self, client: AsyncClient, notifier: RecordingNotifier):
        notifier.result = False

        response = await client.post("/api/auth/register", json=REGISTRATION)

        assert response.status_code == 201
        assert response.json()["emailSent"] is False

    @pytest.mark.asyncio
    async def test_malformed_body(self, client: AsyncClient):
        response = await client.post(
            "/api/auth/register",
            content="not json",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid input data"}


class TestVerifyEmail:
    @pytest.mark.asyncio
    async def test_verify_with_query(self, client: AsyncClient, notifier: RecordingNotifier):
        await client.post("/api/auth/register", json=REGISTRATION)
        params = link_params(notifier.last[1])

        response = await client.get("/api/auth/verify-email", params=params)
        assert response.status_code == 200
        assert response.json() == {"message": "Email verified successfully"}

        replay = await client.get("/api/auth/verify-email", params=params)
        assert replay.status_code == 400
        assert replay.json() == {"error": "Invalid or expired token"}

    @pytest.mark.asyncio
    async def test_verify_with_body(self, client: AsyncClient, notifier: RecordingNotifier):
        await client.post("/api/auth/register", json=REGISTRATION)
        params = link_params(notifier.last[1])

        response = await client.post("/api/auth/verify-email", json=params)

        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_verify_wrong_email(self, client: AsyncClient, notifier: RecordingNotifier):
        await client.post("/api/auth/register", json=REGISTRATION)
        params = link_params(notifier.last[1])

        response = await client.post(
            "/api/auth/verify-email", json={**params, "email": "someone@example.com"}
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid or expired token"}


class TestPasswordReset:
    @pytest.mark.asyncio
    async def test_response_does_not_reveal_account(self, client: AsyncClient, user: User):
        known = await client.post("/api/auth/forgot-password", json={"email": user.email})
        unknown = await client.post(
            "/api/auth/forgot-password", json={"email": "nobody@example.com"}
        )

        assert known.status_code == unknown.status_code == 200
        assert known.content == unknown.content

    @pytest.mark.asyncio
    async def test_invalid_email(self, client: AsyncClient):
        response = await client.post("/api/auth/forgot-password", json={"email": "nope"})

        assert response.status_code == 400
        assert response.json()["field"] == "email"

    @pytest.mark.asyncio
    async def test_reset_then_login(
        self, client: AsyncClient, user: User, notifier: RecordingNotifier
    ):
        await client.post("/api/auth/forgot-password", json={"email": user.email})
        token = link_params(notifier.last[1])["token"]

        response = await client.post(
            "/api/auth/reset-password",
            json={"token": token, "password": "NewPassw0rd", "confirmPassword": "NewPassw0rd"},
        )
        assert response.status_code == 200
        assert response.json() == {"message": "Password reset successfully"}

        old = await client.post(
            "/api/auth/login", json={"email": user.email, "password": PASSWORD}
        )
        new = await client.post(
            "/api/auth/login", json={"email": user.email, "password": "NewPassw0rd"}
        )
        assert old.status_code == 401
        assert new.status_code == 200

    @pytest.mark.asyncio
    async def test_reset_invalid_token(self, client: AsyncClient):
        response = await client.post(
            "/api/auth/reset-password",
            json={"token": "bogus", "password": "NewPassw0rd", "confirmPassword": "NewPassw0rd"},
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid or expired token"}


class TestLogin:
    @pytest.mark.asyncio
    async def test_login(self, client: AsyncClient, user: User):
        response = await client.post(
            "/api/auth/login", json={"email": user.email, "password": PASSWORD}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["token_type"] == "bearer"
        assert data["access_token"]
        assert data["user"]["email"] == user.email
        assert data["user"]["email_verified"] is True

    @pytest.mark.asyncio
    async def test_login_failures_are_identical(self, client: AsyncClient, user: User):
        wrong = await client.post(
            "/api/auth/login", json={"email": user.email, "password": "WrongPassw0rd"}
        )
        unknown = await client.post(
            "/api/auth/login", json={"email": "nobody@example.com", "password": PASSWORD}
        )

        assert wrong.status_code == unknown.status_code == 401
        assert wrong.json() == unknown.json() == {"error": "Invalid credentials"}


class TestMagicLink:
    @pytest.mark.asyncio
    async def test_magic_link_sign_in(self, client: AsyncClient, notifier: RecordingNotifier):
        response = await client.post("/api/auth/magic-link", json={"email": "new@example.com"})
        assert response.status_code == 200
        params = link_params(notifier.last[1])

        response = await client.post("/api/auth/magic-link/verify", json=params)

        assert response.status_code == 200
        data = response.json()
        assert data["user"]["email"] == "new@example.com"
        assert data["user"]["email_verified"] is True

        me = await client.get(
            "/api/auth/me", headers={"Authorization": f"Bearer {data['access_token']}"}
        )
        assert me.json()["email"] == "new@example.com"

    @pytest.mark.asyncio
    async def test_magic_link_replay(self, client: AsyncClient, notifier: RecordingNotifier):
        await client.post("/api/auth/magic-link", json={"email": "new@example.com"})
        params = link_params(notifier.last[1])
        await client.post("/api/auth/magic-link/verify", json=params)

        replay = await client.post("/api/auth/magic-link/verify", json=params)

        assert replay.status_code == 400


class TestSession:
    @pytest.mark.asyncio
    async def test_get_current_user(self, authenticated_client: AuthenticatedClient, user: User):
        """Test getting current user info."""
        response = await authenticated_client.get("/api/auth/me")
        assert response.status_code == 200
        data = response.json()
        assert data["email"] == user.email
        assert data["is_admin"] is False
        assert "password_hash" not in data

    @pytest.mark.asyncio
    async def test_get_current_user_unauthenticated(self, client: AsyncClient):
        """Test getting current user without authentication."""
        response = await client.get("/api/auth/me")
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_logout(self, authenticated_client: AuthenticatedClient):
        """Test logout endpoint."""
        response = await authenticated_client.post("/api/auth/logout")
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_refresh_token(self, authenticated_client: AuthenticatedClient, user: User):
        """Test refreshing an access token."""
        response = await authenticated_client.post("/api/auth/refresh")
        assert response.status_code == 200
        data = response.json()
        assert "access_token" in data
        assert data["token_type"] == "bearer"
        assert data["user"]["email"] == user.email

    @pytest.mark.asyncio
    async def test_refresh_token_unauthenticated(self, client: AsyncClient):
        """Test refresh without authentication fails."""
        response = await client.post("/api/auth/refresh")
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_refresh_token_invalid(self, client: AsyncClient):
        """Test refresh with invalid token fails."""
        response = await client.post(
            "/api/auth/refresh",
            headers={"Authorization": "Bearer invalid-token"},
        )
        assert response.status_code == 401
