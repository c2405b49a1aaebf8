import threading
from unittest.mock import patch

import pytest
from httpx import AsyncClient
from redis.exceptions import ConnectionError as RedisConnectionError

from app.core.exceptions import AuthenticationError, ConflictError, SessionError, ValidationError
from app.core.security import create_password_reset_token, verify_token
from app.core.session import SessionContext, SessionRegistry, session_registry
from app.domain.auth.service import AuthService, password_fingerprint, refresh_session
from app.domain.auth.repository import UserAccountRepository

# Password the make_user fixture sets on every account
TEST_PASSWORD = "Password123"


@pytest.mark.auth
@pytest.mark.integration
@pytest.mark.asyncio
class TestAuthentication:
    """Test authentication endpoints and functionality."""

    async def test_signup_success(self, client: AsyncClient) -> None:
        """Test successful registration starts onboarding at role selection."""
        response = await client.post("/api/v1/auth/signup", json={
            "email": "New.User@Example.com",
            "password": "Password123",
            "full_name": "New User",
        })

        assert response.status_code == 201
        data = response.json()
        assert data["email"] == "new.user@example.com"
        assert data["full_name"] == "New User"
        assert "password" not in data
        assert "password_hash" not in data

        login = await client.post("/api/v1/auth/login", json={
            "email": "new.user@example.com", "password": "Password123"
        })
        headers = {"Authorization": f"Bearer {login.json()['access_token']}"}
        landing = await client.get("/api/v1/auth/landing", headers=headers)
        assert landing.json()["redirect_to"] == "/onboarding/role"
        assert landing.json()["onboarding_completed"] is False

    async def test_signup_duplicate_email(self, client: AsyncClient, patient) -> None:
        """Test registration with an e-mail already in use."""
        response = await client.post("/api/v1/auth/signup", json={
            "email": patient.email.upper(),
            "password": "Password123",
        })

        assert response.status_code == 409
        assert response.json()["error_code"] == "auth/email-in-use"

    async def test_signup_weak_password(self, client: AsyncClient) -> None:
        response = await client.post("/api/v1/auth/signup", json={
            "email": "weak@example.com",
            "password": "onlyletters",
        })

        assert response.status_code == 422

    async def test_login_success(self, client: AsyncClient, patient) -> None:
        """Test successful login opens a session."""
        response = await client.post("/api/v1/auth/login", json={
            "email": patient.email,
            "password": TEST_PASSWORD,
        })

        assert response.status_code == 200
        data = response.json()
        assert data["token_type"] == "bearer"
        assert data["role"] == "patient"
        assert data["user_id"] == str(patient.id)
        payload = verify_token(data["access_token"], "access")
        assert payload["sid"] == data["session_id"]

    async def test_login_invalid_credentials(self, client: AsyncClient, patient) -> None:
        """Test login with a wrong password."""
        response = await client.post("/api/v1/auth/login", json={
            "email": patient.email,
            "password": "wrongpassword1",
        })

        assert response.status_code == 401
        assert response.json()["error_code"] == "auth/invalid-credentials"

    async def test_protected_route_without_token(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/profiles/me")

        assert response.status_code == 401
        assert response.json()["error_code"] == "auth/not-authenticated"

    async def test_logout_ends_session(self, client: AsyncClient, patient_headers) -> None:
        """Test that a token stops working once its session is closed."""
        response = await client.post("/api/v1/auth/logout", headers=patient_headers)
        assert response.status_code == 200

        response = await client.get("/api/v1/profiles/me", headers=patient_headers)
        assert response.status_code == 401
        assert response.json()["error_code"] == "auth/session-expired"

    async def test_refresh_token(self, client: AsyncClient, patient, login) -> None:
        """Test refreshing the access token of an open session."""
        _, tokens = await login(patient)

        response = await client.post("/api/v1/auth/refresh", json={
            "refresh_token": tokens.refresh_token
        })

        assert response.status_code == 200
        data = response.json()
        assert data["session_id"] == tokens.session_id
        assert data["refresh_token"] == tokens.refresh_token

    async def test_refresh_after_logout_fails(self, client: AsyncClient, patient, login) -> None:
        headers, tokens = await login(patient)
        await client.post("/api/v1/auth/logout", headers=headers)

        response = await client.post("/api/v1/auth/refresh", json={
            "refresh_token": tokens.refresh_token
        })

        assert response.status_code == 401
        assert response.json()["error_code"] == "auth/session-expired"

    async def test_session_outlives_worker_restart(self, client: AsyncClient, patient, login) -> None:
        """Test that a session opened before a restart is still honoured."""
        headers, tokens = await login(patient)
        await session_registry.shutdown()

        me = await client.get("/api/v1/profiles/me", headers=headers)
        refreshed = await client.post("/api/v1/auth/refresh", json={
            "refresh_token": tokens.refresh_token
        })

        assert me.status_code == 200
        assert refreshed.status_code == 200

    async def test_session_store_down(self, client: AsyncClient, patient_headers, session_store) -> None:
        with patch.object(session_store, "touch", side_effect=RedisConnectionError("refused")):
            response = await client.get("/api/v1/profiles/me", headers=patient_headers)

        assert response.status_code == 503
        assert response.json()["error_code"] == "network-error"

    async def test_change_password(self, client: AsyncClient, patient, patient_headers) -> None:
        """Test successful password change."""
        response = await client.post("/api/v1/auth/change-password", headers=patient_headers, json={
            "current_password": TEST_PASSWORD,
            "new_password": "Newpassword123",
        })
        assert response.status_code == 200

        login = await client.post("/api/v1/auth/login", json={
            "email": patient.email, "password": "Newpassword123"
        })
        assert login.status_code == 200

    async def test_change_password_wrong_current(self, client: AsyncClient, patient_headers) -> None:
        response = await client.post("/api/v1/auth/change-password", headers=patient_headers, json={
            "current_password": "notmypassword1",
            "new_password": "Newpassword123",
        })

        assert response.status_code == 401


@pytest.mark.auth
@pytest.mark.asyncio
class TestPasswordReset:
    """Test the e-mailed password reset flow."""

    async def test_request_queues_email(self, client: AsyncClient, patient, queued_emails) -> None:
        response = await client.post("/api/v1/auth/password-reset", json={"email": patient.email})

        assert response.status_code == 202
        queued_emails.password_reset.assert_called_once()
        email, link = queued_emails.password_reset.call_args.args
        assert email == patient.email
        assert "/reset-password?token=" in link

    async def test_unknown_email_gets_same_answer(self, client: AsyncClient, queued_emails) -> None:
        response = await client.post("/api/v1/auth/password-reset", json={"email": "nobody@example.com"})

        assert response.status_code == 202
        queued_emails.password_reset.assert_not_called()

    async def test_reset_sets_password_and_closes_sessions(
        self, client: AsyncClient, patient, login, queued_emails
    ) -> None:
        headers, _ = await login(patient)
        await client.post("/api/v1/auth/password-reset", json={"email": patient.email})
        link = queued_emails.password_reset.call_args.args[1]
        token = link.split("token=", 1)[1]

        response = await client.post("/api/v1/auth/password-reset/confirm", json={
            "token": token, "new_password": "Brandnew123"
        })
        assert response.status_code == 200

        # Existing sessions are gone
        me = await client.get("/api/v1/profiles/me", headers=headers)
        assert me.status_code == 401

        # The link works only once
        again = await client.post("/api/v1/auth/password-reset/confirm", json={
            "token": token, "new_password": "Another123"
        })
        assert again.status_code == 422
        assert again.json()["error_code"] == "auth/invalid-reset-token"

    async def test_access_token_is_not_a_reset_token(self, client: AsyncClient, patient, login) -> None:
        _, tokens = await login(patient)

        response = await client.post("/api/v1/auth/password-reset/confirm", json={
            "token": tokens.access_token, "new_password": "Brandnew123"
        })

        assert response.status_code == 422


@pytest.mark.auth
@pytest.mark.unit
@pytest.mark.asyncio
class TestAuthService:
    """Test the authentication service directly."""

    async def test_sign_in_registers_session(self, db_session, patient, registry) -> None:
        tokens = await AuthService(db_session, registry).sign_in(patient.email, TEST_PASSWORD)

        context = registry.get(tokens.session_id)
        assert context is not None
        assert context.is_active
        assert context.is_running
        assert context.user_id == patient.id

    async def test_sign_in_inactive_account(self, db_session, patient, registry) -> None:
        account = UserAccountRepository(db_session).get_by_id(patient.id)
        account.is_active = False
        db_session.commit()

        with pytest.raises(AuthenticationError):
            await AuthService(db_session, registry).sign_in(patient.email, TEST_PASSWORD)
        assert len(registry) == 0

    async def test_sign_out_stops_timers(self, db_session, patient, registry) -> None:
        service = AuthService(db_session, registry)
        tokens = await service.sign_in(patient.email, TEST_PASSWORD)
        context = registry.get(tokens.session_id)

        await service.sign_out(tokens.session_id)

        assert not context.is_active
        assert not context.is_running
        assert tokens.session_id not in registry

    async def test_refresh_unknown_session(self, db_session, registry) -> None:
        with pytest.raises(SessionError):
            await AuthService(db_session, registry).refresh("not-a-token")

    def test_sign_up_duplicate(self, db_session, patient) -> None:
        with pytest.raises(ConflictError):
            AuthService(db_session).sign_up(patient.email, "Password123")

    async def test_reset_token_voided_by_password_change(self, db_session, patient, registry) -> None:
        account = UserAccountRepository(db_session).get_by_id(patient.id)
        token = create_password_reset_token(str(patient.id), {"pwf": password_fingerprint(account)})
        service = AuthService(db_session, registry)
        service.change_password(patient.id, TEST_PASSWORD, "Changed123")

        with pytest.raises(ValidationError):
            await service.reset_password(token, "Brandnew123")

    async def test_uses_the_registry_it_was_given(self, db_session, registry) -> None:
        assert len(registry) == 0
        assert AuthService(db_session, registry).registry is registry

    async def test_sessions_are_shared_between_workers(self, db_session, patient, registry) -> None:
        tokens = await AuthService(db_session, registry).sign_in(patient.email, TEST_PASSWORD)
        other_worker = SessionRegistry(store=registry.store)

        assert await other_worker.touch(tokens.session_id) is not None
        refreshed = await AuthService(db_session, other_worker).refresh(tokens.refresh_token)
        assert refreshed.session_id == tokens.session_id

        revoked = await other_worker.close_user(patient.id, reason="password_reset")

        assert revoked == 1
        assert await registry.touch(tokens.session_id) is None
        assert tokens.session_id not in registry

    async def test_periodic_refresh_checks_account(self, db_session, patient) -> None:
        context = SessionContext(user_id=patient.id, role=None, refresh_callback=refresh_session)

        assert await refresh_session(context) == "patient"

        account = UserAccountRepository(db_session).get_by_id(patient.id)
        account.is_active = False
        db_session.commit()

        with pytest.raises(SessionError):
            await refresh_session(context)

    async def test_password_check_runs_off_the_event_loop(self, db_session, patient, registry) -> None:
        service = AuthService(db_session, registry)
        check_credentials = service.check_credentials
        threads = []

        def tracking(*args):
            threads.append(threading.get_ident())
            return check_credentials(*args)

        with patch.object(service, "check_credentials", side_effect=tracking):
            await service.sign_in(patient.email, TEST_PASSWORD)

        assert len(threads) == 1
        assert threads[0] != threading.get_ident()
