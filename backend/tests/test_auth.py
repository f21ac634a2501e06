"""
Authentication tests: login, session validation, logout and timeouts.
"""

from datetime import timedelta

import pytest

from cafepos.errors import ConflictError
from cafepos.models import SessionToken
from cafepos.services import auth_service, session_service
from cafepos.services.auth_service import PasswordValidationError, validate_password_strength

from conftest import TEST_PASSWORD, auth_headers, get_auth_token


class TestLogin:

    def test_login_returns_token_and_permissions(self, client, cashier):
        resp = client.post("/api/auth/login", json={"username": "cashier", "password": TEST_PASSWORD})

        assert resp.status_code == 200
        assert len(resp.json["token"]) == 64
        assert resp.json["user"]["username"] == "cashier"
        assert set(resp.json["permissions"]) == {"PLACE_ORDER", "VIEW_CATALOG"}

    def test_wrong_password_is_401(self, client, cashier):
        resp = client.post("/api/auth/login", json={"username": "cashier", "password": "Nope123!"})
        assert resp.status_code == 401

    def test_missing_fields_is_400(self, client, db_session):
        resp = client.post("/api/auth/login", json={"username": "cashier"})
        assert resp.status_code == 400

    def test_inactive_user_cannot_login(self, client, db_session, cashier):
        cashier.is_active = False
        db_session.commit()
        assert get_auth_token(client, "cashier", TEST_PASSWORD) is None

    def test_me_and_logout(self, client, manager):
        token = get_auth_token(client, "manager", TEST_PASSWORD)
        headers = auth_headers(token)

        me = client.get("/api/auth/me", headers=headers)
        assert me.status_code == 200
        assert me.json["user"]["role"] == "manager"

        assert client.post("/api/auth/logout", headers=headers).status_code == 200
        assert client.get("/api/auth/me", headers=headers).status_code == 401


class TestSessions:

    def test_only_hash_is_stored(self, db_session, cashier):
        session, token = session_service.create_session(cashier.id)
        assert session.token_hash == session_service.hash_token(token)
        assert session.token_hash != token

    def test_expired_token_is_rejected(self, db_session, cashier):
        session, token = session_service.create_session(cashier.id)
        session.expires_at = session.created_at - timedelta(seconds=1)
        db_session.commit()
        assert session_service.validate_session(token) is None

    def test_idle_token_is_revoked(self, app, db_session, cashier):
        session, token = session_service.create_session(cashier.id)
        idle = timedelta(hours=app.config["SESSION_IDLE_TIMEOUT_HOURS"], minutes=1)
        session.last_used_at = session.last_used_at - idle
        db_session.commit()

        assert session_service.validate_session(token) is None
        refreshed = db_session.get(SessionToken, session.id)
        assert refreshed.is_revoked is True
        assert refreshed.revoked_reason == "Idle timeout"

    def test_deactivated_user_token_is_rejected(self, db_session, cashier):
        _, token = session_service.create_session(cashier.id)
        cashier.is_active = False
        db_session.commit()
        assert session_service.validate_session(token) is None


class TestUsers:

    @pytest.mark.parametrize("password", ["Short1!", "alllowercase1!", "ALLUPPER1!", "NoDigits!!", "NoSpecial12"])
    def test_weak_passwords(self, password):
        with pytest.raises(PasswordValidationError):
            validate_password_strength(password)

    def test_create_and_authenticate(self, app, db_session):
        user = auth_service.create_user("layla", TEST_PASSWORD, role="manager", bcrypt_rounds=4)
        assert user.role == "manager"
        assert auth_service.authenticate("layla", TEST_PASSWORD).id == user.id
        assert auth_service.authenticate("layla", "Wrong123!") is None
        assert auth_service.find_by_username("layla").last_login_at is not None

    def test_duplicate_username(self, db_session, cashier):
        with pytest.raises(ConflictError):
            auth_service.create_user("cashier", TEST_PASSWORD, bcrypt_rounds=4)

    def test_search_user_ids_is_case_insensitive_substring(self, db_session, cashier, other_cashier):
        assert auth_service.search_user_ids("SAR") == [other_cashier.id]


class TestHealth:

    def test_health_reports_database(self, client, db_session, cashier):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json["status"] == "healthy"
        assert resp.json["checks"]["database"]["details"]["users"] == 1
