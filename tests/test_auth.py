from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from carebook.models.user import User, UserRoleAssignment

from .utils import PASSWORD, TestingSessionLocal, auth_headers, login

test_user_data = {
    "email": "test@example.com",
    "password": PASSWORD,
    "full_name": "Test User"
}

test_login_data = {
    "email": "test@example.com",
    "password": PASSWORD
}


class TestAuthentication:

    def test_register_user(self, client):
        """Test user registration."""
        response = client.post("/api/v1/auth/register", json=test_user_data)
        assert response.status_code == 200

        data = response.json()
        assert data["email"] == test_user_data["email"]
        assert data["full_name"] == "Test User"
        assert data["roles"] == ["patient"]
        assert "password" not in data
        assert "password_hash" not in data

    def test_register_duplicate_email(self, client):
        """Test registration with duplicate email."""
        client.post("/api/v1/auth/register", json=test_user_data)

        response = client.post("/api/v1/auth/register", json=test_user_data)
        assert response.status_code == 400
        assert "already been registered" in response.json()["error"]

    def test_register_weak_password(self, client):
        """Test registration with a password that misses the policy."""
        invalid_data = test_user_data.copy()
        invalid_data["password"] = "weakpassword"

        response = client.post("/api/v1/auth/register", json=invalid_data)
        assert response.status_code == 400
        assert "password" in response.json()["error"]

    def test_register_ignores_requested_role(self, client):
        """Self sign-up cannot pick a privileged role."""
        data = dict(test_user_data, role="admin")

        response = client.post("/api/v1/auth/register", json=data)
        assert response.status_code == 200
        assert response.json()["roles"] == ["patient"]

    def test_register_role_failure_removes_identity(self, client, monkeypatch):
        """A sign-up whose role row cannot be stored leaves no account behind."""
        original_commit = Session.commit

        def failing_commit(session):
            if any(isinstance(obj, UserRoleAssignment) for obj in session.new):
                raise SQLAlchemyError("role table unavailable")
            return original_commit(session)

        monkeypatch.setattr(Session, "commit", failing_commit)

        response = client.post("/api/v1/auth/register", json=test_user_data)
        assert response.status_code == 500
        assert response.json()["error"] == "Failed to assign role"

        monkeypatch.undo()
        db = TestingSessionLocal()
        try:
            assert db.query(User).filter(User.email == test_user_data["email"]).count() == 0
        finally:
            db.close()

    def test_login_success(self, client):
        """Test successful login."""
        client.post("/api/v1/auth/register", json=test_user_data)

        response = client.post("/api/v1/auth/login", json=test_login_data)
        assert response.status_code == 200

        data = response.json()
        assert "access_token" in data
        assert "refresh_token" in data
        assert data["token_type"] == "bearer"
        assert data["user"]["email"] == test_user_data["email"]

    def test_login_invalid_credentials(self, client):
        """Test login with invalid credentials."""
        response = client.post("/api/v1/auth/login", json={
            "email": "nonexistent@example.com",
            "password": "wrongpassword"
        })
        assert response.status_code == 401
        assert response.json()["error"] == "Invalid email or password"

    def test_login_wrong_password(self, client):
        """Test login with wrong password."""
        client.post("/api/v1/auth/register", json=test_user_data)

        wrong_login = test_login_data.copy()
        wrong_login["password"] = "wrongpassword"

        response = client.post("/api/v1/auth/login", json=wrong_login)
        assert response.status_code == 401

    def test_login_rate_limited(self, client, fake_redis):
        """Repeated logins from one address are throttled."""
        fake_redis.setex("rate_limit:/api/v1/auth/login:testclient", 3600, 10_000)

        response = client.post("/api/v1/auth/login", json=test_login_data)
        assert response.status_code == 429

    def test_get_current_user(self, client):
        """Test getting current user info."""
        client.post("/api/v1/auth/register", json=test_user_data)
        token = login(client, test_user_data["email"])["access_token"]

        response = client.get("/api/v1/auth/me", headers=auth_headers(token))
        assert response.status_code == 200
        assert response.json()["email"] == test_user_data["email"]

    def test_get_current_user_invalid_token(self, client):
        """Test get current user with invalid token."""
        response = client.get("/api/v1/auth/me", headers=auth_headers("invalid_token"))
        assert response.status_code == 401

    def test_get_current_user_without_token(self, client):
        response = client.get("/api/v1/auth/me")
        assert response.status_code == 401
        assert response.json()["error"] == "Unauthorized"

    def test_refresh_token(self, client):
        """Test token refresh."""
        client.post("/api/v1/auth/register", json=test_user_data)
        refresh_token = login(client, test_user_data["email"])["refresh_token"]

        response = client.post(
            "/api/v1/auth/refresh",
            json={"refresh_token": refresh_token}
        )
        assert response.status_code == 200

        data = response.json()
        assert "access_token" in data
        assert "refresh_token" in data

    def test_refresh_invalid_token(self, client):
        """Test refresh with invalid token."""
        response = client.post(
            "/api/v1/auth/refresh",
            json={"refresh_token": "invalid_token"}
        )
        assert response.status_code == 401

    def test_logout_revokes_refresh_token(self, client):
        """Test user logout."""
        client.post("/api/v1/auth/register", json=test_user_data)
        refresh_token = login(client, test_user_data["email"])["refresh_token"]

        response = client.post(
            "/api/v1/auth/logout",
            json={"refresh_token": refresh_token}
        )
        assert response.status_code == 200

        response = client.post(
            "/api/v1/auth/refresh",
            json={"refresh_token": refresh_token}
        )
        assert response.status_code == 401


class TestSession:

    def test_session_without_token(self, client):
        response = client.get("/api/v1/auth/session")
        assert response.status_code == 200
        assert response.json()["phase"] == "unauthenticated"
        assert response.json()["role"] is None

    def test_session_for_patient(self, client, patient):
        response = client.get("/api/v1/auth/session", headers=patient["headers"])
        data = response.json()
        assert data["phase"] == "authenticated_with_role"
        assert data["role"] == "patient"
        assert data["user_id"] == patient["id"]

    def test_session_for_admin(self, client, admin):
        response = client.get("/api/v1/auth/session", headers=admin["headers"])
        assert response.json()["role"] == "admin"
