from datetime import timedelta

from fastapi.testclient import TestClient

from wordsync.auth.jwt import create_access_token


class TestRegister:
    """Тесты регистрации."""

    def test_register_success(self, client: TestClient):
        """Успешная регистрация сразу выдаёт токен и пользователя."""
        response = client.post(
            "/auth/register",
            json={"username": "newuser", "password": "password123"},
        )
        assert response.status_code == 201
        data = response.json()
        assert "access_token" in data
        assert data["token_type"] == "bearer"
        assert data["user"]["username"] == "newuser"

    def test_register_existing_username(self, client: TestClient):
        """Повторная регистрация с тем же именем возвращает 409."""
        client.post("/auth/register", json={"username": "duplicate", "password": "password123"})

        response = client.post(
            "/auth/register",
            json={"username": "duplicate", "password": "password456"},
        )
        assert response.status_code == 409

    def test_register_short_password(self, client: TestClient):
        """Пароль короче 6 символов - кривой запрос, 400."""
        response = client.post(
            "/auth/register",
            json={"username": "shorty", "password": "pass"},
        )
        assert response.status_code == 400


class TestLogin:
    """Тесты логина."""

    def test_login_success(self, client: TestClient, test_user):
        response = client.post(
            "/auth/login",
            json={"username": "testuser", "password": "password123"},
        )
        assert response.status_code == 200
        data = response.json()
        assert "access_token" in data
        assert data["user"]["id"] == str(test_user.id)

    def test_login_invalid_password(self, client: TestClient, test_user):
        """Неверный пароль возвращает 401."""
        response = client.post(
            "/auth/login",
            json={"username": "testuser", "password": "wrongpassword"},
        )
        assert response.status_code == 401

    def test_login_unknown_user(self, client: TestClient):
        response = client.post(
            "/auth/login",
            json={"username": "ghost", "password": "password123"},
        )
        assert response.status_code == 401


class TestGetCurrentUser:
    """Тесты получения текущего пользователя."""

    def test_get_me_success(self, client: TestClient, auth_headers, test_user):
        response = client.get("/auth/me", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["username"] == test_user.username

    def test_get_me_no_token(self, client: TestClient):
        """Запрос без токена возвращает 401."""
        response = client.get("/auth/me")
        assert response.status_code == 401

    def test_get_me_invalid_token(self, client: TestClient):
        response = client.get(
            "/auth/me",
            headers={"Authorization": "Bearer invalid_token"},
        )
        assert response.status_code == 401

    def test_get_me_expired_token(self, client: TestClient, test_user):
        token = create_access_token(test_user.id, expires_delta=timedelta(seconds=-10))

        response = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    def test_get_me_token_of_deleted_user(self, client: TestClient, auth_headers, test_user, db):
        db.delete(test_user)
        db.commit()

        response = client.get("/auth/me", headers=auth_headers)
        assert response.status_code == 401


class TestSystem:
    def test_health(self, client: TestClient):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_ping(self, client: TestClient):
        response = client.get("/ping")
        assert response.status_code == 200
        assert response.json() == {"status": "ok", "message": "pong"}
