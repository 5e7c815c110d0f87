import httpx
import pytest

from wordsync.core.exceptions import AuthenticationError, ConflictError, SyncNetworkError
from wordsync.device.account import AccountSession
from wordsync.device.cursor import InMemoryCursorStore


def session_for(handler, cursor=None) -> AccountSession:
    http = httpx.Client(base_url="http://wordsync.test", transport=httpx.MockTransport(handler))
    return AccountSession(http, cursor or InMemoryCursorStore())


def test_login_stores_token():
    def handler(request):
        return httpx.Response(200, json={
            "access_token": "abc",
            "token_type": "bearer",
            "user": {"id": "1", "username": "anna", "created_at": 1},
        })

    account = session_for(handler)

    user = account.login("anna", "password123")

    assert user["username"] == "anna"
    assert account.is_logged_in
    assert account.token_provider() == "abc"
    assert account.generation == 1


def test_register_conflict():
    account = session_for(lambda request: httpx.Response(409, json={"detail": "Username already exists"}))

    with pytest.raises(ConflictError):
        account.register("anna", "password123")
    assert not account.is_logged_in


def test_wrong_credentials():
    account = session_for(lambda request: httpx.Response(401, json={"detail": "Invalid credentials"}))

    with pytest.raises(AuthenticationError):
        account.login("anna", "nope")


def test_server_unreachable():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    account = session_for(handler)

    with pytest.raises(SyncNetworkError):
        account.login("anna", "password123")
    assert not account.check_connection().success


def test_logout_resets_cursor():
    cursor = InMemoryCursorStore(12345)
    account = session_for(lambda request: httpx.Response(200), cursor=cursor)
    account.token = "abc"

    account.logout()

    assert not account.is_logged_in
    assert cursor.load() == 0
    assert account.generation == 1
