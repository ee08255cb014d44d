import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials
from jose import jwt

from budget_alerts.auth import get_current_user

SECRET = "test-secret"


def bearer(token):
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


@pytest.fixture(autouse=True)
def jwt_settings(monkeypatch):
    monkeypatch.setenv("JWT_SECRET", SECRET)
    monkeypatch.delenv("JWT_AUDIENCE", raising=False)


def test_valid_token_returns_subject():
    token = jwt.encode({"sub": "alice", "aud": "authenticated"}, SECRET, algorithm="HS256")
    assert get_current_user(bearer(token)) == "alice"


def test_wrong_signature_is_401():
    token = jwt.encode({"sub": "alice", "aud": "authenticated"}, "other", algorithm="HS256")
    with pytest.raises(HTTPException) as exc:
        get_current_user(bearer(token))
    assert exc.value.status_code == 401


def test_token_without_subject_is_401():
    token = jwt.encode({"aud": "authenticated"}, SECRET, algorithm="HS256")
    with pytest.raises(HTTPException) as exc:
        get_current_user(bearer(token))
    assert exc.value.status_code == 401


def test_missing_secret_is_500(monkeypatch):
    monkeypatch.delenv("JWT_SECRET")
    with pytest.raises(HTTPException) as exc:
        get_current_user(bearer("anything"))
    assert exc.value.status_code == 500
