from __future__ import annotations

from datetime import timedelta
from typing import Dict, List, Tuple

import pytest
from fastapi import HTTPException
from starlette.requests import Request

from portal import auth
from portal.app.accounts import UserAccount, UserRole
from portal.config import load_portal_config, set_config

ACCOUNT = UserAccount(id="u1", email="user@example.com", role=UserRole.MANAGER, first_name="Pat")


@pytest.fixture(autouse=True)
def config():
    set_config(load_portal_config(env={"JWT_SECRET_KEY": "test-secret"}))
    yield
    set_config(None)


def _request(headers: Dict[str, str]) -> Request:
    raw: List[Tuple[bytes, bytes]] = [(key.lower().encode(), value.encode()) for key, value in headers.items()]
    return Request({"type": "http", "method": "GET", "path": "/", "headers": raw, "client": ("10.0.0.5", 4242)})


def _lookup(user_id: str) -> UserAccount:
    if user_id != ACCOUNT.id:
        raise LookupError(user_id)
    return ACCOUNT


def test_token_round_trip_keeps_session_id():
    token = auth.create_access_token(subject="u1", session_id="sess-1")

    payload = auth.decode_access_token(token)

    assert payload["sub"] == "u1"
    assert payload["sid"] == "sess-1"


def test_expired_token_is_rejected():
    token = auth.create_access_token(subject="u1", expires_delta=timedelta(seconds=-5))

    assert auth.decode_access_token(token) is None


def test_token_signed_with_other_key_is_rejected():
    token = auth.create_access_token(subject="u1")
    set_config(load_portal_config(env={"JWT_SECRET_KEY": "rotated"}))

    assert auth.decode_access_token(token) is None


def test_resolve_user_from_bearer_header():
    token = auth.create_access_token(subject="u1", session_id="sess-1")
    request = _request({"Authorization": f"Bearer {token}", "User-Agent": "pytest", "X-Forwarded-For": "1.2.3.4, 10.0.0.1"})

    user = auth.resolve_user(request, lookup=_lookup)

    assert user.id == "u1"
    assert user.session_id == "sess-1"
    assert user.is_staff and not user.is_admin
    assert user.ip_address == "1.2.3.4"
    actor = user.as_actor()
    assert actor.role == "manager"
    assert actor.user_agent == "pytest"


def test_resolve_user_from_session_cookie():
    token = auth.create_access_token(subject="u1")
    request = _request({"Cookie": f"session={token}"})

    user = auth.resolve_user(request, lookup=_lookup)

    assert user is not None
    assert user.ip_address == "10.0.0.5"


def test_resolve_user_for_deleted_account():
    token = auth.create_access_token(subject="ghost")

    assert auth.resolve_user(_request({"Authorization": f"Bearer {token}"}), lookup=_lookup) is None


def test_get_current_user_requires_token():
    with pytest.raises(HTTPException) as exc:
        auth.get_current_user(_request({}))

    assert exc.value.status_code == 401
