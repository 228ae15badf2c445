from datetime import datetime, timedelta

import jwt
import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials

from config.settings import JWT_ALGORITHM, JWT_SECRET
from services.auth_service import can_edit_setup, create_jwt_token, verify_jwt_token


def bearer(token: str) -> HTTPAuthorizationCredentials:
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


def test_token_round_trip():
    token = create_jwt_token({"user_id": "user-1", "store_id": "store-1", "position": "Leader"})
    payload = verify_jwt_token(bearer(token))
    assert payload["store_id"] == "store-1"
    assert payload["position"] == "Leader"


def test_expired_token():
    token = jwt.encode(
        {"user_id": "user-1", "store_id": "store-1", "exp": datetime.utcnow() - timedelta(minutes=1)},
        JWT_SECRET,
        algorithm=JWT_ALGORITHM,
    )
    with pytest.raises(HTTPException) as excinfo:
        verify_jwt_token(bearer(token))
    assert excinfo.value.status_code == 401


def test_garbage_token():
    with pytest.raises(HTTPException) as excinfo:
        verify_jwt_token(bearer("not-a-token"))
    assert excinfo.value.status_code == 401


def test_token_without_store():
    token = jwt.encode({"user_id": "user-1"}, JWT_SECRET, algorithm=JWT_ALGORITHM)
    with pytest.raises(HTTPException) as excinfo:
        verify_jwt_token(bearer(token))
    assert excinfo.value.status_code == 400


def test_can_edit_setup():
    assert can_edit_setup({"user_id": "user-1", "position": "Team Member"}, "user-1")
    assert can_edit_setup({"user_id": "user-2", "position": "Director"}, "user-1")
    assert not can_edit_setup({"user_id": "user-2", "position": "Team Member"}, "user-1")
