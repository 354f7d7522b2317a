from datetime import timedelta

import pytest
from fastapi import HTTPException
from jose import jwt

from tripplanner.core.security import create_access_token, decode_access_token
from tripplanner.core.settings import get_settings


def test_token_round_trip():
    assert decode_access_token(create_access_token("user-1")) == "user-1"


def test_expired_token_rejected():
    token = create_access_token("user-1", expires_delta=timedelta(minutes=-1))
    with pytest.raises(HTTPException) as exc_info:
        decode_access_token(token)
    assert exc_info.value.status_code == 401
    assert exc_info.value.headers["WWW-Authenticate"] == "Bearer"


def test_foreign_secret_rejected():
    token = jwt.encode({"sub": "user-1", "type": "access"}, "someone-else", algorithm="HS256")
    with pytest.raises(HTTPException):
        decode_access_token(token)


def test_refresh_style_token_rejected():
    settings = get_settings()
    token = jwt.encode({"sub": "user-1", "type": "refresh"}, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
    with pytest.raises(HTTPException):
        decode_access_token(token)
