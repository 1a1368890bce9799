from datetime import datetime, timedelta, timezone

import jwt
import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials

from autofix.auth import jwt_handler
from autofix.auth.dependencies import get_current_user, require_admin, require_client
from autofix.core import config
from autofix.routes.auth_routes import me


def bearer(token: str) -> HTTPAuthorizationCredentials:
    return HTTPAuthorizationCredentials(scheme='Bearer', credentials=token)


def test_access_token_round_trips_normalized_subject() -> None:
    token = jwt_handler.create_access_token(' Ana@Example.com ')

    payload = jwt_handler.decode_access_token(token)

    assert payload['sub'] == 'ana@example.com'
    assert payload['type'] == jwt_handler.ACCESS_TOKEN_TYPE
    assert payload['exp'] > payload['iat']


@pytest.mark.parametrize('token_type', [None, 'refresh'])
def test_get_current_user_rejects_tokens_that_are_not_access_tokens(booking_db, client_user, token_type) -> None:
    claims = {
        'sub': client_user.email,
        'exp': datetime.now(timezone.utc) + timedelta(minutes=5),
    }
    if token_type is not None:
        claims['type'] = token_type
    token = jwt.encode(claims, config.JWT_SECRET_KEY, algorithm=config.JWT_ALGORITHM)

    with pytest.raises(HTTPException) as exception_info:
        get_current_user(credentials=bearer(token), db=booking_db)

    assert exception_info.value.status_code == 401
    assert exception_info.value.detail == 'Invalid token'


def test_get_current_user_resolves_token_subject(booking_db, client_user) -> None:
    user = get_current_user(credentials=bearer(jwt_handler.create_access_token(client_user.email)), db=booking_db)

    assert user.id == client_user.id
    assert me(current_user=user) == {
        'id': client_user.id,
        'email': 'ana@example.com',
        'name': 'Ana López',
        'role': 'client',
    }


def test_get_current_user_rejects_invalid_token(booking_db) -> None:
    with pytest.raises(HTTPException) as exception_info:
        get_current_user(credentials=bearer('not-a-token'), db=booking_db)

    assert exception_info.value.status_code == 401
    assert exception_info.value.detail == 'Invalid token'


def test_get_current_user_rejects_unknown_user(booking_db) -> None:
    with pytest.raises(HTTPException) as exception_info:
        get_current_user(credentials=bearer(jwt_handler.create_access_token('ghost@example.com')), db=booking_db)

    assert exception_info.value.status_code == 401
    assert exception_info.value.detail == 'User not found'


def test_role_checks(booking_db, client_user, admin_user) -> None:
    assert require_admin(current_user=admin_user) is admin_user
    assert require_client(current_user=client_user) is client_user

    with pytest.raises(HTTPException) as admin_exception:
        require_admin(current_user=client_user)
    with pytest.raises(HTTPException) as client_exception:
        require_client(current_user=admin_user)

    assert admin_exception.value.status_code == 403
    assert client_exception.value.status_code == 403
