"""Authentication helpers and FastAPI security dependencies.

This module provides utilities to decode JWT tokens and the FastAPI
dependencies that turn a bearer token into an `Identity`. The quiz
engine only ever takes the student id from here, never from a request
body.

Token verification raises HTTPExceptions on failure so the helpers can
be used directly inside route dependencies.
"""

from typing import Optional
from fastapi import Depends, HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
import jwt
from sqlmodel import Session
from .config import settings
from .database import engine
from .services import Identity
from . import repositories

bearer_scheme = HTTPBearer(auto_error=False)


def decode_token(token: str):
    """Decode and verify a JWT token.

    Returns the decoded payload on success or raises an HTTPException
    with status 401 on failure.
    """
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
        return payload
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail='token expired')
    except jwt.PyJWTError:
        raise HTTPException(status_code=401, detail='invalid token')


def get_optional_identity(credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme)) -> Optional[Identity]:
    """Return the caller's `Identity`, or `None` when no token was sent.

    A token that is present but invalid, expired or points to a deleted
    user is rejected with 401 rather than treated as anonymous.
    """
    if credentials is None:
        return None
    payload = decode_token(credentials.credentials)
    user_id = payload.get('user_id')
    if not user_id:
        raise HTTPException(status_code=401, detail='invalid token payload')
    with Session(engine) as session:
        user = repositories.UserRepository(session).get(user_id)
        if not user:
            raise HTTPException(status_code=401, detail='user not found')
        return Identity(id=user.id, role=user.role)


def get_current_identity(identity: Optional[Identity] = Depends(get_optional_identity)) -> Identity:
    """Like `get_optional_identity` but requires a token."""
    if identity is None:
        raise HTTPException(status_code=401, detail='not authenticated', headers={'WWW-Authenticate': 'Bearer'})
    return identity


def require_roles(*roles: str):
    """Build a dependency that admits only callers with one of `roles`."""
    def _guard(identity: Identity = Depends(get_current_identity)) -> Identity:
        if identity.role not in roles:
            raise HTTPException(status_code=403, detail=f"access denied for role {identity.role}")
        return identity
    return _guard
