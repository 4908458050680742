"""Authentication helpers, the request principal and listing scopes.

`get_current_principal` is a FastAPI dependency that validates the bearer
token and returns a `Principal` built from the stored `User`. Routes pass
the principal explicitly into services instead of reading a global
security context.

Role-based listing is expressed as a `ListingScope`: a predicate applied
to a select statement. `listing_scope_for` picks the scope for a
principal from `SCOPES_BY_AUTHORITY`; a new role only needs a new entry.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Tuple

import jwt
from fastapi import HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlmodel import Session

from .config import settings
from .database import engine
from . import repositories

ROLE_ADMIN = "ROLE_ADMIN"
ROLE_USER = "ROLE_USER"

bearer_scheme = HTTPBearer()


@dataclass(frozen=True)
class Principal:
    """The authenticated identity of the current request."""
    user_id: int
    login: str
    authorities: Tuple[str, ...] = (ROLE_USER,)

    def has_authority(self, authority: str) -> bool:
        return authority in self.authorities


def create_token(user_id: int, username: str, authorities: List[str]) -> str:
    expire = datetime.now(timezone.utc) + timedelta(hours=settings.JWT_EXPIRE_HOURS)
    payload = {
        "user_id": user_id,
        "username": username,
        "auth": ",".join(authorities),
        "exp": int(expire.timestamp()),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str):
    """Decode and verify a JWT token.

    Returns the decoded payload on success or raises an HTTPException
    with status 401 on failure.
    """
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail='token expired')
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail='invalid token')


def get_current_principal(credentials: HTTPAuthorizationCredentials = Security(bearer_scheme)) -> Principal:
    """FastAPI dependency that returns the authenticated principal.

    Authorities are read from the database rather than the token so that
    role changes apply to tokens already issued.
    """
    payload = decode_token(credentials.credentials)
    user_id = payload.get('user_id')
    if not user_id:
        raise HTTPException(status_code=401, detail='invalid token payload')
    with Session(engine) as session:
        user = repositories.UserRepository(session).get(user_id)
        if not user:
            raise HTTPException(status_code=401, detail='user not found')
        return Principal(user_id=user.id, login=user.username, authorities=tuple(user.authority_list()))


class ListingScope:
    """Narrows a select over an owned model to what a principal may see."""

    def apply(self, stmt, model):
        raise NotImplementedError


class AllOwners(ListingScope):
    """Every row, regardless of owner."""

    def apply(self, stmt, model):
        return stmt

    def __repr__(self):
        return "AllOwners()"


class OwnedBy(ListingScope):
    """Only rows whose `user_id` is the given user's."""

    def __init__(self, user_id: int):
        self.user_id = user_id

    def apply(self, stmt, model):
        return stmt.where(model.user_id == self.user_id)

    def __repr__(self):
        return f"OwnedBy({self.user_id})"


# checked in order; the first authority the principal holds wins
SCOPES_BY_AUTHORITY: List[Tuple[str, Callable[[Principal], ListingScope]]] = [
    (ROLE_ADMIN, lambda principal: AllOwners()),
]


def listing_scope_for(principal: Principal) -> ListingScope:
    for authority, factory in SCOPES_BY_AUTHORITY:
        if principal.has_authority(authority):
            return factory(principal)
    return OwnedBy(principal.user_id)
