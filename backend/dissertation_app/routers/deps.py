"""
Authentication and role gating for the routers.

A bearer token is resolved once into a principal. Students and professors get
different principal types, so a route that depends on `require_professor`
cannot be reached with a student's identity and vice versa.
"""
from dataclasses import dataclass
from typing import Optional, Union

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from ..database.models import User, UserRole
from ..database.session import get_db
from ..exceptions import AuthenticationError, AuthorizationError, InvalidTokenError
from ..security import decode_token

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class StudentPrincipal:
    user_id: int
    email: str


@dataclass(frozen=True)
class ProfessorPrincipal:
    user_id: int
    email: str


Principal = Union[StudentPrincipal, ProfessorPrincipal]


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db)
) -> User:
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("No token provided")

    payload = decode_token(credentials.credentials)

    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise InvalidTokenError()

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise InvalidTokenError()

    return user


def get_principal(user: User = Depends(get_current_user)) -> Principal:
    # Role comes from the stored user, not from the token claims
    if user.role == UserRole.PROFESSOR:
        return ProfessorPrincipal(user_id=user.id, email=user.email)
    return StudentPrincipal(user_id=user.id, email=user.email)


def require_student(principal: Principal = Depends(get_principal)) -> StudentPrincipal:
    if not isinstance(principal, StudentPrincipal):
        raise AuthorizationError("Access denied. Student role required.")
    return principal


def require_professor(principal: Principal = Depends(get_principal)) -> ProfessorPrincipal:
    if not isinstance(principal, ProfessorPrincipal):
        raise AuthorizationError("Access denied. Professor role required.")
    return principal
