# dissertation_app/services/auth_service.py
import logging
from typing import Tuple

from sqlalchemy.orm import Session

from ..database.models import User, UserRole
from ..exceptions import AuthenticationError, ValidationError
from ..security import create_access_token, get_password_hash, verify_password

logger = logging.getLogger(__name__)


class AuthService:
    """Account registration and password login"""

    @staticmethod
    def register(
        db: Session,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        role: UserRole
    ) -> User:
        email = email.lower()
        if db.query(User).filter(User.email == email).first():
            raise ValidationError("Email already registered", field="email")

        user = User(
            email=email,
            password_hash=get_password_hash(password),
            first_name=first_name,
            last_name=last_name,
            role=role,
        )
        db.add(user)
        db.commit()
        db.refresh(user)

        logger.info(f"Registered {role.value} account {user.id}")
        return user

    @staticmethod
    def login(db: Session, email: str, password: str) -> Tuple[User, str]:
        """Returns the user and a fresh access token"""
        user = db.query(User).filter(User.email == email.lower()).first()
        if not user or not verify_password(password, user.password_hash):
            logger.warning("Login failed: invalid credentials")
            raise AuthenticationError("Invalid email or password")

        token = create_access_token({
            "sub": str(user.id),
            "email": user.email,
            "role": user.role.value,
        })
        return user, token
