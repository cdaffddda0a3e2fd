"""
Test configuration and fixtures
"""
import os
import tempfile
from datetime import timedelta
from typing import Generator

import pytest
from faker import Faker
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

# Set testing environment before the app reads its settings
os.environ['DATABASE_URL'] = 'sqlite://'
os.environ['SECRET_KEY'] = 'test-secret-key-for-testing-only'
os.environ['BCRYPT_ROUNDS'] = '4'
os.environ['LOG_LEVEL'] = 'WARNING'
os.environ['UPLOAD_DIR'] = tempfile.mkdtemp(prefix='dissertation-uploads-')

from dissertation_app.main import app
from dissertation_app.config import settings
from dissertation_app.database.base import Base, utcnow
from dissertation_app.database.session import get_db, set_sqlite_pragma
from dissertation_app.database.models import (
    DissertationRequest,
    RegistrationSession,
    RequestStatus,
    User,
    UserRole,
)
from dissertation_app.security import create_access_token, get_password_hash

fake = Faker()

PDF_BYTES = b"%PDF-1.4\n1 0 obj\n<< /Type /Catalog >>\nendobj\ntrailer\n<< /Root 1 0 R >>\n%%EOF\n"

# One in-memory database shared by the test thread and the app's worker threads
test_engine = create_engine(
    'sqlite://',
    connect_args={'check_same_thread': False},
    poolclass=StaticPool,
)
event.listen(test_engine, 'connect', set_sqlite_pragma)
TestSessionLocal = sessionmaker(bind=test_engine, autocommit=False, autoflush=False)


@pytest.fixture
def db_session() -> Generator[Session, None, None]:
    """Fresh schema for each test"""
    Base.metadata.create_all(bind=test_engine)
    session = TestSessionLocal()
    yield session
    session.close()
    Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """Test client with database override"""
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db_session: Session):
    def _make_user(role: UserRole = UserRole.STUDENT, password: str = 'testpassword123') -> User:
        user = User(
            email=fake.unique.email(),
            password_hash=get_password_hash(password),
            first_name=fake.first_name(),
            last_name=fake.last_name(),
            role=role,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user
    return _make_user


@pytest.fixture
def professor(make_user) -> User:
    return make_user(UserRole.PROFESSOR)


@pytest.fixture
def other_professor(make_user) -> User:
    return make_user(UserRole.PROFESSOR)


@pytest.fixture
def student(make_user) -> User:
    return make_user(UserRole.STUDENT)


@pytest.fixture
def other_student(make_user) -> User:
    return make_user(UserRole.STUDENT)


def auth_headers(user: User) -> dict:
    """Bearer header for a user"""
    token = create_access_token({
        'sub': str(user.id),
        'email': user.email,
        'role': user.role.value,
    })
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def make_session(db_session: Session):
    """Registration session open from yesterday until next week unless told otherwise"""
    def _make_session(
        owner: User,
        max_students: int = 2,
        starts_in: timedelta = timedelta(days=-1),
        lasts: timedelta = timedelta(days=8),
        is_active: bool = True,
        title: str = None,
    ) -> RegistrationSession:
        start = utcnow() + starts_in
        session = RegistrationSession(
            professor_id=owner.id,
            title=title or fake.sentence(nb_words=4),
            description=fake.sentence(),
            start_date=start,
            end_date=start + lasts,
            max_students=max_students,
            is_active=is_active,
        )
        db_session.add(session)
        db_session.commit()
        db_session.refresh(session)
        return session
    return _make_session


@pytest.fixture
def make_request(db_session: Session):
    """Insert a request directly, in any state"""
    def _make_request(
        session: RegistrationSession,
        student: User,
        status: RequestStatus = RequestStatus.PENDING,
        **fields
    ) -> DissertationRequest:
        request = DissertationRequest(
            session_id=session.id,
            student_id=student.id,
            professor_id=session.professor_id,
            status=status,
            dissertation_title=fields.pop('dissertation_title', fake.sentence(nb_words=6)),
            **fields
        )
        db_session.add(request)
        db_session.commit()
        db_session.refresh(request)
        return request
    return _make_request


@pytest.fixture
def workflow_settings(monkeypatch):
    """Flip workflow toggles for a single test"""
    def _set(**toggles):
        for name, value in toggles.items():
            monkeypatch.setattr(settings, name, value)
    return _set


@pytest.fixture
def headers_for():
    return auth_headers
