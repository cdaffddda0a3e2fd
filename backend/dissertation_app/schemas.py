# dissertation_app/schemas.py
"""
Request bodies and response shapes.

Every entity leaves the API through one of these models; ORM objects are never
serialized directly. Field names are camelCase on the wire.
"""
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

from .database.models import RequestStatus, UserRole


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


def _naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    # Columns hold naive UTC; aware input is converted, naive input is taken as UTC
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


# ============================================================
# USERS / AUTH
# ============================================================
class UserRegister(CamelModel):
    email: EmailStr
    password: str = Field(min_length=6)
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    role: UserRole


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class UserOut(CamelModel):
    id: int
    email: str
    first_name: str
    last_name: str
    role: UserRole


class UserSummary(CamelModel):
    id: int
    email: str
    first_name: str
    last_name: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserOut


# ============================================================
# REGISTRATION SESSIONS
# ============================================================
class SessionCreate(CamelModel):
    title: str = Field(min_length=1)
    description: Optional[str] = None
    start_date: datetime
    end_date: datetime
    max_students: int = Field(ge=1)

    @field_validator("start_date", "end_date")
    @classmethod
    def normalize_dates(cls, value):
        return _naive_utc(value)


class SessionUpdate(CamelModel):
    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    max_students: Optional[int] = Field(default=None, ge=1)
    is_active: Optional[bool] = None

    @field_validator("start_date", "end_date")
    @classmethod
    def normalize_dates(cls, value):
        return _naive_utc(value)


class SessionBrief(CamelModel):
    id: int
    title: str
    start_date: datetime
    end_date: datetime


class SessionOut(CamelModel):
    id: int
    professor_id: int
    title: str
    description: Optional[str] = None
    start_date: datetime
    end_date: datetime
    max_students: int
    is_active: bool
    created_at: datetime
    updated_at: datetime


class SessionWithCounts(SessionOut):
    approved_count: int
    available_slots: int


class StudentSessionOut(SessionWithCounts):
    professor: UserSummary
    student_request_status: Optional[RequestStatus] = None
    student_request_id: Optional[int] = None


class SessionMutationResponse(CamelModel):
    message: str
    session: SessionOut


# ============================================================
# DISSERTATION REQUESTS
# ============================================================
class RequestCreate(CamelModel):
    session_id: int
    dissertation_title: Optional[str] = None


class RejectBody(CamelModel):
    rejection_reason: Optional[str] = None


class ReuploadBody(CamelModel):
    reason: Optional[str] = None


class RequestOut(CamelModel):
    id: int
    session_id: int
    student_id: int
    professor_id: int
    status: RequestStatus
    rejection_reason: Optional[str] = None
    reupload_reason: Optional[str] = None
    dissertation_title: Optional[str] = None
    preliminary_request_file: Optional[str] = None
    signed_coordination_request_file: Optional[str] = None
    professor_review_file: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class RequestDetail(RequestOut):
    student: Optional[UserSummary] = None
    professor: Optional[UserSummary] = None
    session: Optional[SessionBrief] = None


class RequestMutationResponse(CamelModel):
    message: str
    request: RequestOut


class ApproveResponse(RequestMutationResponse):
    deleted_requests_count: int


class MessageResponse(BaseModel):
    message: str


# ============================================================
# BUILDERS (ORM rows + computed fields)
# ============================================================
def session_with_counts(session, approved_count: int) -> SessionWithCounts:
    return SessionWithCounts(
        **SessionOut.model_validate(session).model_dump(),
        approved_count=approved_count,
        available_slots=max(session.max_students - approved_count, 0),
    )


def student_session_view(session, approved_count: int, own_request) -> StudentSessionOut:
    return StudentSessionOut(
        **session_with_counts(session, approved_count).model_dump(),
        professor=UserSummary.model_validate(session.professor),
        student_request_status=own_request.status if own_request else None,
        student_request_id=own_request.id if own_request else None,
    )
