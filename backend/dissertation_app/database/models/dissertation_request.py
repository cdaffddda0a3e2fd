# dissertation_app/database/models/dissertation_request.py
from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Enum, Text, Index, text
from sqlalchemy.orm import relationship
from ..base import Base, utcnow, enum_values
import enum

class RequestStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    WAITING_FOR_REUPLOAD = "waiting_for_reupload"

# A request waiting for a corrected file is still an approval: it holds the
# student's single acceptance and one slot of the session.
ACCEPTED_STATUSES = (RequestStatus.APPROVED, RequestStatus.WAITING_FOR_REUPLOAD)

_ACCEPTED_SQL = text("status IN ('approved', 'waiting_for_reupload')")

class DissertationRequest(Base):
    __tablename__ = "dissertation_requests"
    __table_args__ = (
        # At most one accepted request per student, system-wide
        Index(
            "uq_dissertation_requests_one_acceptance",
            "student_id",
            unique=True,
            sqlite_where=_ACCEPTED_SQL,
            postgresql_where=_ACCEPTED_SQL,
        ),
    )
    
    id = Column(Integer, primary_key=True, index=True)
    session_id = Column(Integer, ForeignKey("registration_sessions.id"), nullable=False, index=True)
    student_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    # Copied from the session owner when the request is created
    professor_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    status = Column(
        Enum(RequestStatus, values_callable=enum_values, name="request_status"),
        nullable=False,
        default=RequestStatus.PENDING,
        index=True
    )
    rejection_reason = Column(Text, nullable=True)
    reupload_reason = Column(Text, nullable=True)
    dissertation_title = Column(String, nullable=True)
    preliminary_request_file = Column(String, nullable=True)
    signed_coordination_request_file = Column(String, nullable=True)
    professor_review_file = Column(String, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
    
    # Relationships
    session = relationship("RegistrationSession", back_populates="requests")
    student = relationship("User", back_populates="student_requests", foreign_keys=[student_id])
    professor = relationship("User", back_populates="received_requests", foreign_keys=[professor_id])
