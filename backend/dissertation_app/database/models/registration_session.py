# dissertation_app/database/models/registration_session.py
from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Boolean, Text, CheckConstraint
from sqlalchemy.orm import relationship
from datetime import datetime
from ..base import Base, utcnow

class RegistrationSession(Base):
    """A time window during which a professor accepts dissertation requests"""
    __tablename__ = "registration_sessions"
    __table_args__ = (
        CheckConstraint("start_date < end_date", name="ck_registration_sessions_date_range"),
        CheckConstraint("max_students >= 1", name="ck_registration_sessions_max_students"),
    )
    
    id = Column(Integer, primary_key=True, index=True)
    professor_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False)
    max_students = Column(Integer, nullable=False, default=5)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
    
    # Relationships
    professor = relationship("User", back_populates="sessions")
    requests = relationship("DissertationRequest", back_populates="session")

    def is_open(self, now: datetime) -> bool:
        """Accepting requests right now"""
        return bool(self.is_active) and self.start_date <= now <= self.end_date
