# dissertation_app/database/models/user.py
from sqlalchemy import Column, Integer, String, Enum, DateTime
from sqlalchemy.orm import relationship
from ..base import Base, utcnow, enum_values
import enum

class UserRole(str, enum.Enum):
    STUDENT = "student"
    PROFESSOR = "professor"

class User(Base):
    __tablename__ = "users"
    
    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, nullable=False, index=True)
    password_hash = Column(String, nullable=False)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    # No endpoint changes a role once the account exists
    role = Column(Enum(UserRole, values_callable=enum_values, name="user_role"), nullable=False, default=UserRole.STUDENT)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    
    # Relationships
    sessions = relationship("RegistrationSession", back_populates="professor")
    student_requests = relationship(
        "DissertationRequest", back_populates="student", foreign_keys="DissertationRequest.student_id"
    )
    received_requests = relationship(
        "DissertationRequest", back_populates="professor", foreign_keys="DissertationRequest.professor_id"
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"
