# Import all models so they're registered with Base
from .user import User, UserRole
from .registration_session import RegistrationSession
from .dissertation_request import DissertationRequest, RequestStatus, ACCEPTED_STATUSES

__all__ = [
    "User",
    "UserRole",
    "RegistrationSession",
    "DissertationRequest",
    "RequestStatus",
    "ACCEPTED_STATUSES",
]
