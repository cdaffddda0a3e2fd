# dissertation_app/database/base.py
from datetime import datetime, timezone
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every DateTime column stores"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def enum_values(enum_cls):
    """Persist enum values ("approved") rather than member names ("APPROVED")"""
    return [member.value for member in enum_cls]
