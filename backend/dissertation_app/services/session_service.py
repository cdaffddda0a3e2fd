# dissertation_app/services/session_service.py
import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from ..config import settings
from ..database.base import utcnow
from ..database.models import (
    ACCEPTED_STATUSES,
    DissertationRequest,
    RegistrationSession,
)
from ..exceptions import ConflictError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


class SessionService:
    """Registration sessions: creation, editing, deletion and capacity bookkeeping"""

    @staticmethod
    def accepted_count(db: Session, session_id: int) -> int:
        """Number of requests holding a slot in the session"""
        return db.query(func.count(DissertationRequest.id)).filter(
            DissertationRequest.session_id == session_id,
            DissertationRequest.status.in_(ACCEPTED_STATUSES)
        ).scalar() or 0

    @staticmethod
    def accepted_counts(db: Session, session_ids: Iterable[int]) -> Dict[int, int]:
        """Accepted counts for several sessions in one query"""
        session_ids = list(session_ids)
        if not session_ids:
            return {}

        rows = db.query(
            DissertationRequest.session_id,
            func.count(DissertationRequest.id)
        ).filter(
            DissertationRequest.session_id.in_(session_ids),
            DissertationRequest.status.in_(ACCEPTED_STATUSES)
        ).group_by(DissertationRequest.session_id).all()

        counts = {session_id: 0 for session_id in session_ids}
        counts.update({session_id: count for session_id, count in rows})
        return counts

    @staticmethod
    def get_owned(db: Session, session_id: int, professor_id: int) -> RegistrationSession:
        """
        Fetch a session owned by the professor.
        Sessions of other professors are reported as missing.
        """
        session = db.query(RegistrationSession).filter(
            RegistrationSession.id == session_id,
            RegistrationSession.professor_id == professor_id
        ).first()

        if not session:
            raise NotFoundError("Session", session_id)

        return session

    @staticmethod
    def check_no_overlap(
        db: Session,
        professor_id: int,
        start_date: datetime,
        end_date: datetime,
        exclude_session_id: Optional[int] = None
    ) -> None:
        """Raise if the professor already runs an active session in that window"""
        query = db.query(RegistrationSession).filter(
            RegistrationSession.professor_id == professor_id,
            RegistrationSession.is_active.is_(True),
            RegistrationSession.start_date < end_date,
            RegistrationSession.end_date > start_date
        )
        if exclude_session_id is not None:
            query = query.filter(RegistrationSession.id != exclude_session_id)

        overlapping = query.first()
        if overlapping:
            raise ConflictError(
                f"Session overlaps with your existing active session '{overlapping.title}'"
            )

    @staticmethod
    def create(
        db: Session,
        professor_id: int,
        title: str,
        start_date: datetime,
        end_date: datetime,
        max_students: int,
        description: Optional[str] = None
    ) -> RegistrationSession:
        if not title or not start_date or not end_date or not max_students:
            raise ValidationError("Title, startDate, endDate, and maxStudents are required")

        if max_students < 1:
            raise ValidationError("maxStudents must be at least 1", field="maxStudents")

        if start_date >= end_date:
            raise ValidationError("Start date must be before end date", field="startDate")

        if not settings.ALLOW_OVERLAPPING_SESSIONS:
            SessionService.check_no_overlap(db, professor_id, start_date, end_date)

        session = RegistrationSession(
            professor_id=professor_id,
            title=title,
            description=description or "",
            start_date=start_date,
            end_date=end_date,
            max_students=max_students,
        )
        db.add(session)
        db.commit()
        db.refresh(session)

        logger.info(
            f"Session {session.id} created by professor {professor_id} "
            f"({start_date.isoformat()} - {end_date.isoformat()}, {max_students} slots)"
        )
        return session

    @staticmethod
    def update(db: Session, session_id: int, professor_id: int, changes: Dict) -> RegistrationSession:
        """
        Apply a partial update.

        `changes` holds only the fields the caller sent. maxStudents can never go
        below the number of students already holding a slot.
        """
        session = SessionService.get_owned(db, session_id, professor_id)
        accepted = SessionService.accepted_count(db, session.id)

        new_max = changes.get("max_students")
        if new_max is not None and new_max < accepted:
            raise ValidationError(
                f"Cannot set maxStudents below current approved count ({accepted})",
                field="maxStudents"
            )

        new_start = changes.get("start_date") or session.start_date
        new_end = changes.get("end_date") or session.end_date
        if new_start >= new_end:
            raise ValidationError("Start date must be before end date", field="startDate")

        if "title" in changes and changes["title"] is not None and not changes["title"].strip():
            raise ValidationError("Title cannot be empty", field="title")

        new_active = changes.get("is_active")
        if new_active is None:
            new_active = session.is_active

        if not settings.ALLOW_OVERLAPPING_SESSIONS and new_active:
            SessionService.check_no_overlap(
                db, professor_id, new_start, new_end, exclude_session_id=session.id
            )

        if changes.get("title") is not None:
            session.title = changes["title"]
        if "description" in changes:
            session.description = changes["description"] or ""
        if new_max is not None:
            session.max_students = new_max
        session.start_date = new_start
        session.end_date = new_end
        session.is_active = new_active

        db.commit()
        db.refresh(session)

        logger.info(f"Session {session.id} updated by professor {professor_id}: {sorted(changes)}")
        return session

    @staticmethod
    def delete(db: Session, session_id: int, professor_id: int) -> int:
        """
        Delete a session that has no approved students.
        Its remaining requests go with it; returns how many were removed.
        """
        session = SessionService.get_owned(db, session_id, professor_id)

        accepted = SessionService.accepted_count(db, session.id)
        if accepted > 0:
            raise ValidationError(
                f"Cannot delete session with approved students ({accepted} approved)"
            )

        removed = db.query(DissertationRequest).filter(
            DissertationRequest.session_id == session.id
        ).delete(synchronize_session=False)

        db.delete(session)
        db.commit()

        logger.info(
            f"Session {session_id} deleted by professor {professor_id}; "
            f"{removed} outstanding request(s) removed"
        )
        return removed

    @staticmethod
    def list_for_professor(db: Session, professor_id: int) -> List[Tuple[RegistrationSession, int]]:
        """The professor's sessions, latest start first, with their accepted counts"""
        sessions = db.query(RegistrationSession).filter(
            RegistrationSession.professor_id == professor_id
        ).order_by(RegistrationSession.start_date.desc()).all()

        counts = SessionService.accepted_counts(db, [s.id for s in sessions])
        return [(session, counts[session.id]) for session in sessions]

    @staticmethod
    def list_open_for_student(
        db: Session,
        student_id: int,
        now: Optional[datetime] = None
    ) -> List[Tuple[RegistrationSession, int, Optional[DissertationRequest]]]:
        """
        Sessions currently accepting requests, earliest start first.
        Each comes with its accepted count and the student's latest request to it.
        """
        now = now or utcnow()
        sessions = db.query(RegistrationSession).options(
            joinedload(RegistrationSession.professor)
        ).filter(
            RegistrationSession.is_active.is_(True),
            RegistrationSession.start_date <= now,
            RegistrationSession.end_date >= now
        ).order_by(RegistrationSession.start_date.asc()).all()

        session_ids = [s.id for s in sessions]
        counts = SessionService.accepted_counts(db, session_ids)

        own_requests: Dict[int, DissertationRequest] = {}
        if session_ids:
            requests = db.query(DissertationRequest).filter(
                DissertationRequest.student_id == student_id,
                DissertationRequest.session_id.in_(session_ids)
            ).order_by(DissertationRequest.created_at.asc(), DissertationRequest.id.asc()).all()
            for request in requests:
                own_requests[request.session_id] = request

        return [
            (session, counts[session.id], own_requests.get(session.id))
            for session in sessions
        ]

    @staticmethod
    def list_session_requests(db: Session, session_id: int, professor_id: int) -> List[DissertationRequest]:
        """Requests made to one of the professor's sessions, newest first"""
        session = SessionService.get_owned(db, session_id, professor_id)

        return db.query(DissertationRequest).options(
            joinedload(DissertationRequest.student)
        ).filter(
            DissertationRequest.session_id == session.id
        ).order_by(DissertationRequest.created_at.desc(), DissertationRequest.id.desc()).all()
