# dissertation_app/services/request_service.py
"""
Dissertation request lifecycle.

    pending --approve--> approved --request_reupload--> waiting_for_reupload
       |                    ^                                  |
       +--reject--> rejected +---------attach_student_file-----+

Invariants kept here:
- a student holds at most one accepted request (approved or waiting_for_reupload)
- a session never has more accepted requests than max_students
- rejection_reason is set only on rejected requests, reupload_reason only on
  requests waiting for a reupload
"""
import logging
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, aliased, joinedload

from ..config import settings
from ..database.base import utcnow
from ..database.models import (
    ACCEPTED_STATUSES,
    DissertationRequest,
    RegistrationSession,
    RequestStatus,
)
from ..exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from .file_services import remove_upload_file
from .session_service import SessionService

logger = logging.getLogger(__name__)


class RequestService:
    """Creates dissertation requests and moves them through their states"""

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    @staticmethod
    def get_for_professor(db: Session, request_id: int, professor_id: int) -> DissertationRequest:
        """Missing requests are 404, requests addressed to someone else 403"""
        request = db.query(DissertationRequest).filter(
            DissertationRequest.id == request_id
        ).first()

        if not request:
            raise NotFoundError("Request", request_id)

        if request.professor_id != professor_id:
            raise AuthorizationError()

        return request

    @staticmethod
    def get_for_student(db: Session, request_id: int, student_id: int) -> DissertationRequest:
        """Another student's request is reported as missing"""
        request = db.query(DissertationRequest).options(
            joinedload(DissertationRequest.professor),
            joinedload(DissertationRequest.session)
        ).filter(
            DissertationRequest.id == request_id,
            DissertationRequest.student_id == student_id
        ).first()

        if not request:
            raise NotFoundError("Request", request_id)

        return request

    @staticmethod
    def list_for_student(db: Session, student_id: int) -> List[DissertationRequest]:
        return db.query(DissertationRequest).options(
            joinedload(DissertationRequest.professor),
            joinedload(DissertationRequest.session)
        ).filter(
            DissertationRequest.student_id == student_id
        ).order_by(DissertationRequest.created_at.desc(), DissertationRequest.id.desc()).all()

    @staticmethod
    def list_for_professor(db: Session, professor_id: int) -> List[DissertationRequest]:
        return db.query(DissertationRequest).options(
            joinedload(DissertationRequest.student),
            joinedload(DissertationRequest.session)
        ).filter(
            DissertationRequest.professor_id == professor_id
        ).order_by(DissertationRequest.created_at.desc(), DissertationRequest.id.desc()).all()

    @staticmethod
    def find_acceptance(
        db: Session,
        student_id: int,
        exclude_request_id: Optional[int] = None
    ) -> Optional[DissertationRequest]:
        """The student's accepted request, if any"""
        query = db.query(DissertationRequest).filter(
            DissertationRequest.student_id == student_id,
            DissertationRequest.status.in_(ACCEPTED_STATUSES)
        )
        if exclude_request_id is not None:
            query = query.filter(DissertationRequest.id != exclude_request_id)
        return query.first()

    # ------------------------------------------------------------------
    # Student side
    # ------------------------------------------------------------------

    @staticmethod
    def submit(
        db: Session,
        student_id: int,
        session_id: int,
        dissertation_title: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> DissertationRequest:
        """Create a pending request against an open session"""
        if not session_id:
            raise ValidationError("Session ID is required", field="sessionId")

        session = db.query(RegistrationSession).filter(
            RegistrationSession.id == session_id
        ).first()
        if not session:
            raise NotFoundError("Session", session_id)

        now = now or utcnow()
        if not session.is_open(now):
            raise ConflictError("Session is not active")

        duplicate = db.query(DissertationRequest).filter(
            DissertationRequest.session_id == session.id,
            DissertationRequest.student_id == student_id,
            DissertationRequest.status == RequestStatus.PENDING
        ).first()
        if duplicate:
            raise ConflictError("You already have a pending request for this session")

        acceptance = RequestService.find_acceptance(db, student_id)
        if acceptance and acceptance.professor_id == session.professor_id:
            raise ConflictError("You are already approved by this professor")
        if acceptance:
            raise ConflictError("You are already approved by another professor")

        if SessionService.accepted_count(db, session.id) >= session.max_students:
            raise ConflictError("Session is full")

        request = DissertationRequest(
            session_id=session.id,
            student_id=student_id,
            professor_id=session.professor_id,
            status=RequestStatus.PENDING,
            dissertation_title=dissertation_title or "",
        )
        db.add(request)
        db.commit()
        db.refresh(request)

        logger.info(f"Request {request.id} submitted by student {student_id} to session {session.id}")
        return request

    @staticmethod
    def attach_student_file(db: Session, request_id: int, student_id: int, filename: str) -> DissertationRequest:
        """
        Record the student's signed coordination request.
        A request waiting for a reupload returns to approved when
        RESET_STATUS_ON_REUPLOAD is enabled.
        """
        request = db.query(DissertationRequest).filter(
            DissertationRequest.id == request_id,
            DissertationRequest.student_id == student_id
        ).first()
        if not request:
            raise NotFoundError("Request", request_id)

        if request.status not in ACCEPTED_STATUSES:
            raise ConflictError("Can only upload files for approved requests")

        replaced = request.signed_coordination_request_file
        request.signed_coordination_request_file = filename
        if request.status == RequestStatus.WAITING_FOR_REUPLOAD and settings.RESET_STATUS_ON_REUPLOAD:
            request.status = RequestStatus.APPROVED
            request.reupload_reason = None

        db.commit()
        db.refresh(request)

        if replaced and replaced != filename:
            remove_upload_file(replaced)

        logger.info(f"Signed file attached to request {request.id} by student {student_id} (status {request.status.value})")
        return request

    # ------------------------------------------------------------------
    # Professor side
    # ------------------------------------------------------------------

    @staticmethod
    def _check_approvable(db: Session, request: DissertationRequest) -> None:
        if request.status != RequestStatus.PENDING:
            raise ConflictError("Can only approve pending requests")

        session = db.query(RegistrationSession).filter(
            RegistrationSession.id == request.session_id
        ).first()
        if SessionService.accepted_count(db, request.session_id) >= session.max_students:
            raise ConflictError("Session is full")

        acceptance = RequestService.find_acceptance(db, request.student_id, exclude_request_id=request.id)
        if acceptance and acceptance.professor_id != request.professor_id:
            raise ConflictError("Student is already approved by another professor")
        if acceptance:
            raise ConflictError("Student is already approved in another of your sessions")

    @staticmethod
    def approve(db: Session, request_id: int, professor_id: int) -> Tuple[DissertationRequest, int]:
        """
        Approve a pending request.

        The session row is locked first (SELECT ... FOR UPDATE), so approvals
        in one session run one after another on databases with row locks;
        SQLite already serializes writers. The status change is then a single
        conditional UPDATE that re-checks, inside the statement, that the
        request is still pending, that the session has a free slot and that
        the student holds no other acceptance. Concurrent approvals therefore
        cannot overshoot max_students.

        With CASCADE_WITHDRAW_ON_APPROVAL every other pending request of the
        student is deleted afterwards.

        Returns:
            (approved request, number of withdrawn pending requests)
        """
        request = RequestService.get_for_professor(db, request_id, professor_id)
        session_id = request.session_id
        student_id = request.student_id
        RequestService._check_approvable(db, request)

        db.query(RegistrationSession).filter(
            RegistrationSession.id == session_id
        ).with_for_update().one()

        peer = aliased(DissertationRequest)
        accepted_in_session = select(func.count(peer.id)).where(
            peer.session_id == session_id,
            peer.status.in_(ACCEPTED_STATUSES)
        ).scalar_subquery()
        capacity = select(RegistrationSession.max_students).where(
            RegistrationSession.id == session_id
        ).scalar_subquery()
        other_acceptance = select(peer.id).where(
            peer.student_id == student_id,
            peer.id != request_id,
            peer.status.in_(ACCEPTED_STATUSES)
        ).exists()

        stmt = update(DissertationRequest).where(
            DissertationRequest.id == request_id,
            DissertationRequest.status == RequestStatus.PENDING,
            accepted_in_session < capacity,
            ~other_acceptance
        ).values(
            status=RequestStatus.APPROVED,
            updated_at=utcnow()
        ).execution_options(synchronize_session=False)

        try:
            result = db.execute(stmt)
        except IntegrityError:
            # The one-acceptance index caught a concurrent approval
            db.rollback()
            raise ConflictError("Student is already approved by another professor")

        if result.rowcount != 1:
            # Lost a race; report whichever rule now fails on the current row
            db.rollback()
            db.expire_all()
            current = db.query(DissertationRequest).filter(
                DissertationRequest.id == request_id
            ).first()
            if not current:
                # Withdrawn by another professor's approval in the meantime
                raise NotFoundError("Request", request_id)
            RequestService._check_approvable(db, current)
            raise ConflictError("Request could not be approved, please retry")

        withdrawn = 0
        if settings.CASCADE_WITHDRAW_ON_APPROVAL:
            withdrawn = db.query(DissertationRequest).filter(
                DissertationRequest.student_id == student_id,
                DissertationRequest.id != request_id,
                DissertationRequest.status == RequestStatus.PENDING
            ).delete(synchronize_session=False)

        db.commit()
        db.refresh(request)

        logger.info(
            f"Request {request_id} approved by professor {professor_id}; "
            f"{withdrawn} other pending request(s) of student {student_id} withdrawn"
        )
        return request, withdrawn

    @staticmethod
    def reject(db: Session, request_id: int, professor_id: int, reason: Optional[str]) -> DissertationRequest:
        if not reason or not reason.strip():
            raise ValidationError("Rejection reason is required", field="rejectionReason")

        request = RequestService.get_for_professor(db, request_id, professor_id)
        if request.status != RequestStatus.PENDING:
            raise ConflictError("Can only reject pending requests")

        request.status = RequestStatus.REJECTED
        request.rejection_reason = reason
        db.commit()
        db.refresh(request)

        logger.info(f"Request {request.id} rejected by professor {professor_id}")
        return request

    @staticmethod
    def request_reupload(db: Session, request_id: int, professor_id: int, reason: Optional[str]) -> DissertationRequest:
        """Send an approved request back to the student for a corrected signed file"""
        if not reason or not reason.strip():
            raise ValidationError("Reason for reupload request is required", field="reason")

        request = RequestService.get_for_professor(db, request_id, professor_id)
        if request.status != RequestStatus.APPROVED or not request.signed_coordination_request_file:
            raise ConflictError("Can only request reupload for approved requests with uploaded files")

        rejected_file = request.signed_coordination_request_file
        request.status = RequestStatus.WAITING_FOR_REUPLOAD
        request.reupload_reason = reason
        request.signed_coordination_request_file = None
        db.commit()
        db.refresh(request)
        remove_upload_file(rejected_file)

        logger.info(f"Reupload requested on request {request.id} by professor {professor_id}")
        return request

    @staticmethod
    def attach_professor_file(db: Session, request_id: int, professor_id: int, filename: str) -> DissertationRequest:
        request = RequestService.get_for_professor(db, request_id, professor_id)
        if request.status != RequestStatus.APPROVED or not request.signed_coordination_request_file:
            raise ConflictError("Can only upload response after student has uploaded signed request")

        replaced = request.professor_review_file
        request.professor_review_file = filename
        db.commit()
        db.refresh(request)

        if replaced and replaced != filename:
            remove_upload_file(replaced)

        logger.info(f"Review file attached to request {request.id} by professor {professor_id}")
        return request
