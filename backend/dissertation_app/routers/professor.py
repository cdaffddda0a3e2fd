from typing import List

from fastapi import APIRouter, Depends, File, UploadFile, status
from sqlalchemy.orm import Session

from ..database.session import get_db
from ..schemas import (
    ApproveResponse,
    MessageResponse,
    RejectBody,
    RequestDetail,
    RequestMutationResponse,
    RequestOut,
    ReuploadBody,
    SessionCreate,
    SessionMutationResponse,
    SessionOut,
    SessionUpdate,
    SessionWithCounts,
    session_with_counts,
)
from ..services.file_services import (
    build_stored_filename,
    read_pdf_upload,
    remove_upload_file,
    save_upload_file,
)
from ..services.request_service import RequestService
from ..services.session_service import SessionService
from .deps import ProfessorPrincipal, require_professor

router = APIRouter(prefix="/professor", tags=["professor"])


# ============================================================
# Registration sessions
# ============================================================

@router.post("/sessions", response_model=SessionMutationResponse, status_code=status.HTTP_201_CREATED)
def create_session(
    payload: SessionCreate,
    professor: ProfessorPrincipal = Depends(require_professor),
    db: Session = Depends(get_db)
):
    session = SessionService.create(
        db,
        professor_id=professor.user_id,
        title=payload.title,
        description=payload.description,
        start_date=payload.start_date,
        end_date=payload.end_date,
        max_students=payload.max_students,
    )
    return SessionMutationResponse(
        message="Session created successfully",
        session=SessionOut.model_validate(session)
    )


@router.get("/sessions", response_model=List[SessionWithCounts])
def list_sessions(
    professor: ProfessorPrincipal = Depends(require_professor),
    db: Session = Depends(get_db)
):
    return [
        session_with_counts(session, approved_count)
        for session, approved_count in SessionService.list_for_professor(db, professor.user_id)
    ]


@router.put("/sessions/{session_id}", response_model=SessionMutationResponse)
def update_session(
    session_id: int,
    payload: SessionUpdate,
    professor: ProfessorPrincipal = Depends(require_professor),
    db: Session = Depends(get_db)
):
    session = SessionService.update(
        db, session_id, professor.user_id, payload.model_dump(exclude_unset=True)
    )
    return SessionMutationResponse(
        message="Session updated successfully",
        session=SessionOut.model_validate(session)
    )


@router.delete("/sessions/{session_id}", response_model=MessageResponse)
def delete_session(
    session_id: int,
    professor: ProfessorPrincipal = Depends(require_professor),
    db: Session = Depends(get_db)
):
    SessionService.delete(db, session_id, professor.user_id)
    return MessageResponse(message="Session deleted successfully")


@router.get("/sessions/{session_id}/requests", response_model=List[RequestDetail])
def list_session_requests(
    session_id: int,
    professor: ProfessorPrincipal = Depends(require_professor),
    db: Session = Depends(get_db)
):
    return SessionService.list_session_requests(db, session_id, professor.user_id)


# ============================================================
# Dissertation requests
# ============================================================

@router.get("/requests", response_model=List[RequestDetail])
def list_requests(
    professor: ProfessorPrincipal = Depends(require_professor),
    db: Session = Depends(get_db)
):
    return RequestService.list_for_professor(db, professor.user_id)


@router.put("/requests/{request_id}/approve", response_model=ApproveResponse)
def approve_request(
    request_id: int,
    professor: ProfessorPrincipal = Depends(require_professor),
    db: Session = Depends(get_db)
):
    request, withdrawn = RequestService.approve(db, request_id, professor.user_id)
    return ApproveResponse(
        message=f"Request approved. {withdrawn} other pending requests were automatically removed.",
        request=RequestOut.model_validate(request),
        deleted_requests_count=withdrawn,
    )


@router.put("/requests/{request_id}/reject", response_model=RequestMutationResponse)
def reject_request(
    request_id: int,
    payload: RejectBody,
    professor: ProfessorPrincipal = Depends(require_professor),
    db: Session = Depends(get_db)
):
    request = RequestService.reject(db, request_id, professor.user_id, payload.rejection_reason)
    return RequestMutationResponse(message="Request rejected", request=RequestOut.model_validate(request))


@router.put("/requests/{request_id}/request-reupload", response_model=RequestMutationResponse)
def request_reupload(
    request_id: int,
    payload: ReuploadBody,
    professor: ProfessorPrincipal = Depends(require_professor),
    db: Session = Depends(get_db)
):
    request = RequestService.request_reupload(db, request_id, professor.user_id, payload.reason)
    return RequestMutationResponse(
        message="Reupload requested successfully",
        request=RequestOut.model_validate(request)
    )


@router.post("/requests/{request_id}/upload-response", response_model=RequestMutationResponse)
def upload_response(
    request_id: int,
    professor_file: UploadFile = File(..., alias="professorFile"),
    professor: ProfessorPrincipal = Depends(require_professor),
    db: Session = Depends(get_db)
):
    data = read_pdf_upload(professor_file)
    stored_name = build_stored_filename(professor.user_id, professor_file.filename)
    save_upload_file(data, stored_name)

    try:
        request = RequestService.attach_professor_file(db, request_id, professor.user_id, stored_name)
    except Exception:
        remove_upload_file(stored_name)
        raise

    return RequestMutationResponse(
        message="Response file uploaded successfully",
        request=RequestOut.model_validate(request)
    )
