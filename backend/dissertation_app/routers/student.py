from typing import List

from fastapi import APIRouter, Depends, File, UploadFile, status
from sqlalchemy.orm import Session

from ..database.session import get_db
from ..schemas import (
    RequestCreate,
    RequestDetail,
    RequestMutationResponse,
    RequestOut,
    StudentSessionOut,
    student_session_view,
)
from ..services.file_services import (
    build_stored_filename,
    read_pdf_upload,
    remove_upload_file,
    save_upload_file,
)
from ..services.request_service import RequestService
from ..services.session_service import SessionService
from .deps import StudentPrincipal, require_student

router = APIRouter(prefix="/student", tags=["student"])


@router.get("/sessions", response_model=List[StudentSessionOut])
def list_open_sessions(
    student: StudentPrincipal = Depends(require_student),
    db: Session = Depends(get_db)
):
    """Sessions accepting requests right now, with the caller's own request status"""
    return [
        student_session_view(session, approved_count, own_request)
        for session, approved_count, own_request in SessionService.list_open_for_student(db, student.user_id)
    ]


@router.get("/requests", response_model=List[RequestDetail])
def list_requests(
    student: StudentPrincipal = Depends(require_student),
    db: Session = Depends(get_db)
):
    return RequestService.list_for_student(db, student.user_id)


@router.post("/requests", response_model=RequestMutationResponse, status_code=status.HTTP_201_CREATED)
def submit_request(
    payload: RequestCreate,
    student: StudentPrincipal = Depends(require_student),
    db: Session = Depends(get_db)
):
    request = RequestService.submit(
        db,
        student_id=student.user_id,
        session_id=payload.session_id,
        dissertation_title=payload.dissertation_title,
    )
    return RequestMutationResponse(
        message="Request submitted successfully",
        request=RequestOut.model_validate(request)
    )


@router.get("/requests/{request_id}", response_model=RequestDetail)
def get_request(
    request_id: int,
    student: StudentPrincipal = Depends(require_student),
    db: Session = Depends(get_db)
):
    return RequestService.get_for_student(db, request_id, student.user_id)


@router.post("/requests/{request_id}/upload-signed", response_model=RequestMutationResponse)
def upload_signed_request(
    request_id: int,
    signed_file: UploadFile = File(..., alias="signedFile"),
    student: StudentPrincipal = Depends(require_student),
    db: Session = Depends(get_db)
):
    """Upload the signed coordination request (PDF, max 10MB)"""
    data = read_pdf_upload(signed_file)
    stored_name = build_stored_filename(student.user_id, signed_file.filename)
    save_upload_file(data, stored_name)

    try:
        request = RequestService.attach_student_file(db, request_id, student.user_id, stored_name)
    except Exception:
        remove_upload_file(stored_name)
        raise

    return RequestMutationResponse(
        message="Signed file uploaded successfully",
        request=RequestOut.model_validate(request)
    )
