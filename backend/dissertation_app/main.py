# dissertation_app/main.py
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from .config import settings
from .database.base import Base
from .database.session import engine
from .exceptions import DissertationAppError
from .logging_config import logger

# Import all models to ensure they're registered with Base
from .database import models  # noqa: F401
from .routers import auth, professor, student

app = FastAPI(
    title=settings.APP_NAME,
    description="Dissertation supervision requests between students and professors",
    version="1.0.0"
)

# CORS middleware for frontend communication
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Create all database tables
Base.metadata.create_all(bind=engine)

app.include_router(auth.router, prefix="/api")
app.include_router(professor.router, prefix="/api")
app.include_router(student.router, prefix="/api")

# Uploaded PDFs by stored filename
app.mount("/uploads", StaticFiles(directory=settings.UPLOAD_DIR), name="uploads")


# Exception handlers
@app.exception_handler(DissertationAppError)
async def app_error_handler(request: Request, exc: DissertationAppError):
    logger.warning(
        f"{request.method} {request.url.path} -> {exc.status_code} {exc.code}: {exc.message}"
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ())[1:])
    message = f"{field}: {first.get('msg')}" if field else first.get("msg", "Invalid request")
    logger.warning(f"{request.method} {request.url.path} -> 400 VALIDATION_ERROR: {message}")
    return JSONResponse(
        status_code=400,
        content={"error": message, "code": "VALIDATION_ERROR"}
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "code": "INTERNAL_ERROR"}
    )


@app.get("/")
def root():
    return {
        "status": "ok",
        "service": "Dissertation Registration API",
        "version": "1.0.0"
    }


@app.get("/health")
def health_check():
    return {
        "status": "healthy",
        "environment": settings.ENVIRONMENT,
        "upload_dir": str(settings.UPLOAD_DIR)
    }

#   cd backend
#   python -m uvicorn dissertation_app.main:app --reload
#   API docs (interactive): http://127.0.0.1:8000/docs
