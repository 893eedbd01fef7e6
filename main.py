from pathlib import Path

from fastapi import FastAPI
from starlette.exceptions import HTTPException as StarletteHTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.exceptions import RequestValidationError
from fastapi.staticfiles import StaticFiles

from courseflow.core.config import settings
from courseflow.core.cache import create_cache_backend
from courseflow.core.logging import configure_logging
from courseflow.models import registry  # noqa: F401
from courseflow.endpoints import (
    assignment, auth, course, course_module, course_progress, enrollment, material, upload
)
from courseflow.middleware.exceptions import (
    global_exception_handler, http_exception_handler, validation_exception_handler
)
from courseflow.middleware.logging import RequestLoggingMiddleware
from courseflow.services.email import register_email_handlers
from courseflow.services.otp import OTPService

configure_logging()

app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    openapi_url=f"{settings.API_V1_STR}/openapi.json"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(RequestLoggingMiddleware)

app.add_exception_handler(Exception, global_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)

Path(settings.UPLOAD_DIR).mkdir(parents=True, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=settings.UPLOAD_DIR), name="uploads")

app.include_router(auth.router, prefix="/auth", tags=["Auth"])
app.include_router(course.router, prefix="/courses", tags=["Courses"])
app.include_router(course_module.router, tags=["Modules"])
app.include_router(material.router, tags=["Materials"])
app.include_router(course_progress.router, tags=["Course Progress"])
app.include_router(enrollment.router, tags=["Enrollments"])
app.include_router(assignment.router, tags=["Assignments"])
app.include_router(upload.router, prefix="/upload", tags=["Uploads"])


@app.on_event("startup")
async def startup_event():
    app.state.otp_service = OTPService(create_cache_backend(settings.REDIS_URL), settings.OTP_EXPIRE_MINUTES * 60)
    register_email_handlers()


@app.get("/health", tags=["Health"])
async def health():
    return {"status": "ok", "version": settings.VERSION}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
