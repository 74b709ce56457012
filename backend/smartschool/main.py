"""
SmartSchool Records Service - FastAPI application entry point.

This module:
1. Sets up structured JSON logging
2. Creates tables directly when running on SQLite
3. Adds the request ID middleware (X-Request-ID header)
4. Registers the student, attendance, import/export and dashboard routes

Layout:
- records.py: immutable student/result/attendance values
- services/: CSV codec, import reconciler, transcript calculator,
  attendance register, dashboard statistics, persistence and insight gateways
- routes/: API endpoint handlers
- models/: SQLAlchemy ORM models
"""

import time
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from smartschool import __version__
from smartschool.logging_config import (
    setup_logging, get_logger, log_with_context,
    request_id_var, generate_request_id
)
from smartschool.routes import students, attendance, imports, dashboard
from smartschool.database import DATABASE_URL, create_tables

# Register the ORM models with Base.metadata before create_tables()
from smartschool import models  # noqa: F401

setup_logging()
logger = get_logger("http")

if DATABASE_URL.startswith("sqlite"):
    logger.info("Using SQLite, creating tables directly")
    create_tables()

app = FastAPI(
    title="SmartSchool Records Service",
    description=(
        "Student bio-data, semester marks and daily attendance for a single school, "
        "with weighted annual transcripts and CSV roster import/export."
    ),
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"]
)


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    """
    Tag every request with a UUID.

    The ID is placed in a context variable so every log entry written while
    serving the request carries it, and is returned in X-Request-ID.
    """
    req_id = request.headers.get("X-Request-ID") or generate_request_id()
    request_id_var.set(req_id)
    start_time = time.time()

    log_with_context(logger, "INFO",
        f"Request started: {request.method} {request.url.path}",
        extra_data={
            "ip": request.client.host if request.client else "unknown",
            "query_params": dict(request.query_params)
        })

    response = await call_next(request)

    duration_ms = (time.time() - start_time) * 1000
    response.headers["X-Request-ID"] = req_id

    log_with_context(logger, "INFO",
        f"Request completed: {request.method} {request.url.path} → {response.status_code}",
        extra_data={
            "duration_ms": round(duration_ms, 2),
            "status_code": response.status_code
        })

    return response


app.include_router(students.router, tags=["Students"])
app.include_router(attendance.router, tags=["Attendance"])
app.include_router(imports.router, tags=["Import/Export"])
app.include_router(dashboard.router, tags=["Dashboard"])


@app.get("/health", tags=["Health"])
def health_check():
    return {"status": "healthy", "service": "smartschool-records", "version": __version__}


@app.get("/", tags=["Root"])
def root():
    """API index."""
    return {
        "service": "SmartSchool Records Service",
        "version": __version__,
        "docs": "/docs",
        "health": "/health",
        "endpoints": {
            "students": "GET|POST /api/students",
            "student": "GET|PUT|DELETE /api/students/{id}",
            "marks": "GET|PUT /api/students/{id}/semesters/{n}",
            "insight": "POST /api/students/{id}/semesters/{n}/insight",
            "transcript": "GET /api/students/{id}/transcript",
            "attendance_summary": "GET /api/students/{id}/attendance",
            "register": "GET|POST /api/attendance",
            "mark_all_present": "POST /api/attendance/mark-all-present",
            "import": "POST /api/import",
            "export": "GET /api/export",
            "templates": "GET /api/templates/{bio|sem1|sem2}",
            "dashboard": "GET /api/dashboard",
            "school_summary": "POST /api/dashboard/summary"
        }
    }
