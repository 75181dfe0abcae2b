"""
Student Records Service - FastAPI Application Entry Point.

This is the main application module that:
1. Sets up structured JSON logging
2. Probes the Ollama server once at startup to pick the summary mode
3. Implements request ID middleware (X-Request-ID header)
4. Maps domain errors to HTTP responses
5. Registers the student routes and the health check endpoint

Layout:
- routes/: API endpoint handlers
- models/: Pydantic models
- services/: Record store and summary generation
- logging_config.py: Structured logging configuration
- config.py: Environment configuration
"""

import time
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from student_service import __version__, config
from student_service.errors import StudentServiceError
from student_service.logging_config import (
    setup_logging, get_logger, log_with_context,
    request_id_var, generate_request_id
)
from student_service.routes import students
from student_service.services.student_store import InMemoryStudentStore, StudentStore
from student_service.services.summary import SummaryGenerator, build_summary_generator

# ──────────────────────────────────────────────────────────────
# Initialize structured logging BEFORE anything else
# ──────────────────────────────────────────────────────────────
setup_logging()
logger = get_logger("http")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Pick the summary mode before the first request is served.

    Skipped when a generator was injected through create_app(). The
    shared httpx client lives as long as the application.
    """
    if getattr(app.state, "summary_generator", None) is not None:
        yield
        return

    client = httpx.Client()
    app.state.summary_generator = build_summary_generator(client)
    try:
        yield
    finally:
        app.state.summary_generator = None
        client.close()


def create_app(store: Optional[StudentStore] = None,
               summary_generator: Optional[SummaryGenerator] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        store: Record store backend (defaults to a fresh InMemoryStudentStore)
        summary_generator: Pre-built generator; when omitted the startup
            probe decides between Ollama and the local template
    """
    app = FastAPI(
        title="Student Records Service",
        description=(
            "In-memory CRUD API for student records, with natural-language "
            "profile summaries from a local Ollama server or a fixed template."
        ),
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc"
    )
    app.state.store = store if store is not None else InMemoryStudentStore()
    app.state.summary_generator = summary_generator

    # ──────────────────────────────────────────────────────────
    # Request ID Middleware
    #
    # Generates a UUID per request, stores it in the context
    # variable read by the log formatter, returns it in the
    # X-Request-ID header and logs start/end with latency.
    # ──────────────────────────────────────────────────────────
    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next):
        req_id = generate_request_id()
        request_id_var.set(req_id)

        start_time = time.time()

        log_with_context(logger, "INFO",
            f"Request started: {request.method} {request.url.path}",
            context={"request_id": req_id},
            extra_data={
                "ip": request.client.host if request.client else "unknown",
                "user_agent": request.headers.get("user-agent", "")
            })

        response = await call_next(request)

        duration_ms = (time.time() - start_time) * 1000
        response.headers["X-Request-ID"] = req_id

        log_with_context(logger, "INFO",
            f"Request completed: {request.method} {request.url.path} → {response.status_code}",
            context={"request_id": req_id},
            extra_data={
                "duration_ms": round(duration_ms, 2),
                "status_code": response.status_code
            })

        return response

    # ──────────────────────────────────────────────────────────
    # Error mapping
    # ──────────────────────────────────────────────────────────
    @app.exception_handler(StudentServiceError)
    async def student_service_error_handler(request: Request, exc: StudentServiceError):
        level = "ERROR" if exc.status_code >= 500 else "WARNING"
        log_with_context(logger, level, exc.message,
            extra_data={"path": request.url.path, "status_code": exc.status_code})
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        # Malformed JSON or wrongly typed fields are bad input, not 422
        log_with_context(logger, "WARNING", "Request body rejected",
            extra_data={"path": request.url.path, "errors": exc.errors()})
        return JSONResponse(status_code=400, content={"detail": "Invalid request body", "errors": _jsonable_errors(exc)})

    app.include_router(students.router, tags=["Students"])

    @app.get("/health", tags=["Health"])
    def health_check(request: Request):
        """Liveness check; also reports which summary mode was selected."""
        generator = request.app.state.summary_generator
        return {
            "status": "healthy",
            "service": "student-records-service",
            "version": __version__,
            "summary_mode": generator.mode if generator is not None else None
        }

    @app.get("/", tags=["Root"])
    def root():
        """Root endpoint with API information."""
        return {
            "service": "Student Records Service",
            "version": __version__,
            "docs": "/docs",
            "health": "/health",
            "endpoints": {
                "create": "POST /students",
                "list": "GET /students",
                "detail": "GET /students/{id}",
                "update": "PUT /students/{id}",
                "delete": "DELETE /students/{id}",
                "summary": "GET /students/{id}/summary"
            }
        }

    return app


def _jsonable_errors(exc: RequestValidationError) -> list:
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", ""), "type": err.get("type", "")}
        for err in exc.errors()
    ]


app = create_app()

log_with_context(logger, "INFO", "Application configured",
    extra_data={"port": config.PORT, "ollama_host": config.OLLAMA_HOST})
