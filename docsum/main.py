"""
Document Summarizer — Main Application Entry Point
FastAPI + Gemini + Pydantic | extraction → prompt → model fallback → summary
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from docsum.api.routes import router
from docsum.core.config import get_settings
from docsum.core.logging import get_logger, log_event

logger = get_logger(__name__)
settings = get_settings()

app = FastAPI(
    title="Document Summarizer",
    description="Turns PDF, Word, spreadsheet and text documents into structured JSON summaries.",
    version="1.0.0",
    docs_url="/docs",
    redoc_url=None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # tighten in prod
    allow_credentials=False,
    allow_methods=["POST", "GET"],
    allow_headers=["*"],
)

app.include_router(router)

log_event(
    logger, "app_configured",
    environment=settings.environment,
    model_candidates=list(settings.model_candidates),
    api_key_configured=bool(settings.gemini_api_key),
    max_file_size=settings.max_file_size,
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Reshape Pydantic's validation errors to match our error contract."""
    errors = exc.errors()
    detail = "; ".join(
        f"{'.'.join(str(loc) for loc in e['loc'])}: {e['msg']}"
        for e in errors
    )
    return JSONResponse(
        status_code=422,
        content={"error": "validation_error", "detail": detail},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error("unhandled_exception", extra={"error": str(exc), "path": request.url.path})
    return JSONResponse(
        status_code=500,
        content={"error": "internal_server_error", "detail": "An unexpected error occurred."},
    )


@app.get("/health")
async def health():
    return {"status": "ok", "service": "document-summarizer"}
