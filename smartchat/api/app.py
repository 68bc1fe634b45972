"""FastAPI bridge between a host editor shell and the smartchat core"""

from __future__ import annotations

from typing import Any

from dotenv import load_dotenv
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from smartchat.api.routes.codeblocks import router as codeblocks_router
from smartchat.api.routes.conversations import router as conversations_router
from smartchat.api.routes.health import router as health_router
from smartchat.api.routes.threads import router as threads_router
from smartchat.config import APP_ENV, APP_VERSION
from smartchat.observability.logging import get_logger
from smartchat.observability.telemetry import counter
from smartchat.utils.validators import ValidationError

logger = get_logger(__name__)

load_dotenv()

app = FastAPI(title="smartchat bridge", version=APP_VERSION)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Sanitized 422 for malformed request bodies.

    Side Effects:
        - Logs the full validation errors
        - Increments the api.validation_errors counter
    """
    logger.warning("Validation error on %s: %s", request.url.path, exc.errors())
    counter("api.validation_errors")

    return JSONResponse(
        status_code=422,
        content={
            "detail": "Invalid request format. Please check your request and try again.",
            "error_count": len(exc.errors()),
            "invalid_fields": [str(err["loc"][-1]) for err in exc.errors()],
        },
    )


@app.exception_handler(ValidationError)
async def input_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    """Well-formed request with an unusable value (unknown fence tag, bad range)."""
    logger.info("Rejected request on %s: %s", request.url.path, exc)
    counter("api.input_errors")
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)})


# The host shell runs on the same machine
ALLOWED_ORIGINS = ["app://obsidian.md"]
if APP_ENV == "development":
    ALLOWED_ORIGINS.extend(["http://localhost:3000", "http://127.0.0.1:3000"])

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=False,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type"],
)

app.include_router(health_router)
app.include_router(threads_router)
app.include_router(codeblocks_router)
app.include_router(conversations_router)


@app.get("/")
def root() -> dict[str, Any]:
    return {
        "service": "smartchat bridge",
        "version": APP_VERSION,
        "status": "running",
        "endpoints": {
            "platforms": "/api/platforms",
            "classify": "/api/threads/classify",
            "links": "/api/threads/links",
            "codeblocks": "/api/codeblocks/{boundaries,prefix,insert,mark-done,mark-active}",
            "conversations": "/api/conversations/{merge,intercept}",
        },
    }
