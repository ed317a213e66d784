import logging
import os
from typing import Any, Dict

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from template_studio.api import admin, documents
from template_studio.db.session import init_db
from template_studio.errors import TemplateStudioError
from template_studio.settings import get_settings
from template_studio.user_config import (
    ALLOWED_KEYS,
    get_user_config_path,
    load_user_config,
    save_user_config,
)
from template_studio.utils.logging import configure_logging

configure_logging()
logger = logging.getLogger(__name__)
settings = get_settings()

USER_CONFIG = load_user_config()

# set to "http://localhost:3000" if you want strict
CORS_ORIGINS = settings.cors_origins


# -----------------------------
# FastAPI
# -----------------------------
app = FastAPI(title="Template Studio API", version="0.1")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"]
    if CORS_ORIGINS.strip() == "*"
    else [o.strip() for o in CORS_ORIGINS.split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(TemplateStudioError)
def _handle_template_studio_error(request: Request, exc: TemplateStudioError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code, content={"error": exc.code, "detail": exc.message}
    )


@app.exception_handler(RequestValidationError)
def _handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    detail = "; ".join(
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
        for error in exc.errors()
    )
    return JSONResponse(status_code=422, content={"error": "validation_failure", "detail": detail})


@app.on_event("startup")
def _startup() -> None:
    if os.environ.get("TS_SKIP_STARTUP_INIT"):
        logger.info("API Server startup init skipped.")
        return
    logger.info("API Server starting: Initializing template DB...")
    init_db()
    logger.info("API Server ready.")


# -----------------------------
# Routes
# -----------------------------
@app.get("/health")
def health():
    """Return API health metadata."""
    return {"status": "ok", "version": app.version}


@app.get("/settings")
def get_user_settings():
    """Return merged settings with user overrides."""
    merged: Dict[str, Any] = {**settings.model_dump(), **USER_CONFIG}
    merged["config_path"] = get_user_config_path()
    return merged


@app.put("/settings")
def update_user_settings(payload: Dict[str, Any]):
    """Persist user settings updates to JSON.

    Only whitelisted keys are stored; they take effect on the next start.

    Args:
        payload: Request payload.
    """
    updates = {k: v for k, v in (payload or {}).items() if k in ALLOWED_KEYS}
    if not updates:
        return get_user_settings()

    global USER_CONFIG
    USER_CONFIG = save_user_config(None, {**USER_CONFIG, **updates})
    get_settings.cache_clear()
    return get_user_settings()


# the documents router has catch-all "/{kind}" paths, so it goes last
app.include_router(admin.router)
app.include_router(documents.router)


def main() -> None:
    """Run the API server entrypoint."""
    uvicorn.run(app, host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    main()
