from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse, Response

from core.aggregator import build_report
from core.config import Settings, configure_logging, get_settings
from core.errors import CloneError, ScanError, TraversalError
from utils.git_clone import cloned_repository

logger = logging.getLogger(__name__)

SERVICE_NAME = "unsafe-counter"
USAGE = (
    "BAD REQUEST.\n"
    "Usage instruction: /<github_username>/<github_repo>/ "
    "or /?user=<github_username>&repo=<github_repo>"
)


# --- app factory ---------------------------------------------------------------
def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.LOG_LEVEL)
    app = FastAPI(title="Unsafe Counter", version="0.1.0")
    app.state.settings = settings

    _register_routes(app)
    _register_error_handlers(app)
    return app


def _report_response(user: str, repo: str, settings: Settings) -> Response:
    with cloned_repository(user, repo, settings) as checkout:
        report = build_report(
            checkout,
            include_tests=settings.INCLUDE_TESTS,
            max_workers=settings.MAX_WORKERS,
        )
    logger.info("scanned %s/%s: %s", user, repo, report.total)
    return Response(
        content=json.dumps(report.to_dict(), indent=2),
        media_type="application/json",
    )


# --- routes --------------------------------------------------------------------
def _register_routes(app: FastAPI) -> None:
    # Plain `def` endpoints: cloning and scanning block, so they run in the threadpool
    @app.get("/")
    def scan_query(request: Request, user: Optional[str] = None, repo: Optional[str] = None) -> Response:
        if not user or not repo:
            return PlainTextResponse(USAGE, status_code=400)
        return _report_response(user, repo, request.app.state.settings)

    @app.get("/_health", tags=["meta"])
    def health() -> Dict[str, Any]:
        return {"ok": True, "service": SERVICE_NAME}

    @app.get("/{user}/{repo}")
    @app.get("/{user}/{repo}/")
    def scan_path(request: Request, user: str, repo: str) -> Response:
        return _report_response(user, repo, request.app.state.settings)


# --- error handlers ------------------------------------------------------------
def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(CloneError)
    async def on_clone_error(_: Request, exc: CloneError) -> PlainTextResponse:
        logger.warning("clone_error: %s", exc)
        return PlainTextResponse(str(exc), status_code=400)

    @app.exception_handler(ScanError)
    async def on_scan_error(_: Request, exc: ScanError) -> PlainTextResponse:
        logger.warning("scan_error: %s", exc)
        return PlainTextResponse(f"Failed to scan file {exc}", status_code=400)

    @app.exception_handler(TraversalError)
    async def on_traversal_error(_: Request, exc: TraversalError) -> PlainTextResponse:
        logger.error("traversal_error: %s", exc)
        return PlainTextResponse("Failed to traverse repo", status_code=500)


# --- CLI entrypoint ------------------------------------------------------------
if __name__ == "__main__":
    import uvicorn

    _settings = get_settings()
    uvicorn.run(
        "server:create_app",
        factory=True,
        host=_settings.HOST,
        port=_settings.PORT,
        log_level=_settings.LOG_LEVEL.lower(),
    )
