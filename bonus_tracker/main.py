"""
FastAPI Application - Team Bonus Tracker
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from bonus_tracker.auth import require_org_user
from bonus_tracker.config import get_settings
from bonus_tracker.errors import BonusTrackerError
from bonus_tracker.logging_config import setup_logging
from bonus_tracker.report import ReportService
from bonus_tracker.scheduler import start_scheduler, stop_scheduler

logger = logging.getLogger("api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    setup_logging(settings.timezone)
    settings.validate()
    app.state.service = ReportService(settings)
    start_scheduler(app.state.service)
    yield
    stop_scheduler()


app = FastAPI(title="Team Bonus Tracker API", lifespan=lifespan)


def get_service(request: Request) -> ReportService:
    return request.app.state.service


# -------------------------------------------------
# Error payloads
# -------------------------------------------------
@app.exception_handler(BonusTrackerError)
async def bonus_tracker_error_handler(request: Request, exc: BonusTrackerError):
    if exc.status_code >= 500:
        logger.error(f"❌ {request.url.path} failed: {exc.message}", exc_info=exc)
    else:
        logger.info(f"🚫 {request.url.path} rejected: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"status": "error", "reason": exc.message},
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    # auth rejections, unknown routes, wrong methods
    return JSONResponse(
        status_code=exc.status_code,
        content={"status": "error", "reason": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    where = ".".join(str(part) for part in first.get("loc", ()) if part != "body") or "body"
    reason = f"Invalid request: {where}: {first.get('msg', 'invalid value')}"
    logger.info(f"🚫 {request.url.path} rejected: {reason}")
    return JSONResponse(status_code=400, content={"status": "error", "reason": reason})


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.error(f"❌ {request.url.path} crashed", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"status": "error", "reason": "Internal server error"},
    )


# -------------------------------------------------
# Request bodies
# -------------------------------------------------
class SendSlackRequest(BaseModel):
    mode: Optional[str] = "auto"
    preview: bool = False
    test: bool = False


class SaveRateRequest(BaseModel):
    # Validated by the rate store so bad values get our 400, not a 422
    projectId: Any = None
    rate: Any = None


# -------------------------------------------------
# Health
# -------------------------------------------------
@app.get("/health", tags=["Health"])
def health():
    return {"status": "ok"}


# -------------------------------------------------
# Dashboard
# -------------------------------------------------
@app.get("/api/stats", tags=["Dashboard"])
def get_stats(
    user: dict = Depends(require_org_user),
    service: ReportService = Depends(get_service),
):
    """Month / week aggregates for the dashboard."""
    return service.dashboard()


# -------------------------------------------------
# Slack
# -------------------------------------------------
@app.post("/api/send-slack", tags=["Slack"])
def send_slack(
    body: SendSlackRequest,
    user: dict = Depends(require_org_user),
    service: ReportService = Depends(get_service),
):
    """Build the bonus update and post it (or just return it with preview=true)."""
    logger.info(
        f"📣 Slack update requested by {user.get('email')} "
        f"(mode={body.mode}, preview={body.preview}, test={body.test})"
    )
    return service.send_report(mode=body.mode, preview=body.preview, test=body.test)


# -------------------------------------------------
# Rates
# -------------------------------------------------
@app.post("/api/save-rate", tags=["Rates"])
def save_rate(
    body: SaveRateRequest,
    user: dict = Depends(require_org_user),
    service: ReportService = Depends(get_service),
):
    """Set the hourly rate for one project (or the reserved global keys)."""
    logger.info(f"💲 Rate change by {user.get('email')}: {body.projectId} -> {body.rate}")
    return service.update_rate(body.projectId, body.rate)


if __name__ == "__main__":
    import os

    import uvicorn

    config = uvicorn.Config(
        app,
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        log_level="info",
    )
    server = uvicorn.Server(config)
    print("🚀 Bonus tracker API starting")
    server.run()
