# recruitbot/api/errors.py
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from recruitbot.core.exceptions import RecruitBotError

logger = logging.getLogger(__name__)


async def recruitbot_error_handler(request: Request, exc: RecruitBotError):
    if exc.status_code >= 500:
        logger.error(f"❌ {request.method} {request.url.path}: {exc}")
    content = {"error": exc.error, "message": str(exc)}
    if getattr(exc, "errors", None):
        content["errors"] = exc.errors
    return JSONResponse(status_code=exc.status_code, content=content)


async def unexpected_error_handler(request: Request, exc: Exception):
    logger.error(f"❌ Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"error": "Internal Server Error", "message": "Unexpected error"},
    )


def register_error_handlers(app: FastAPI):
    app.add_exception_handler(RecruitBotError, recruitbot_error_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)
