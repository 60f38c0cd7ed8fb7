import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError

logger = logging.getLogger(__name__)


class WardrobeError(Exception):
    """Base error rendered as ``{"error": message, ...}`` with ``status_code``."""

    status_code = 500

    def __init__(self, message: str, details: Optional[str] = None, **extra: Any):
        super().__init__(message)
        self.message = message
        self.details = details
        self.extra = extra

    def to_content(self) -> Dict[str, Any]:
        content: Dict[str, Any] = {"error": self.message}
        if self.details:
            content["details"] = self.details
        content.update(self.extra)
        return content


class Unauthorized(WardrobeError):
    status_code = 401


class NotFound(WardrobeError):
    status_code = 404


class ValidationFailed(WardrobeError):
    status_code = 400


class Conflict(WardrobeError):
    status_code = 409


class UpstreamError(WardrobeError):
    """A third-party dependency (image host, AI service, ...) failed."""

    status_code = 502


class ServiceUnavailable(UpstreamError):
    status_code = 503


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(WardrobeError)
    async def wardrobe_error_handler(request: Request, exc: WardrobeError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s (%s)", request.method, request.url.path, exc.message, exc.details)
        return JSONResponse(status_code=exc.status_code, content=exc.to_content())

    @app.exception_handler(PyMongoError)
    async def database_error_handler(request: Request, exc: PyMongoError):
        logger.error("database error on %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=503, content={"error": "Database error", "details": str(exc)})
