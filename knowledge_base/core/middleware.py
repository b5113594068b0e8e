"""CORS and per-request logging middleware."""

import time
import uuid
import logging

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from knowledge_base.core.config import settings
from knowledge_base.core.security import USER_ID_HEADER

logger = logging.getLogger("knowledge_base")


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Tag each request with an id and log who called what."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-Id") or str(uuid.uuid4())
        request.state.request_id = request_id
        start_time = time.perf_counter()

        response: Response = await call_next(request)

        duration = round((time.perf_counter() - start_time) * 1000, 2)
        response.headers["X-Request-Id"] = request_id
        response.headers["X-Response-Time-Ms"] = str(duration)

        logger.info(
            "[%s] %s %s -> %s (user=%s, %sms)",
            request_id[:8],
            request.method,
            request.url.path,
            response.status_code,
            request.headers.get(USER_ID_HEADER, "-"),
            duration,
        )
        return response


def setup_middleware(app: FastAPI) -> None:
    """Install CORS and request logging."""
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE"],
        allow_headers=["Content-Type", USER_ID_HEADER, "X-Request-Id"],
        expose_headers=["X-Request-Id"],
    )

    app.add_middleware(RequestIdMiddleware)
