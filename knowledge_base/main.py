"""FastAPI main application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text

from knowledge_base.core.config import settings
from knowledge_base.core.middleware import setup_middleware
from knowledge_base.core.exceptions import KnowledgeBaseError, http_status_for
from knowledge_base.db.base import Base
from knowledge_base.db.session import engine

from knowledge_base.api.questions import router as questions_router
from knowledge_base.api.answers import router as answers_router
from knowledge_base.api.activity import router as activity_router
from knowledge_base.api.analytics import router as analytics_router
from knowledge_base.api.users import router as users_router

import knowledge_base.models  # noqa: F401  (register tables on Base.metadata)

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("knowledge_base")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    logger.info("Starting %s API", settings.APP_NAME)
    Base.metadata.create_all(bind=engine)
    if not settings.SMTP_HOST:
        logger.warning("SMTP_HOST not set; reviewer notifications will only be logged")

    yield

    logger.info("Shutting down %s API", settings.APP_NAME)


app = FastAPI(
    title="Knowledge Base API",
    description="Question/answer knowledge base with role-gated moderation",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

setup_middleware(app)


@app.exception_handler(KnowledgeBaseError)
async def knowledge_base_exception_handler(request: Request, exc: KnowledgeBaseError):
    status_code = http_status_for(exc)
    logger.info("%s %s rejected: %s (%s)", request.method, request.url.path, exc.code, exc.message)
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, "code": exc.code},
    )


app.include_router(questions_router, prefix="/api")
app.include_router(answers_router, prefix="/api")
app.include_router(activity_router, prefix="/api")
app.include_router(analytics_router, prefix="/api")
app.include_router(users_router, prefix="/api")


@app.get("/")
async def root():
    return {
        "name": settings.APP_NAME,
        "version": "0.1.0",
        "docs": "/docs",
    }


@app.get("/api/health")
async def health():
    """Liveness plus a database round-trip."""
    db_ok = True
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception:
        logger.warning("Health check: database unreachable", exc_info=True)
        db_ok = False
    return {
        "status": "ok" if db_ok else "degraded",
        "database": "ok" if db_ok else "error",
    }
