# vaultnote/main.py

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from vaultnote.api import messages
from vaultnote.core.config import Settings, get_settings
from vaultnote.core.crypto import MessageCodec
from vaultnote.core.errors import VaultNoteError
from vaultnote.core.message import LifecycleEngine
from vaultnote.core.rate_limit import limiter
from vaultnote.infra.database import create_db_engine, make_session_factory
from vaultnote.infra.health import check_requirements
from vaultnote.infra.init_db import init_db
from vaultnote.services.janitor import Janitor
from vaultnote.services.message_store import MessageStore
from vaultnote.utils.logger import setup_logger

logger = logging.getLogger(__name__)

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Cache-Control": "no-store",
}


def create_app(settings: Optional[Settings] = None,
               codec: Optional[MessageCodec] = None) -> FastAPI:
    settings = settings or get_settings()
    setup_logger(settings.log_level)

    db_engine = create_db_engine(settings.database_url, timeout=settings.store_timeout_seconds)
    init_db(db_engine)

    store = MessageStore(make_session_factory(db_engine))
    codec = codec or MessageCodec.from_secret(settings.require_key())
    janitor = Janitor(
        store,
        consumed_grace_seconds=settings.consumed_grace_seconds,
        cleanup_chance=settings.cleanup_chance,
    )
    lifecycle = LifecycleEngine.from_settings(settings, store, codec, janitor=janitor)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if settings.janitor_interval_seconds > 0:
            janitor.start(settings.janitor_interval_seconds)
        yield
        janitor.stop(timeout=5)
        db_engine.dispose()

    app = FastAPI(
        title="VaultNote",
        version="1.0.0",
        description="Read-once encrypted message drop",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.db_engine = db_engine
    app.state.lifecycle = lifecycle
    app.state.janitor = janitor
    app.state.limiter = limiter

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def security_headers(request: Request, call_next):
        response = await call_next(request)
        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        return response

    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    @app.exception_handler(VaultNoteError)
    async def internal_error_handler(request: Request, exc: VaultNoteError):
        # Details were logged where the error was raised
        logger.error("Request %s %s failed: %s", request.method, request.url.path,
                     type(exc).__name__)
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})

    # Register routers
    app.include_router(messages.router, tags=["Messages"])

    @app.get("/health")
    def health_check():
        report = check_requirements(db_engine, settings)
        return JSONResponse(status_code=200 if report.ok else 503, content=report.as_dict())

    return app


def main() -> None:
    import uvicorn

    uvicorn.run("vaultnote.main:create_app", factory=True, host="0.0.0.0", port=8000)


if __name__ == "__main__":
    main()
