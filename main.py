"""
Account auth service — application entry point.
"""

from __future__ import annotations

import logging
import sys

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.middleware import register_exception_handlers, register_middleware
from auth.dependencies import AccessGate
from auth.jwt import TokenService
from auth.password import PasswordHasher
from auth.routes import router as auth_router
from auth.service import AuthService
from auth.store import AccountStore, SqlAccountStore
from config.settings import Settings, config
from database.session import build_engine, build_session_factory, init_models

logging.basicConfig(
    level=logging.DEBUG if config.debug else logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(name)s — %(message)s",
    stream=sys.stdout,
)
for _noisy in ("sqlalchemy.engine", "asyncio"):
    logging.getLogger(_noisy).setLevel(logging.WARNING)
logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    store: AccountStore | None = None,
) -> FastAPI:
    """
    Compose hasher, token service, store and Auth Core into an app.

    When ``store`` is omitted a ``SqlAccountStore`` is built from
    ``settings.database_url`` and its table is created on startup.
    """
    settings = settings or config

    app = FastAPI(
        title="Account Auth Service",
        version="1.0.0",
        description="Registration, login and bearer-token profile updates.",
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_middleware(app)
    register_exception_handlers(app)

    engine = None
    if store is None:
        engine = build_engine(settings.database_url)
        store = SqlAccountStore(build_session_factory(engine))

    tokens = TokenService(settings.jwt_secret, settings.jwt_expiry_seconds)
    app.state.settings = settings
    app.state.access_gate = AccessGate(tokens)
    app.state.auth_service = AuthService(
        PasswordHasher(settings.bcrypt_rounds),
        tokens,
        store,
        default_access=settings.default_access,
    )

    # Routes
    app.include_router(auth_router, prefix="/auth")

    @app.on_event("startup")
    async def on_startup():
        if settings.uses_default_secret:
            logger.warning(
                "JWT_SECRET is not set; tokens are signed with the built-in "
                "default secret. Configure JWT_SECRET before deploying."
            )
        if engine is not None:
            logger.info("Ensuring account table exists…")
            await init_models(engine)
        logger.info("Application ready to accept requests.")

    @app.on_event("shutdown")
    async def on_shutdown():
        if engine is not None:
            await engine.dispose()

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=config.host,
        port=config.port,
        reload=config.debug,
        log_level="debug" if config.debug else "info",
    )
