"""
FastAPI application factory.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .core.config import get_settings
from .core.database import init_db, close_db
from .core.errors import InputRejected, PersistenceFailure, RateLimited, UpstreamModelFailure
from .core.redis import close_redis
from .api.router import router

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title="Aisle",
        description="Wedding planning conversation engine",
        version="1.0.0",
        docs_url="/docs" if settings.env == "development" else None,
        redoc_url="/redoc" if settings.env == "development" else None,
    )

    # ── CORS ─────────────────────────────────────────────────────
    origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── Errors ───────────────────────────────────────────────────
    @app.exception_handler(InputRejected)
    async def on_input_rejected(request: Request, exc: InputRejected):
        return JSONResponse(status_code=400, content={"error": str(exc)})

    @app.exception_handler(RateLimited)
    async def on_rate_limited(request: Request, exc: RateLimited):
        return JSONResponse(
            status_code=429,
            content={"error": str(exc)},
            headers={"Retry-After": str(exc.retry_after)},
        )

    @app.exception_handler(UpstreamModelFailure)
    async def on_model_failure(request: Request, exc: UpstreamModelFailure):
        logger.error("Turn aborted, model unavailable: %s", exc)
        return JSONResponse(status_code=502, content={"error": "Failed to get response"})

    @app.exception_handler(PersistenceFailure)
    async def on_persistence_failure(request: Request, exc: PersistenceFailure):
        return JSONResponse(status_code=500, content={"error": str(exc)})

    # ── Startup ──────────────────────────────────────────────────
    @app.on_event("startup")
    async def on_startup():
        logging.basicConfig(
            level=getattr(logging, settings.log_level.upper(), logging.INFO),
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        )
        logger.info("Starting Aisle (env=%s)", settings.env)

        await init_db()

        from .tools.registry import init_tools
        init_tools()

        from .core.flags import get_flags
        flags = get_flags()
        logger.info(
            "Flags: redis=%s rate_limit=%s llm=%s fuzzy_match=%s",
            flags.use_redis, flags.use_rate_limit, flags.llm_provider, settings.fuzzy_match_policy,
        )
        logger.info("Aisle is ready")

    # ── Shutdown ─────────────────────────────────────────────────
    @app.on_event("shutdown")
    async def on_shutdown():
        from .services.llm import close_client
        await close_client()
        await close_db()
        await close_redis()
        logger.info("Aisle shut down")

    # ── Routes ───────────────────────────────────────────────────
    app.include_router(router)

    return app
