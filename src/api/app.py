"""FastAPI application factory"""

import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlmodel import SQLModel

import src.domain  # noqa: F401  registers tables on SQLModel.metadata
from src.api.error import ClientError
from src.api.routes import points, transfers

logger = logging.getLogger(__name__)


def create_app(config) -> FastAPI:
    logging.basicConfig(
        level=getattr(logging, str(config.LOG_LEVEL).upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        from src.depends import engine

        if config.AUTO_CREATE_TABLES:
            async with engine.begin() as conn:
                await conn.run_sync(SQLModel.metadata.create_all)
            logger.info("Database tables ensured")
        yield
        await engine.dispose()

    app = FastAPI(
        title="Points Transfer Service",
        version="0.1.0",
        description="Point balances, transfers and an append-only point ledger",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=config.CORS_ALLOW_CREDENTIALS,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Idempotency-Key"],
    )

    if config.ENABLE_LOGGING_MIDDLEWARE:
        @app.middleware("http")
        async def log_requests(request: Request, call_next):
            start = time.time()
            response = await call_next(request)
            duration_ms = int((time.time() - start) * 1000)
            logger.info(
                f"{request.method} {request.url.path} -> {response.status_code} ({duration_ms}ms)"
            )
            return response

    @app.exception_handler(ClientError)
    async def client_error_handler(request: Request, exc: ClientError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_body())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        first = exc.errors()[0] if exc.errors() else {}
        field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = f"{field}: {first.get('msg', 'invalid value')}" if field else "Invalid request parameters"
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": {"code": "VALIDATION_ERROR", "message": message}},
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": {"code": "INTERNAL_ERROR", "message": "Internal server error"}},
        )

    @app.get("/", tags=["System"])
    async def root():
        """Root endpoint."""
        return {
            "message": app.title,
            "version": app.version,
            "docs": "/docs",
        }

    app.include_router(transfers.router, prefix=config.API_PREFIX)
    app.include_router(points.router, prefix=config.API_PREFIX)

    return app
