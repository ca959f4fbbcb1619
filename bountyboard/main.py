"""FastAPI application factory."""
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, List

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from bountyboard.api.v1 import api_router
from bountyboard.config import settings
from bountyboard.core.achievement_catalog import get_catalog
from bountyboard.utils.cache import achievement_cache
from bountyboard.utils.exceptions import ErrorKind, LedgerError, ledger_error_handler


tags_metadata: List[dict[str, str]] = [
    {"name": "bounties", "description": "Register for, complete and cancel bounties."},
    {"name": "participations", "description": "Participation history and berry balance."},
    {"name": "claims", "description": "Spend berries on rewards and validate codes."},
    {"name": "achievements", "description": "Derived achievements and the leaderboard."},
]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    # Load the catalog eagerly so a malformed file fails start-up, not the first request.
    catalog = get_catalog()
    logger.info(
        "BountyBoard starting",
        cache_backend=achievement_cache.stats().backend,
        points_tiers=len(catalog.points_tiers),
        lock_timeout_ms=settings.LOCK_TIMEOUT_MS,
    )
    yield


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report malformed payloads in the same envelope as ledger errors."""

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "detail": {
                "code": "INVALID_REQUEST",
                "kind": ErrorKind.VALIDATION.value,
                "message": "Validation failed",
                "details": {"errors": jsonable_encoder(exc.errors())},
            }
        },
    )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance."""

    app = FastAPI(
        title=settings.PROJECT_NAME,
        description="Bounty and reward economy with derived achievements.",
        version="0.1.0",
        openapi_tags=tags_metadata,
        docs_url=f"{settings.API_V1_STR}/docs",
        redoc_url=f"{settings.API_V1_STR}/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.BACKEND_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(LedgerError, ledger_error_handler)

    app.include_router(api_router, prefix=settings.API_V1_STR)
    return app


app = create_app()
