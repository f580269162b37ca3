from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from musicschool.api.contracts import router as contracts_router
from musicschool.api.errors import register_error_handlers
from musicschool.api.lessons import router as lessons_router
from musicschool.api.notifications import router as notifications_router
from musicschool.api.operations import router as operations_router
from musicschool.core.config import SETTINGS
from musicschool.core.logging import setup_logging
from musicschool.db.engine import lifespan_db
from musicschool.db.redis import lifespan_redis
from musicschool.middleware.metrics import MetricsMiddleware
from musicschool.middleware.request_context import RequestContextMiddleware

# Configure logging before anything else runs.
setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    # Teardown runs in reverse order: Redis first, then the database
    async with lifespan_db():
        async with lifespan_redis():
            yield


app = FastAPI(
    title="musicschool-contracts",
    lifespan=lifespan,
    docs_url="/docs" if SETTINGS.is_dev else None,
    redoc_url="/redoc" if SETTINGS.is_dev else None,
)

# Last added runs first: RequestContext -> Metrics -> route handler
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestContextMiddleware)

register_error_handlers(app)

app.include_router(operations_router)
app.include_router(contracts_router)
app.include_router(lessons_router)
app.include_router(notifications_router)

logger.info(
    "musicschool-contracts started  env=%s log_level=%s port=%d locale=%s",
    SETTINGS.app_env,
    SETTINGS.log_level,
    SETTINGS.port,
    SETTINGS.notification_locale,
)
