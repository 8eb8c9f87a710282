"""
tallytrack API application.

create_app() wires the database, services, middleware and routes into a
FastAPI instance. Run with `python app.py serve`.
"""

import time
import uuid
from typing import Optional

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import RequestResponseEndpoint

from api.errors import register_exception_handlers
from api.routes import router
from common.config import TallyConfig
from common.logger import get_logger
from services.stats_service import StatsService
from services.task_service import TaskService
from services.timer_coordinator import TimerCoordinator
from storage.db import Database

log = get_logger("api")

API_VERSION = "0.1.0"


async def request_id_middleware(
    request: Request, call_next: RequestResponseEndpoint
) -> Response:
    """Tag each request with an ID and log its outcome."""
    request_id = str(uuid.uuid4())
    request.state.request_id = request_id
    started = time.perf_counter()

    response = await call_next(request)

    response.headers["X-Request-ID"] = request_id
    log.debug(
        "%s %s -> %s (%.1f ms) [%s]",
        request.method,
        request.url.path,
        response.status_code,
        (time.perf_counter() - started) * 1000,
        request_id,
    )
    return response


def create_app(
    config: Optional[TallyConfig] = None,
    db: Optional[Database] = None,
    clock=None,
) -> FastAPI:
    """
    Create and configure the application.

    Args:
        config: settings; defaults are used when omitted
        db: an existing Database (tests pass an in-memory one)
        clock: time source shared by every service
    """
    config = config or TallyConfig()
    if db is None:
        db = Database(config.db.path, busy_timeout_s=config.db.busy_timeout_s)
    db.init_schema()

    app = FastAPI(
        title="tallytrack API",
        description="Task and project time tracking with exclusive timers.",
        version=API_VERSION,
    )
    app.state.config = config
    app.state.db = db
    app.state.coordinator = TimerCoordinator(db, clock=clock)
    app.state.stats = StatsService(db, clock=clock)
    app.state.tasks = TaskService(db, clock=clock)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.api.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.middleware("http")(request_id_middleware)
    register_exception_handlers(app)
    app.include_router(router)

    log.info("API ready (database %s)", db.db_path)
    return app
