from __future__ import annotations  # FastAPI server hosting live assessment sessions

import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.routes import router as http_router
from api.socket import router as socket_router
from config.settings import Settings, settings as default_settings
from grading import RuleTable, load_rule_table
from realtime import BroadcastRouter
from services.coordinator import SessionCoordinator
from services.sessions import Clock, SessionStore
from services.timer import utc_now


logger = logging.getLogger(__name__)


def build_coordinator(  # Wire store, router and rule table into one coordinator
    config: Settings,
    table: Optional[RuleTable] = None,
    clock: Clock = utc_now,
) -> SessionCoordinator:
    table = table or load_rule_table(config.RULES_PATH)
    store = SessionStore(
        table,
        instruction_seconds=config.INSTRUCTION_SECONDS,
        coding_seconds=config.CODING_SECONDS,
        clock=clock,
    )
    return SessionCoordinator(store, BroadcastRouter(), table, max_score=config.MAX_SCORE)


def create_app(  # Build the ASGI app with its own session registry
    config: Optional[Settings] = None,
    coordinator: Optional[SessionCoordinator] = None,
) -> FastAPI:
    config = config or default_settings
    app = FastAPI(title="Live Debugging Assessment API")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[config.FRONTEND_URL],
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )
    app.state.coordinator = coordinator or build_coordinator(config)
    app.include_router(http_router)
    app.include_router(socket_router)
    logger.info(
        "Assessment server ready with %d challenge(s), %d variant(s)",
        len(app.state.coordinator.table.challenges),
        len(app.state.coordinator.table.variants),
    )
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("api_server:app", host=default_settings.HOST, port=default_settings.PORT)
