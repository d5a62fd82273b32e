import json
import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from huddle.context import AppContext
from huddle.routers.rooms import create_rooms_router
from huddle.routers.testing import create_testing_router
from huddle.services.logging_setup import configure_logging
from huddle.services.room_config import parse_room_config
from huddle.services.room_janitor import RoomJanitor
from huddle.services.room_store import RoomStore

VERSION = "0.1.0"


def _load_config(config_path: str, logger: logging.Logger) -> dict:
    if not os.path.exists(config_path):
        logger.info("Boot: config_path missing=%s", config_path)
        return {}
    logger.info("Boot: loading config_path=%s", config_path)
    with open(config_path, "r", encoding="utf-8") as config_file:
        config = json.load(config_file)
    if not isinstance(config, dict):
        logger.warning("Boot: config at %s is not an object, ignoring", config_path)
        return {}
    logger.info("Boot: config keys=%s", sorted(config.keys()))
    return config


def create_app(
    cwd: Optional[str] = None,
    *,
    setup_logging: bool = True,
    start_janitor: bool = True,
) -> FastAPI:
    cwd = cwd or os.getcwd()
    ctx = AppContext(cwd, config_path=os.environ.get("HUDDLE_CONFIG"))
    if setup_logging:
        configure_logging(ctx.logs_dir)
    logger = logging.getLogger("huddle.boot")
    logger.info("Boot: starting create_app cwd=%s", cwd)
    ctx.ensure_dirs()

    config = _load_config(ctx.config_path, logger)
    room_config = parse_room_config(config)
    logger.info("Boot: room config=%s", room_config.to_dict())

    room_store = RoomStore(room_config)
    janitor = RoomJanitor(room_store)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if start_janitor:
            janitor.start()
        yield
        janitor.stop()

    app = FastAPI(title="Huddle", version=VERSION, lifespan=lifespan)
    app.state.ctx = ctx
    app.state.room_store = room_store
    app.state.janitor = janitor

    app.include_router(create_rooms_router(room_store))
    logger.info("Boot: rooms router mounted")
    app.include_router(create_testing_router(ctx))
    logger.info("Boot: testing router mounted")

    @app.get("/api/health")
    def health() -> dict:
        return {"status": "ok", "version": VERSION, "rooms": len(room_store.list_rooms())}

    logger.info("Boot: create_app complete")
    return app
