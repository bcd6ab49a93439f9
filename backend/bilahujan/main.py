# backend/bilahujan/main.py
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from .alerts import AlertDispatcher
from .api import router as api_router
from .db_helpers import ZoneRepository, sync_from_repository
from .healthcheck import router as health_router
from .live_refresh import WeatherClassifier
from .logging_setup import logger
from .persist_helper import BackgroundWriter
from .zone_store import ZoneStore


def create_app(store: Optional[ZoneStore] = None,
               repository: Optional[ZoneRepository] = None,
               classifier: Optional[WeatherClassifier] = None) -> FastAPI:
    store = store if store is not None else ZoneStore()
    writer = None
    # a store that already brings a writer keeps it
    if repository is not None and store.writer is None:
        writer = BackgroundWriter(repository.save_zone)
        store.writer = writer
    dispatcher = AlertDispatcher()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if repository is not None:
            sync_from_repository(store, repository)
        dispatcher.attach(store)
        logger.info(f"[main] BilaHujan backend started with {len(store)} zones")
        yield
        dispatcher.detach()
        if writer is not None:
            store.writer = None
            writer.shutdown()
        logger.info("[main] BilaHujan backend stopped")

    app = FastAPI(title="BilaHujan - Flood Zone API", lifespan=lifespan)
    app.state.store = store
    app.state.repository = repository
    app.state.classifier = classifier
    app.state.dispatcher = dispatcher
    app.include_router(health_router)
    app.include_router(api_router)

    @app.get("/")
    def root():
        return {"status": "bilahujan backend running"}

    return app


app = create_app(repository=ZoneRepository())
