import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from turn_engine.api.routes import router
from turn_engine.catalog.singleton import get_catalog
from turn_engine.catalog.startup import init_catalog_for_app

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def _lifespan(_app: FastAPI):
    init_catalog_for_app()
    logger.info("games loaded: %s", ", ".join(get_catalog().ids()))
    yield


app = FastAPI(title="turn-engine", version="0.1.0", lifespan=_lifespan)
app.include_router(router)


@app.get("/info")
async def info() -> dict[str, str]:
    return {"name": "turn-engine", "version": "0.1.0"}
