import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .. import config
from .routes import router, get_service, close_service

logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


async def _periodic_cleanup(interval_seconds: float):
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            removed = await asyncio.to_thread(get_service().cleanup_expired)
            logger.info(f"[Cache] Periodic cleanup removed {removed} entries")
        except Exception as e:
            logger.error(f"[Cache] Periodic cleanup failed: {e}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    cleanup_task = None
    if config.CACHE_CLEANUP_INTERVAL_HOURS > 0:
        cleanup_task = asyncio.create_task(_periodic_cleanup(config.CACHE_CLEANUP_INTERVAL_HOURS * 3600))
    try:
        yield
    finally:
        if cleanup_task is not None:
            cleanup_task.cancel()
        close_service()


app = FastAPI(title="SlangBridge API", version="0.1.0", lifespan=lifespan)

# CORS Configuration - Restrict to known origins
ALLOWED_ORIGINS = [o.strip() for o in config.CORS_ORIGINS if o.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type"],
    expose_headers=["x-cache-hit", "x-cache-key"],
)

app.include_router(router)


@app.get("/")
async def root():
    return {"message": "SlangBridge API is running"}


def run():
    import uvicorn

    uvicorn.run("slangbridge.web.main:app", host=config.HOST, port=config.PORT, reload=config.DEBUG)
