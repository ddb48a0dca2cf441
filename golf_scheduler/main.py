"""
Golf league scheduling API
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from golf_scheduler.config import CORS_ORIGINS, LOG_LEVEL
from golf_scheduler.database import DATABASE_URL, describe_database_url, dispose_engine, init_db
from golf_scheduler.logging_config import setup_logging
from golf_scheduler.routes import availability, pairings, regeneration, schedules

setup_logging(level=LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("DB target: %s", describe_database_url(DATABASE_URL))
    try:
        await init_db()
    except Exception:
        logger.exception("init_db failed")
        raise

    yield

    try:
        await dispose_engine()
    except Exception:
        logger.exception("Failed to dispose DB engine")


app = FastAPI(title="Golf League Scheduler API", lifespan=lifespan)

_cors_origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
_cors_origins.extend(CORS_ORIGINS)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(schedules.router, prefix="/api", tags=["schedules"])
app.include_router(regeneration.router, prefix="/api", tags=["regeneration"])
app.include_router(availability.router, prefix="/api", tags=["availability"])
app.include_router(pairings.router, prefix="/api", tags=["pairings"])


@app.get("/health")
async def health_check():
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
