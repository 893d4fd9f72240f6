import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from callsync.api import calls, dashboard, health, vapi
from callsync.core.config import settings
from callsync.core.database import Base, engine
from callsync.core.errors import register_exception_handlers
from callsync.core.logging import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(settings.log_level)
    # models must be imported before create_all sees them
    from callsync import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    logger.info("%s starting (%s)", settings.app_name, settings.environment)
    yield
    logger.info("%s shutting down", settings.app_name)


app = FastAPI(title=settings.app_name, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(health.router)
app.include_router(vapi.router)
app.include_router(calls.router)
app.include_router(dashboard.router)
