import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.routes import api_router
from .services.engine import build_engine, close_engine, start_engine

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifespan: startup and shutdown events.

    Startup opens the Redis connection and starts the job worker pool;
    shutdown drains running jobs and closes the connection.
    """
    logger.info("Starting Haus Node workflow engine...")
    engine = build_engine()
    await start_engine(engine)
    app.state.engine = engine
    logger.info("Application startup complete")

    yield

    logger.info("Shutting down Haus Node workflow engine...")
    await close_engine(engine)
    app.state.engine = None
    logger.info("Application shutdown complete")

app = FastAPI(
    title="Haus Node",
    description="Workflow execution engine for node-based generative media pipelines: schedules a graph of AI provider nodes, runs them in order, meters credits and streams job events.",
    lifespan=lifespan
)

# Use regex to allow all Vercel domains and localhost
app.add_middleware(
    CORSMiddleware,
    allow_origins=[],  # Empty list - use regex instead
    allow_origin_regex=os.getenv(
        "CORS_ORIGIN_REGEX",
        r"^https:\/\/.*\.vercel\.app$|^http:\/\/localhost:\d+$|^http:\/\/127\.0\.0\.1:\d+$",
    ),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
    expose_headers=["*"],
)

app.include_router(api_router)
