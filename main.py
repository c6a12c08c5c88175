# main.py
import logging
import datetime
from contextlib import asynccontextmanager
from fastapi import FastAPI

from recruitbot.api.deps import close_container, get_container
from recruitbot.api.errors import register_error_handlers
from recruitbot.api.routes import router
from recruitbot.core.config import settings

# Logging setup
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger("FastAPI")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifecycle.
    Builds the service container on startup and releases its HTTP clients on shutdown.
    """
    logger.info(f"🚀 Starting {settings.bot.name} recruitment API...")
    get_container()

    yield

    logger.info("🛑 Stopping application...")
    await close_container()
    logger.info("👋 API stopped")


app = FastAPI(
    title=f"{settings.bot.name} Recruitment Bot",
    version="1.0.0",
    lifespan=lifespan
)
register_error_handlers(app)
app.include_router(router)


@app.get("/health")
async def health_check():
    """Liveness probe"""
    return {
        "status": "ok",
        "timestamp": datetime.datetime.now(datetime.timezone.utc).isoformat(),
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000)
