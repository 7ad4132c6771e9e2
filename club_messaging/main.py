import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Dict, Optional

from fastapi import Depends, FastAPI
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from club_messaging import config
from club_messaging.backends import get_backend
from club_messaging.database import AsyncSessionLocal, close_db, engine, get_db
from club_messaging.events import ChangeFeed
from club_messaging.listener import PostgresChangeListener
from club_messaging.routers.conversations import router as conversations_router
from club_messaging.routers.recipients import router as recipients_router
from club_messaging.store import SqlConversationStore

logger = logging.getLogger(__name__)

if not config.COMMIT_HASH and config.ENV_IS_PROD:
    raise ValueError("COMMIT_HASH is required for production environments")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup and shutdown."""
    backend = get_backend(config.MESSAGING_BACKEND)
    feed = ChangeFeed()
    app.state.change_feed = feed

    listener = None
    if config.CHANGE_FEED_ENABLED:
        listener = PostgresChangeListener(
            engine,
            feed,
            SqlConversationStore(AsyncSessionLocal, backend),
            backend,
            channel=config.CHANGE_FEED_CHANNEL,
        )
        await listener.start()

    yield

    if listener is not None:
        await listener.stop()
    feed.close()
    await close_db()


app = FastAPI(
    title="Club Messaging",
    description="Conversation directory, transcripts and read tracking for club dashboards",
    version=config.COMMIT_HASH or "dev",
    lifespan=lifespan,
)

app.include_router(
    conversations_router, prefix="/api/conversations", tags=["conversations"]
)
app.include_router(recipients_router, prefix="/api/recipients", tags=["recipients"])


@app.get("/health")
async def health_check(db: AsyncSession = Depends(get_db)) -> Dict[str, Optional[str]]:
    """Health check endpoint with database connectivity."""
    try:
        result = await db.execute(text("SELECT 1"))
        db_status = "connected" if result.scalar() == 1 else "error"
    except (SQLAlchemyError, OSError) as e:
        logger.warning("Health check could not reach the database: %s", e)
        db_status = "disconnected"

    return {
        "status": "healthy" if db_status == "connected" else "degraded",
        "database": db_status,
        "backend": config.MESSAGING_BACKEND,
        "environment": config.ENV,
        "version": app.version,
    }


# If run directly, start the server
if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=logging.INFO)
    uvicorn.run(app, host=config.APP_ADDR, port=config.APP_PORT)
