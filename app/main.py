import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.routes import api_router
from app.config import settings
from app.database import Base, engine, get_db
from app.logging_config import configure_logging
from app.services.exceptions import InfrastructureError

logger = logging.getLogger(__name__)


async def _init_db():
    """Retry DB connection and create tables. Runs in background so app can bind to PORT."""
    for attempt in range(30):
        try:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            logger.info("Database initialized successfully")
            return
        except (OSError, SQLAlchemyError) as e:
            wait = min(2**attempt, 30)
            logger.warning("DB init failed (attempt %d/30), retrying in %ds: %s", attempt + 1, wait, e)
            await asyncio.sleep(wait)
    logger.error("Database initialization failed after 30 attempts")


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    # Don't block startup on DB. Init DB in background.
    init_task = asyncio.create_task(_init_db())
    yield
    init_task.cancel()
    await engine.dispose()


app = FastAPI(
    title=settings.app_name,
    description="Account ledger service. Double-entry bookkeeping with balances derived from ledger entries.",
    lifespan=lifespan,
)
app.include_router(api_router, prefix="/api/v1")


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"detail": "Missing required fields", "errors": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(InfrastructureError)
async def infrastructure_error_handler(request: Request, exc: InfrastructureError):
    # Already logged with traceback where the unit of work rolled back
    return JSONResponse(status_code=500, content={"detail": "Server error"})


@app.get("/health")
async def health(db: AsyncSession = Depends(get_db)):
    """Ping the database."""
    try:
        await db.execute(text("SELECT 1"))
    except (OSError, SQLAlchemyError):
        logger.exception("Health check could not reach the database")
        return JSONResponse(status_code=503, content={"status": "unavailable"})
    return {"status": "ok"}
