"""Point ledger service - FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from pointledger.config import settings
from pointledger.database import init_db
from pointledger.routers import bonuses, penalties, students

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle."""
    # Create data directory if needed
    settings.DATA_DIR.mkdir(parents=True, exist_ok=True)
    # Initialize database tables
    await init_db()
    yield


app = FastAPI(title="Point Ledger", version="0.1.0", lifespan=lifespan)

# Routers
app.include_router(students.router)
app.include_router(penalties.router)
app.include_router(bonuses.router)


@app.get("/health")
async def health():
    return {"status": "ok"}
