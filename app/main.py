import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from app.config import settings
from app.database import AsyncSessionLocal, init_db
from app.api import actions
from app.core.dependencies import get_scheduler
from app.services.action_store import ActionStore
from app.services.action_processor import ActionProcessor
from app.services.platform_client import PlatformClient
from app.services.scheduler import PassScheduler

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    store = ActionStore(AsyncSessionLocal)
    platform = PlatformClient(
        settings.PLATFORM_API_BASE_URL,
        settings.PLATFORM_CONSUMER_KEY,
        settings.PLATFORM_CONSUMER_SECRET,
        timeout=settings.PLATFORM_TIMEOUT_SECONDS
    )
    processor = ActionProcessor(
        store,
        platform,
        source_scan_limit=settings.SOURCE_SCAN_LIMIT,
        actions_per_source=settings.ACTIONS_PER_SOURCE,
        lookup_batch_limit=settings.LOOKUP_BATCH_LIMIT
    )
    scheduler = PassScheduler(
        processor.process_blocks,
        interval=settings.PROCESS_INTERVAL_SECONDS,
        single_flight=settings.SINGLE_FLIGHT_PASSES
    )

    app.state.action_store = store
    app.state.action_processor = processor
    app.state.scheduler = scheduler

    if settings.SCHEDULER_ENABLED:
        logger.info(f"Starting processing passes every {settings.PROCESS_INTERVAL_SECONDS}s")
        scheduler.start()
    try:
        yield
    finally:
        await scheduler.stop()
        await platform.aclose()

app = FastAPI(
    title="Block Queue API",
    description="Queues and carries out bulk block actions on behalf of authenticated accounts",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# CORS Middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(actions.router, prefix="/api", tags=["Actions"])

@app.get("/")
async def root():
    return {"message": "Block Queue API is running", "docs": "/docs"}

@app.get("/health")
async def health_check(scheduler: PassScheduler = Depends(get_scheduler)):
    return {
        "status": "healthy",
        "scheduler": scheduler.state.value,
        "timestamp": datetime.now(timezone.utc)
    }

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG
    )
