"""
Primary FastAPI application entry point
"""
import asyncio
import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api import deps
from app.api.api import api_router
from app.core.config import settings
from app.core.errors import problem_exception_handler, unhandled_exception_handler, validation_exception_handler
from app.data_access.database import init_models
from app.workers.image_worker import ImageTaskWorker, build_queues

# Configure logging
logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    stream=sys.stdout,
)
logger = logging.getLogger(__name__)
logger.info("Starting MoviePass API server...")


async def _start_worker() -> tuple:
    if deps.redis_client is None or deps.storage_client is None:
        logger.error("RUN_QUEUE_WORKER is set but Redis or object storage is unavailable; worker not started.")
        return None, None
    upload_queue, delete_queue = build_queues(deps.redis_client, settings)
    worker = ImageTaskWorker(
        deps.session_factory,
        deps.storage_client,
        upload_queue,
        delete_queue,
        poll_timeout=settings.QUEUE_POLL_TIMEOUT_SECONDS,
    )
    await worker.recover()
    stop_event = asyncio.Event()
    return asyncio.create_task(worker.run(stop_event)), stop_event


# Define application lifespan
@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info("Application startup: Initializing connections...")
    await deps.initialize_connections()
    if settings.DATABASE_CREATE_TABLES:
        await init_models(deps.engine)

    worker_task, stop_event = None, None
    if settings.RUN_QUEUE_WORKER:
        worker_task, stop_event = await _start_worker()
    yield
    # Shutdown
    if worker_task is not None:
        logger.info("Application shutdown: Stopping image worker...")
        stop_event.set()
        await worker_task
    logger.info("Application shutdown: Closing connections...")
    await deps.close_connections()

# Create FastAPI application
app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    docs_url=f"{settings.API_V1_STR}/docs",
    redoc_url=f"{settings.API_V1_STR}/redoc",
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    lifespan=lifespan
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Every error leaves the API as a problem document
app.add_exception_handler(StarletteHTTPException, problem_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

# Include routers
app.include_router(api_router, prefix=settings.API_V1_STR)

# Root endpoint
@app.get("/", status_code=status.HTTP_200_OK)
async def root():
    """Root endpoint to confirm the API is running."""
    return {"message": f"Welcome to {settings.PROJECT_NAME}"}

# For local development
if __name__ == "__main__":
    import uvicorn
    uvicorn.run("app.server:app", host="0.0.0.0", port=8080, reload=True)
