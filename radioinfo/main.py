from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request

from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from radioinfo import __version__
from radioinfo.config import setup_logging
from radioinfo.services import get_refresh_controller, refresh_scheduler

from radioinfo.routers import main_router


setup_logging()
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events"""
    logger.info("Starting RadioInfo...")

    controller = get_refresh_controller()
    try:
        refresh_scheduler.start(controller)
        logger.info("Scheduler started successfully")
    except Exception as e:
        logger.error(f"Failed to start RadioInfo: {e}", exc_info=True)
        raise

    yield

    logger.info("Shutting down RadioInfo...")

    try:
        refresh_scheduler.shutdown()
        await controller.aclose()
    except Exception as e:
        logger.error(f"Error during shutdown: {e}", exc_info=True)

    logger.info("RadioInfo stopped")


app = FastAPI(
    title="RadioInfo",
    version=__version__,
    lifespan=lifespan
)

app.include_router(main_router)

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Log validation errors with details"""
    logger.error(f"Validation error for {request.method} {request.url.path}")
    logger.error(f"Validation details: {exc.errors()}")

    errors = []
    for error in exc.errors():
        errors.append({
            "type": error.get("type"),
            "loc": error.get("loc"),
            "msg": error.get("msg"),
            "input": str(error.get("input", ""))[:100]
        })

    return JSONResponse(
        status_code=422,
        content={
            "detail": errors
        }
    )
