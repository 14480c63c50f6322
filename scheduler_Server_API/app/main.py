# main.py
# Description: FastAPI application serving the scheduler load / sync API.
#
# Imports
import logging
import sys
from contextlib import asynccontextmanager
#
# 3rd-party Libraries
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
#
# Local Imports
from scheduler_Server_API.app.api.v1.API_Deps.Store_Deps import close_shared_store
from scheduler_Server_API.app.api.v1.endpoints.scheduler_sync import router as scheduler_router
from scheduler_Server_API.app.core.config import ALLOWED_ORIGINS, settings, sync_engine_config
#
########################################################################################################################
#
# Functions:


# --- Loguru Configuration with Intercept Handler ---

class InterceptHandler(logging.Handler):
    def emit(self, record):
        # Get corresponding Loguru level if it exists
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find caller from where originated the logged message
        frame, depth = logging.currentframe(), 2
        while frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


logger.remove()
logger.add(
    sys.stderr,
    level=settings["LOG_LEVEL"],
    format="<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
    colorize=True,
)

for logger_name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
    mod_logger = logging.getLogger(logger_name)
    mod_logger.handlers = [InterceptHandler()]
    mod_logger.propagate = False


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        f"Starting scheduler sync server: backend={settings['STORE_BACKEND']}, "
        f"mode={settings['APP_MODE_STR']}, engine={sync_engine_config.to_dict()}"
    )
    yield
    logger.info("App Shutdown: Closing shared row store")
    await close_shared_store()


app = FastAPI(
    title="Scheduler Sync API",
    version="0.1.0",
    description="Load and sync endpoints for scheduler projects backed by a row store",
    lifespan=lifespan,
)

origins = ALLOWED_ORIGINS if ALLOWED_ORIGINS else ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
async def root():
    return {"message": "Scheduler sync server is running."}


@app.get("/health")
async def health():
    return {"status": "healthy", "store_backend": settings["STORE_BACKEND"]}


app.include_router(scheduler_router, prefix="/api/v1/scheduler", tags=["scheduler"])

#
# End of main.py
########################################################################################################################
