import logging
import sys
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from core import db
from core.log import configure_logging
from core.settings import ConfigurationInvalid, get_settings
from rooms import router as rooms_router

logger = logging.getLogger(__name__)

LISTEN_HOST = "0.0.0.0"


@asynccontextmanager
async def lifespan(_: FastAPI):
    settings = get_settings()
    # Initialize the DB pool once per process.
    try:
        await db.init_pool(
            settings.database_url,
            min_size=settings.db_pool_min_size,
            max_size=settings.db_pool_max_size,
            command_timeout=settings.db_command_timeout,
        )
    except db.StorageUnavailable as exc:
        # Liveness must not depend on Postgres: start with a lazy pool instead.
        logger.warning("db_pool_eager_failed error=%s fallback=lazy", exc)
        await db.init_pool(
            settings.database_url,
            min_size=0,
            max_size=settings.db_pool_max_size,
            command_timeout=settings.db_command_timeout,
        )
    try:
        yield
    finally:
        await db.close_pool()


app = FastAPI(lifespan=lifespan)

app.include_router(rooms_router.router, tags=["rooms"])


@app.exception_handler(db.StorageUnavailable)
async def storage_unavailable_handler(request: Request, exc: db.StorageUnavailable) -> JSONResponse:
    logger.error("storage_unavailable path=%s error=%s", request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Storage is unavailable."},
    )


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}


@app.get("/")
def root() -> dict:
    return {"message": "rooms api"}


def run() -> None:
    """
    Validate configuration, then serve. Exits with status 1 before binding
    a port when the environment is invalid.
    """
    try:
        settings = get_settings()
    except ConfigurationInvalid as exc:
        configure_logging()
        logger.error("config_invalid error=%s", exc)
        sys.exit(1)

    configure_logging(settings.log_level)
    logger.info("server_start host=%s port=%s", LISTEN_HOST, settings.port)
    uvicorn.run(app, host=LISTEN_HOST, port=settings.port, log_config=None)


if __name__ == "__main__":
    run()
