from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from filter_relay.api.router import router
from filter_relay.config import settings
from filter_relay.core.exceptions import register_exception_handlers
from filter_relay.core.logging import RequestIdMiddleware, configure_logging
from filter_relay.services import http_client, image_editor, object_store, token_registry, uploads

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    configure_logging(settings.log_level, debug=settings.debug)
    uploads.ensure_uploads_dir()
    # Clients are built once here so bad credentials fail startup, not the first request.
    http_client.get_http_client()
    object_store.get_stage_store()
    image_editor.get_image_editor()
    token_registry.get_token_registry()
    logger.info("startup_complete", app=settings.app_name, uploads_path=settings.uploads_path)
    try:
        yield
    finally:
        await image_editor.close_editor()
        object_store.close_stage_store()
        await http_client.close_client()
        logger.info("shutdown_complete")


app = FastAPI(title=settings.app_name, debug=settings.debug, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)
app.add_middleware(RequestIdMiddleware)

register_exception_handlers(app)

app.include_router(router)


def run() -> None:
    import uvicorn

    uvicorn.run("filter_relay.main:app", host=settings.host, port=settings.port, log_level=settings.log_level)


if __name__ == "__main__":
    run()
