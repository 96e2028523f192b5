import base64

import structlog
from fastapi import APIRouter, Depends

from filter_relay.config import settings
from filter_relay.core.exceptions import AppError, UpstreamFailure
from filter_relay.schemas.generate import GenerateResponse
from filter_relay.services.image_editor import ImageEditor, get_image_editor

logger = structlog.get_logger()

router = APIRouter()

# 1x1 black PNG
TEST_IMAGE_PNG = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mP8z8BQDwAEhQGAhKmMIQAAAABJRU5ErkJggg=="
)
TEST_PROMPT = "A cute baby panda wearing a hat"


def _require_debug() -> None:
    if not settings.debug:
        raise AppError(status_code=404, error="Not found")


@router.get("/test-image", response_model=GenerateResponse, dependencies=[Depends(_require_debug)])
async def test_image(editor: ImageEditor = Depends(get_image_editor)) -> GenerateResponse:
    try:
        result = await editor.edit(TEST_IMAGE_PNG, "test_image.png", "image/png", TEST_PROMPT)
    except UpstreamFailure:
        raise
    except Exception as e:
        logger.error("test_image_failed", error=str(e))
        raise UpstreamFailure(str(e)) from e
    return GenerateResponse(image_url=result.image_url)
