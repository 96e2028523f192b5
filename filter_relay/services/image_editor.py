from dataclasses import dataclass
from typing import Any

import structlog
from openai import AsyncOpenAI

from filter_relay.config import settings
from filter_relay.core.exceptions import UpstreamFailure

logger = structlog.get_logger()

NO_IMAGE_DATA = "No image data returned from image edit API"

_editor: "ImageEditor | None" = None


@dataclass(frozen=True)
class EditResult:
    image_url: str

    @property
    def is_inline(self) -> bool:
        return self.image_url.startswith("data:")


def extract_result(response: Any) -> EditResult:
    """Pick the edited image out of an ``images.edit`` response.

    Inline base64 wins over a hosted URL; a response with neither is an
    upstream failure.
    """
    data = getattr(response, "data", None) or []
    first = data[0] if data else None
    b64_json = getattr(first, "b64_json", None)
    if b64_json:
        return EditResult(image_url=f"data:image/png;base64,{b64_json}")
    url = getattr(first, "url", None)
    if url:
        return EditResult(image_url=url)
    raise UpstreamFailure(NO_IMAGE_DATA)


class ImageEditor:
    def __init__(self, client: AsyncOpenAI, model: str) -> None:
        self._client = client
        self.model = model

    async def edit(self, image: bytes, filename: str, mime_type: str, prompt: str) -> EditResult:
        logger.info("image_edit_requested", model=self.model, filename=filename, size=len(image))
        response = await self._client.images.edit(
            model=self.model,
            image=(filename, image, mime_type),
            prompt=prompt,
        )
        result = extract_result(response)
        logger.info("image_edit_completed", inline=result.is_inline)
        return result

    async def aclose(self) -> None:
        await self._client.close()


def get_image_editor() -> ImageEditor:
    global _editor
    if _editor is None:
        client = AsyncOpenAI(api_key=settings.openai_api_key or None)
        _editor = ImageEditor(client, settings.openai_model)
    return _editor


async def close_editor() -> None:
    global _editor
    if _editor:
        await _editor.aclose()
        _editor = None
