"""Upload orchestration: validate, stage, edit, notify, and always clean up.

Every request owns at most one local temp file and one staged object. Both
are recorded on the ``RequestContext`` as soon as they exist, and
``GenerationPipeline._finalize`` removes them on every exit path, including
validation failures, upstream errors and cancellation.
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO

import structlog

from filter_relay.core.context import RequestContext
from filter_relay.core.exceptions import BadRequestError, ObjectNotFound, UpstreamFailure
from filter_relay.services import uploads
from filter_relay.services.image_editor import EditResult, ImageEditor, get_image_editor
from filter_relay.services.notifications import NotificationDispatcher, get_dispatcher
from filter_relay.services.object_store import ObjectStageStore, get_stage_store
from filter_relay.services.prompts import resolve_prompt

logger = structlog.get_logger()

INVALID_UPLOAD = "Image not uploaded or invalid format"


@dataclass
class UploadRequest:
    filter_name: str | None
    image: BinaryIO | None
    original_filename: str | None = None
    content_type: str | None = None
    notify_token: str | None = None
    notify_user_id: str | None = None


def _is_image_content_type(content_type: str | None) -> bool:
    # Clients that omit the part header are judged by the file contents alone.
    return content_type is None or content_type.startswith("image/")


class GenerationPipeline:
    def __init__(
        self,
        store: ObjectStageStore,
        editor: ImageEditor,
        dispatcher: NotificationDispatcher | None = None,
    ) -> None:
        self._store = store
        self._editor = editor
        self._dispatcher = dispatcher

    async def run(self, ctx: RequestContext, upload: UploadRequest) -> EditResult:
        if upload.image is None or not _is_image_content_type(upload.content_type):
            logger.warning("upload_rejected", content_type=upload.content_type)
            raise BadRequestError(INVALID_UPLOAD)

        async with self._owned_artifacts(ctx):
            upload_path = uploads.reserve_upload_path(upload.original_filename)
            ctx.upload_path = upload_path
            mime_type = await self._accept(upload_path, upload.image)

            prompt = resolve_prompt(upload.filter_name)
            logger.info("generation_started", filter=upload.filter_name, caller=ctx.caller.label)

            result = await self._edit(ctx, upload_path, prompt, mime_type)
            await self._notify(upload, result)
            return result

    async def _accept(self, upload_path: Path, image: BinaryIO) -> str:
        try:
            await uploads.write_upload(image, upload_path)
            return await asyncio.to_thread(uploads.validate_image, upload_path)
        except uploads.InvalidUpload as e:
            logger.warning("upload_invalid", error=str(e))
            raise BadRequestError(INVALID_UPLOAD) from e
        except OSError as e:
            logger.error("upload_write_failed", path=str(upload_path), error=str(e))
            raise UpstreamFailure(str(e) or type(e).__name__) from e

    async def _edit(self, ctx: RequestContext, upload_path: Path, prompt: str, mime_type: str) -> EditResult:
        try:
            handle = await self._store.stage(upload_path)
            ctx.staged_handle = handle
            stream = await self._store.open_read_stream(handle)
            try:
                image = await asyncio.to_thread(stream.read)
            finally:
                stream.close()
            return await self._editor.edit(image, upload_path.name, mime_type, prompt)
        except UpstreamFailure:
            raise
        except Exception as e:
            logger.exception("generation_failed", error=str(e))
            raise UpstreamFailure(str(e) or type(e).__name__) from e

    async def _notify(self, upload: UploadRequest, result: EditResult) -> None:
        if self._dispatcher is None:
            return
        try:
            if upload.notify_token:
                await self._dispatcher.send(upload.notify_token, result.image_url, upload.filter_name)
            elif upload.notify_user_id:
                await self._dispatcher.send_to_user(upload.notify_user_id, result.image_url, upload.filter_name)
        except Exception as e:
            logger.error("notification_failed", error=str(e), error_type=type(e).__name__)

    @asynccontextmanager
    async def _owned_artifacts(self, ctx: RequestContext) -> AsyncIterator[RequestContext]:
        try:
            yield ctx
        finally:
            await self._finalize(ctx)

    async def _finalize(self, ctx: RequestContext) -> None:
        uploads.safe_delete(ctx.upload_path)
        ctx.upload_path = None

        handle, ctx.staged_handle = ctx.staged_handle, None
        if handle is None:
            return
        try:
            await self._store.unstage(handle)
        except ObjectNotFound:
            logger.warning("staged_object_already_gone", handle=handle)
        except Exception as e:
            logger.error("unstage_failed", handle=handle, error=str(e))


def get_pipeline() -> GenerationPipeline:
    return GenerationPipeline(
        store=get_stage_store(),
        editor=get_image_editor(),
        dispatcher=get_dispatcher(),
    )
