import uuid

import structlog
from fastapi import APIRouter, Depends, Form, Request
from starlette.datastructures import UploadFile

from filter_relay.core.auth import require_caller
from filter_relay.core.context import CallerIdentity, RequestContext
from filter_relay.schemas.generate import ErrorResponse, GenerateResponse
from filter_relay.services.pipeline import GenerationPipeline, UploadRequest, get_pipeline

logger = structlog.get_logger()

router = APIRouter()


@router.post(
    "/generate",
    response_model=GenerateResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def generate(
    request: Request,
    filter_name: str | None = Form(default=None, alias="filter"),
    fcm_token: str | None = Form(default=None, alias="fcmToken"),
    user_id: str | None = Form(default=None, alias="userId"),
    caller: CallerIdentity = Depends(require_caller),
    pipeline: GenerationPipeline = Depends(get_pipeline),
) -> GenerateResponse:
    # A text value under "image" is a missing upload, not a schema error.
    form = await request.form()
    image = form.get("image")
    if not isinstance(image, UploadFile):
        image = None

    ctx = RequestContext(
        request_id=getattr(request.state, "request_id", None) or uuid.uuid4().hex,
        caller=caller,
    )
    upload = UploadRequest(
        filter_name=filter_name,
        image=image.file if image is not None else None,
        original_filename=image.filename if image is not None else None,
        content_type=image.content_type if image is not None else None,
        notify_token=fcm_token or None,
        notify_user_id=user_id or None,
    )
    result = await pipeline.run(ctx, upload)
    return GenerateResponse(image_url=result.image_url)
