import structlog
from fastapi import APIRouter, Depends

from filter_relay.core.exceptions import BadRequestError
from filter_relay.schemas.devices import RegisterTokenRequest, SuccessResponse
from filter_relay.services.token_registry import TokenRegistry, get_token_registry

logger = structlog.get_logger()

router = APIRouter()


@router.post("/register-token", response_model=SuccessResponse)
@router.post("/register-device", response_model=SuccessResponse)
async def register_token(
    body: RegisterTokenRequest,
    registry: TokenRegistry = Depends(get_token_registry),
) -> SuccessResponse:
    if not body.user_id or not body.fcm_token:
        raise BadRequestError("Missing required fields", message="userId and fcmToken are required")

    await registry.upsert(body.user_id, body.fcm_token, body.platform)
    return SuccessResponse()


@router.delete("/register-token/{user_id}", response_model=SuccessResponse)
async def remove_token(
    user_id: str,
    registry: TokenRegistry = Depends(get_token_registry),
) -> SuccessResponse:
    await registry.remove(user_id)
    return SuccessResponse()
