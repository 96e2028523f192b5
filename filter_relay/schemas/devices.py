from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from filter_relay.services.token_registry import Platform


class RegisterTokenRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    user_id: str | None = None
    fcm_token: str | None = None
    platform: Platform = Platform.IOS


class SuccessResponse(BaseModel):
    success: bool = True
