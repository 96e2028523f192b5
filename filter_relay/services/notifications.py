import asyncio
from dataclasses import dataclass, field
from typing import Any

import httpx
import structlog

from filter_relay.config import settings
from filter_relay.core.exceptions import DeliveryFailure, NoTokenForUser
from filter_relay.services.http_client import get_http_client
from filter_relay.services.token_registry import TokenRegistry, get_token_registry

logger = structlog.get_logger()

FCM_SEND_URL = "https://fcm.googleapis.com/v1/projects/{project_id}/messages:send"
NOTIFICATION_CHANNEL = "image-processing"
NOTIFICATION_TYPE = "image_ready"


class CredentialError(Exception):
    pass


@dataclass
class PushMessage:
    token: str
    title: str
    body: str
    data: dict[str, str] = field(default_factory=dict)
    channel_id: str = NOTIFICATION_CHANNEL
    priority: str = "PRIORITY_HIGH"

    def to_fcm(self) -> dict[str, Any]:
        return {
            "message": {
                "token": self.token,
                "notification": {"title": self.title, "body": self.body},
                "data": self.data,
                "android": {
                    "notification": {
                        "channel_id": self.channel_id,
                        "notification_priority": self.priority,
                    }
                },
            }
        }


@dataclass(frozen=True)
class DeliveryReceipt:
    message_id: str | None
    attempts: int


def build_image_ready_message(device_token: str, result_url: str, filter_name: str | None) -> PushMessage:
    filter_label = filter_name or "selected"
    data = {
        "notificationType": NOTIFICATION_TYPE,
        "imageUrl": result_url,
        "filterType": filter_label,
        "channelId": NOTIFICATION_CHANNEL,
    }
    return PushMessage(
        token=device_token,
        title="Image Ready!",
        body=f"Your {filter_label} filter has been applied successfully.",
        data={k: str(v) for k, v in data.items()},
    )


def backoff_delay(attempt: int, initial: float) -> float:
    """Delay after failed attempt ``attempt`` (1-based): initial, 2*initial, 4*initial..."""
    return initial * 2 ** (attempt - 1)


class NotificationDispatcher:
    def __init__(
        self,
        http: httpx.AsyncClient,
        registry: TokenRegistry | None,
        auth_service_url: str,
        project_id: str,
        max_attempts: int = 3,
        backoff_initial: float = 1.0,
    ) -> None:
        self._http = http
        self._registry = registry
        self.auth_service_url = auth_service_url.rstrip("/")
        self.send_url = FCM_SEND_URL.format(project_id=project_id)
        self.max_attempts = max(1, max_attempts)
        self.backoff_initial = backoff_initial

    async def fetch_credential(self) -> str:
        try:
            response = await self._http.get(f"{self.auth_service_url}/auth/fcm-token")
        except httpx.HTTPError as e:
            raise CredentialError(f"Failed to get FCM token: {e}") from e
        if response.status_code != 200:
            raise CredentialError(f"Failed to get FCM token: {response.status_code}")
        token = response.json().get("token")
        if not token:
            raise CredentialError("Auth service returned no token")
        return token

    async def _deliver(self, message: PushMessage) -> str | None:
        credential = await self.fetch_credential()
        response = await self._http.post(
            self.send_url,
            json=message.to_fcm(),
            headers={"Authorization": f"Bearer {credential}"},
        )
        if not response.is_success:
            raise httpx.HTTPStatusError(
                f"FCM error {response.status_code}: {response.text}",
                request=response.request,
                response=response,
            )
        return response.json().get("name")

    async def send(self, device_token: str, result_url: str, filter_name: str | None) -> DeliveryReceipt:
        last_error: Exception | None = None
        for attempt in range(1, self.max_attempts + 1):
            # Built per attempt; the credential is also refetched inside _deliver.
            message = build_image_ready_message(device_token, result_url, filter_name)
            try:
                message_id = await self._deliver(message)
            except (CredentialError, httpx.HTTPError, ValueError) as e:
                last_error = e
                logger.warning(
                    "notification_attempt_failed",
                    attempt=attempt,
                    max_attempts=self.max_attempts,
                    error=str(e),
                )
                if attempt < self.max_attempts:
                    await asyncio.sleep(backoff_delay(attempt, self.backoff_initial))
                continue
            logger.info("notification_sent", message_id=message_id, attempt=attempt)
            return DeliveryReceipt(message_id=message_id, attempts=attempt)

        raise DeliveryFailure(f"Notification delivery failed: {last_error}", attempts=self.max_attempts)

    async def send_to_user(self, user_id: str, result_url: str, filter_name: str | None) -> DeliveryReceipt:
        device_token = await self._registry.lookup(user_id) if self._registry else None
        if not device_token:
            raise NoTokenForUser(user_id)
        return await self.send(device_token, result_url, filter_name)


def get_dispatcher() -> NotificationDispatcher:
    return NotificationDispatcher(
        http=get_http_client(),
        registry=get_token_registry(),
        auth_service_url=settings.auth_service_url,
        project_id=settings.fcm_project_id,
        max_attempts=settings.notify_max_attempts,
        backoff_initial=settings.notify_backoff_initial,
    )
