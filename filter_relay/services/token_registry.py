from enum import Enum

import structlog
from google.cloud import firestore

from filter_relay.config import settings
from filter_relay.core.credentials import build_service_account_credentials

logger = structlog.get_logger()

_registry: "TokenRegistry | None" = None


class Platform(str, Enum):
    IOS = "ios"
    ANDROID = "android"
    WEB = "web"


class TokenRegistry:
    """Maps application user ids to FCM device tokens, one document per user."""

    def __init__(self, client: firestore.AsyncClient, collection: str) -> None:
        self._client = client
        self.collection = collection

    def _doc(self, user_id: str) -> firestore.AsyncDocumentReference:
        return self._client.collection(self.collection).document(user_id)

    async def upsert(self, user_id: str, fcm_token: str, platform: Platform = Platform.IOS) -> None:
        await self._doc(user_id).set(
            {
                "fcmToken": fcm_token,
                "platform": Platform(platform).value,
                "lastUpdated": firestore.SERVER_TIMESTAMP,
                "userId": user_id,
            },
            merge=True,
        )
        logger.info("device_token_stored", user_id=user_id, platform=Platform(platform).value)

    async def lookup(self, user_id: str) -> str | None:
        snapshot = await self._doc(user_id).get()
        if not snapshot.exists:
            return None
        data = snapshot.to_dict() or {}
        return data.get("fcmToken")

    async def remove(self, user_id: str) -> None:
        # Deleting a missing document is a no-op in Firestore.
        await self._doc(user_id).delete()
        logger.info("device_token_removed", user_id=user_id)


def get_token_registry() -> TokenRegistry:
    global _registry
    if _registry is None:
        credentials = build_service_account_credentials(settings)
        client = firestore.AsyncClient(project=settings.gcp_project_id, credentials=credentials)
        _registry = TokenRegistry(client, settings.firestore_collection)
    return _registry
