import asyncio
import re
import time
from pathlib import Path
from typing import BinaryIO

import structlog
from google.api_core import exceptions as google_exceptions
from google.cloud import storage

from filter_relay.config import settings
from filter_relay.core.credentials import build_service_account_credentials
from filter_relay.core.exceptions import InvalidHandle, ObjectNotFound, StorageUnavailable

logger = structlog.get_logger()

HANDLE_SCHEME = "gs"
STAGING_PREFIX = "uploads"

_HANDLE_RE = re.compile(r"^gs://([^/]+)/(.+)$")

_store: "ObjectStageStore | None" = None


def parse_handle(handle: str) -> tuple[str, str]:
    m = _HANDLE_RE.match(handle or "")
    if not m:
        raise InvalidHandle(f"Invalid GCS path: {handle}")
    return m.group(1), m.group(2)


def format_handle(bucket: str, key: str) -> str:
    return f"{HANDLE_SCHEME}://{bucket}/{key}"


def staging_key(local_path: Path) -> str:
    return f"{STAGING_PREFIX}/{int(time.time() * 1000)}-{local_path.name}"


class ObjectStageStore:
    """Stages request files in a GCS bucket so they can be streamed onward."""

    def __init__(self, client: storage.Client, bucket_name: str) -> None:
        self._client = client
        self.bucket_name = bucket_name

    def _blob(self, handle: str) -> storage.Blob:
        bucket, key = parse_handle(handle)
        return self._client.bucket(bucket).blob(key)

    def _stage_sync(self, local_path: Path) -> str:
        key = staging_key(local_path)
        blob = self._client.bucket(self.bucket_name).blob(key)
        blob.cache_control = "no-cache"
        blob.upload_from_filename(str(local_path))
        return format_handle(self.bucket_name, key)

    async def stage(self, local_path: Path) -> str:
        try:
            handle = await asyncio.to_thread(self._stage_sync, local_path)
        except google_exceptions.GoogleAPIError as e:
            logger.error("stage_failed", path=str(local_path), error=str(e))
            raise StorageUnavailable(f"Failed to stage {local_path.name}: {e}") from e
        logger.info("image_staged", handle=handle)
        return handle

    def _open_sync(self, blob: storage.Blob) -> BinaryIO:
        blob.reload()
        return blob.open("rb")

    async def open_read_stream(self, handle: str) -> BinaryIO:
        blob = self._blob(handle)
        try:
            return await asyncio.to_thread(self._open_sync, blob)
        except google_exceptions.NotFound as e:
            raise ObjectNotFound(f"Staged object not found: {handle}") from e
        except google_exceptions.GoogleAPIError as e:
            raise StorageUnavailable(f"Failed to open {handle}: {e}") from e

    async def unstage(self, handle: str) -> None:
        blob = self._blob(handle)
        try:
            await asyncio.to_thread(blob.delete)
        except google_exceptions.NotFound as e:
            raise ObjectNotFound(f"Staged object not found: {handle}") from e
        except google_exceptions.GoogleAPIError as e:
            raise StorageUnavailable(f"Failed to delete {handle}: {e}") from e
        logger.info("image_unstaged", handle=handle)


def get_stage_store() -> ObjectStageStore:
    global _store
    if _store is None:
        credentials = build_service_account_credentials(settings)
        client = storage.Client(project=settings.gcp_project_id, credentials=credentials)
        _store = ObjectStageStore(client, settings.gcs_bucket_name)
    return _store


def close_stage_store() -> None:
    global _store
    if _store:
        _store._client.close()
        _store = None
