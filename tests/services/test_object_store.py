from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from google.api_core import exceptions as google_exceptions

from filter_relay.core.exceptions import InvalidHandle, ObjectNotFound, StorageUnavailable
from filter_relay.services import object_store
from filter_relay.services.object_store import ObjectStageStore, format_handle, parse_handle


def _store() -> tuple[ObjectStageStore, MagicMock, MagicMock]:
    client = MagicMock()
    blob = MagicMock()
    client.bucket.return_value.blob.return_value = blob
    return ObjectStageStore(client, "test-bucket"), client, blob


class TestParseHandle:
    def test_parses_bucket_and_key(self) -> None:
        assert parse_handle("gs://my-bucket/uploads/1-a.png") == ("my-bucket", "uploads/1-a.png")

    def test_round_trip(self) -> None:
        handle = format_handle("b", "uploads/x/y.png")
        assert parse_handle(handle) == ("b", "uploads/x/y.png")

    @pytest.mark.parametrize(
        "handle",
        ["", "s3://bucket/key", "gs://bucket", "gs://bucket/", "gs:///key", "/local/path.png"],
    )
    def test_malformed(self, handle: str) -> None:
        with pytest.raises(InvalidHandle):
            parse_handle(handle)


class TestStagingKey:
    def test_timestamp_and_basename(self) -> None:
        with patch.object(object_store.time, "time", return_value=1700000000.123):
            key = object_store.staging_key(Path("/tmp/uploads/photo.png"))
        assert key == "uploads/1700000000123-photo.png"


class TestStage:
    async def test_uploads_and_returns_handle(self, tmp_path: Path) -> None:
        store, client, blob = _store()
        local = tmp_path / "photo.png"
        local.write_bytes(b"data")

        handle = await store.stage(local)

        assert handle.startswith("gs://test-bucket/uploads/")
        assert handle.endswith("-photo.png")
        client.bucket.assert_called_with("test-bucket")
        blob.upload_from_filename.assert_called_once_with(str(local))
        assert blob.cache_control == "no-cache"

    async def test_rejected_write(self, tmp_path: Path) -> None:
        store, _, blob = _store()
        blob.upload_from_filename.side_effect = google_exceptions.Forbidden("no access")
        with pytest.raises(StorageUnavailable):
            await store.stage(tmp_path / "photo.png")


class TestOpenReadStream:
    async def test_opens_blob(self) -> None:
        store, client, blob = _store()
        stream = await store.open_read_stream("gs://other-bucket/uploads/1-a.png")
        client.bucket.assert_called_with("other-bucket")
        client.bucket.return_value.blob.assert_called_with("uploads/1-a.png")
        blob.reload.assert_called_once()
        blob.open.assert_called_once_with("rb")
        assert stream is blob.open.return_value

    async def test_missing_object(self) -> None:
        store, _, blob = _store()
        blob.reload.side_effect = google_exceptions.NotFound("missing")
        with pytest.raises(ObjectNotFound):
            await store.open_read_stream("gs://test-bucket/uploads/1-a.png")

    async def test_invalid_handle_fails_before_network(self) -> None:
        store, client, _ = _store()
        with pytest.raises(InvalidHandle):
            await store.open_read_stream("not-a-handle")
        client.bucket.assert_not_called()


class TestUnstage:
    async def test_deletes(self) -> None:
        store, _, blob = _store()
        await store.unstage("gs://test-bucket/uploads/1-a.png")
        blob.delete.assert_called_once()

    async def test_missing_object(self) -> None:
        store, _, blob = _store()
        blob.delete.side_effect = google_exceptions.NotFound("missing")
        with pytest.raises(ObjectNotFound):
            await store.unstage("gs://test-bucket/uploads/1-a.png")

    async def test_backend_error(self) -> None:
        store, _, blob = _store()
        blob.delete.side_effect = google_exceptions.ServiceUnavailable("down")
        with pytest.raises(StorageUnavailable):
            await store.unstage("gs://test-bucket/uploads/1-a.png")

    async def test_invalid_handle(self) -> None:
        store, client, _ = _store()
        with pytest.raises(InvalidHandle):
            await store.unstage("gs://bucket-only")
        client.bucket.assert_not_called()


class TestGetStageStore:
    def test_created_once(self) -> None:
        original = object_store._store
        try:
            object_store._store = None
            with patch.object(object_store.storage, "Client") as client_cls:
                s1 = object_store.get_stage_store()
                s2 = object_store.get_stage_store()
            assert s1 is s2
            client_cls.assert_called_once()
            assert s1.bucket_name == object_store.settings.gcs_bucket_name
        finally:
            object_store._store = original

    def test_close(self) -> None:
        original = object_store._store
        try:
            client = MagicMock()
            object_store._store = ObjectStageStore(client, "b")
            object_store.close_stage_store()
            client.close.assert_called_once()
            assert object_store._store is None
        finally:
            object_store._store = original
