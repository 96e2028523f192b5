from io import BytesIO
from pathlib import Path
from types import SimpleNamespace

from PIL import Image

from filter_relay.core.context import CallerIdentity
from filter_relay.core.exceptions import ObjectNotFound

TEST_CALLER = CallerIdentity(subject="1234", email="tester@example.com")


def make_png(width: int = 32, height: int = 32) -> bytes:
    img = Image.new("RGB", (width, height), color="red")
    buffer = BytesIO()
    img.save(buffer, format="PNG")
    return buffer.getvalue()


def edit_response(b64_json: str | None = None, url: str | None = None) -> SimpleNamespace:
    return SimpleNamespace(data=[SimpleNamespace(b64_json=b64_json, url=url)])


class FakeStageStore:
    def __init__(self) -> None:
        self.objects: dict[str, bytes] = {}
        self.staged: list[str] = []
        self.unstaged: list[str] = []
        self.stage_error: Exception | None = None
        self.unstage_error: Exception | None = None

    async def stage(self, local_path: Path) -> str:
        if self.stage_error:
            raise self.stage_error
        handle = f"gs://test-bucket/uploads/{len(self.staged)}-{local_path.name}"
        self.objects[handle] = local_path.read_bytes()
        self.staged.append(handle)
        return handle

    async def open_read_stream(self, handle: str) -> BytesIO:
        if handle not in self.objects:
            raise ObjectNotFound(handle)
        return BytesIO(self.objects[handle])

    async def unstage(self, handle: str) -> None:
        self.unstaged.append(handle)
        if self.unstage_error:
            raise self.unstage_error
        if handle not in self.objects:
            raise ObjectNotFound(handle)
        del self.objects[handle]
