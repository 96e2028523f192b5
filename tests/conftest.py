from collections.abc import AsyncIterator, Iterator
from pathlib import Path
from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock, patch

import pytest
from httpx import ASGITransport, AsyncClient

from filter_relay.core.auth import require_caller
from filter_relay.main import app
from filter_relay.services import uploads
from filter_relay.services.image_editor import ImageEditor
from filter_relay.services.notifications import NotificationDispatcher
from filter_relay.services.pipeline import GenerationPipeline, get_pipeline
from tests.helpers import TEST_CALLER, FakeStageStore, edit_response


@pytest.fixture(autouse=True)
def uploads_dir(tmp_path: Path) -> Iterator[Path]:
    upload_dir = tmp_path / "uploads"
    with patch.object(uploads, "UPLOADS_DIR", upload_dir):
        yield upload_dir


@pytest.fixture
def stage_store() -> FakeStageStore:
    return FakeStageStore()


@pytest.fixture
def openai_client() -> Any:
    return SimpleNamespace(
        images=SimpleNamespace(edit=AsyncMock(return_value=edit_response(url="https://cdn.example.com/out.png"))),
        close=AsyncMock(),
    )


@pytest.fixture
def editor(openai_client: Any) -> ImageEditor:
    return ImageEditor(openai_client, "gpt-image-1")


@pytest.fixture
def dispatcher() -> AsyncMock:
    return AsyncMock(spec=NotificationDispatcher)


@pytest.fixture
def pipeline(stage_store: FakeStageStore, editor: ImageEditor, dispatcher: AsyncMock) -> GenerationPipeline:
    return GenerationPipeline(store=stage_store, editor=editor, dispatcher=dispatcher)  # type: ignore[arg-type]


@pytest.fixture
async def client(pipeline: GenerationPipeline) -> AsyncIterator[AsyncClient]:
    app.dependency_overrides[require_caller] = lambda: TEST_CALLER
    app.dependency_overrides[get_pipeline] = lambda: pipeline
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
            yield c
    finally:
        app.dependency_overrides.clear()
