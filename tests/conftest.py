from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from youtube_api_fakes import FakeYouTubeApi

from backend.app.dependencies import get_metadata_resolver, reset_cached_dependencies
from backend.app.main import create_app
from backend.app.services.metadata_resolver import MetadataResolver


@pytest.fixture
def fake_api() -> FakeYouTubeApi:
    return FakeYouTubeApi()


@pytest.fixture
def resolver(fake_api: FakeYouTubeApi) -> MetadataResolver:
    return MetadataResolver("test-api-key", transport=fake_api.transport())


@pytest.fixture
def runtime_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[Path]:
    data_dir = tmp_path / "runtime-data"
    data_dir.mkdir(parents=True, exist_ok=True)
    monkeypatch.setenv("CURATION_DATA_DIR", str(data_dir))
    monkeypatch.setenv("CURATION_YOUTUBE_API_KEY", "test-api-key")
    monkeypatch.setenv("CURATION_TELEMETRY_SINK", "none")
    reset_cached_dependencies()
    yield data_dir
    reset_cached_dependencies()


@pytest.fixture
def client(runtime_env: Path, resolver: MetadataResolver) -> Iterator[TestClient]:
    _ = runtime_env
    app = create_app()
    app.dependency_overrides[get_metadata_resolver] = lambda: resolver
    with TestClient(app) as test_client:
        yield test_client
