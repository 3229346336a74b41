from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import pytest
from pydantic import ValidationError

from backend.app.config import load_settings
from backend.app.logging_config import (
    LOG_FILE_NAME,
    configure_application_logging,
    resolve_log_level,
)
from backend.app.telemetry import TelemetryClient, build_telemetry_client


class _CaptureSink:
    def __init__(self) -> None:
        self.events: list[tuple[str, dict[str, Any]]] = []

    def emit(self, *, event_name: str, attributes: Mapping[str, Any]) -> None:
        self.events.append((event_name, dict(attributes)))


@pytest.fixture(autouse=True)
def _isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:  # pyright: ignore[reportUnusedFunction]
    monkeypatch.chdir(tmp_path)
    for name in (
        "CURATION_DATA_DIR",
        "CURATION_LOG_DIR",
        "CURATION_YOUTUBE_API_KEY",
        "CURATION_YOUTUBE_API_BASE_URL",
        "CURATION_YOUTUBE_HTTP_TIMEOUT_SECONDS",
        "CURATION_TELEMETRY_ENABLED",
        "CURATION_TELEMETRY_SINK",
    ):
        monkeypatch.delenv(name, raising=False)


def test_load_settings_defaults(tmp_path: Path) -> None:
    settings = load_settings()

    assert settings.youtube_api_key is None
    assert settings.youtube_api_base_url == "https://www.googleapis.com/youtube/v3"
    assert settings.youtube_http_timeout_seconds == 10.0
    assert settings.data_dir == (tmp_path / ".video-curation").resolve()
    assert settings.log_dir == settings.data_dir / "logs"


def test_load_settings_parses_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CURATION_DATA_DIR", str(tmp_path / "runtime"))
    monkeypatch.setenv("CURATION_YOUTUBE_API_KEY", "  yt-key  ")
    monkeypatch.setenv("CURATION_YOUTUBE_API_BASE_URL", "http://127.0.0.1:9/youtube/v3/")
    monkeypatch.setenv("CURATION_YOUTUBE_HTTP_TIMEOUT_SECONDS", "2.5")
    monkeypatch.setenv("CURATION_TELEMETRY_ENABLED", "off")
    monkeypatch.setenv("CURATION_TELEMETRY_SINK", " NONE ")

    settings = load_settings()

    assert settings.youtube_api_key == "yt-key"
    assert settings.youtube_api_base_url == "http://127.0.0.1:9/youtube/v3"
    assert settings.youtube_http_timeout_seconds == 2.5
    assert settings.telemetry_enabled is False
    assert settings.telemetry_sink == "none"
    assert settings.log_dir == (tmp_path / "runtime" / "logs").resolve()


def test_blank_api_key_is_treated_as_missing(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CURATION_YOUTUBE_API_KEY", "   ")
    assert load_settings().youtube_api_key is None


def test_unparseable_boolean_falls_back_to_default(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CURATION_TELEMETRY_ENABLED", "maybe")
    assert load_settings().telemetry_enabled is True


def test_load_settings_reads_dotenv(tmp_path: Path) -> None:
    (tmp_path / ".env").write_text("CURATION_YOUTUBE_API_KEY=from-dotenv\n", encoding="utf-8")
    assert load_settings().youtube_api_key == "from-dotenv"


@pytest.mark.parametrize(
    ("name", "value"),
    [
        ("CURATION_TELEMETRY_SINK", "kafka"),
        ("CURATION_YOUTUBE_API_BASE_URL", "  /  "),
        ("CURATION_YOUTUBE_HTTP_TIMEOUT_SECONDS", "0"),
    ],
)
def test_load_settings_rejects_invalid_values(
    monkeypatch: pytest.MonkeyPatch,
    name: str,
    value: str,
) -> None:
    monkeypatch.setenv(name, value)
    with pytest.raises(ValidationError):
        load_settings()


def test_configure_application_logging_writes_json_file(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("CURATION_DATA_DIR", str(tmp_path / "runtime"))
    settings = load_settings()

    log_file = configure_application_logging(settings)
    logging.getLogger("curation.youtube").warning("representative video unavailable")
    for handler in logging.getLogger("curation").handlers:
        handler.flush()

    assert log_file == settings.log_dir / LOG_FILE_NAME
    contents = log_file.read_text(encoding="utf-8")
    assert "representative video unavailable" in contents
    assert '"logger": "curation.youtube"' in contents


def test_resolve_log_level() -> None:
    assert resolve_log_level("debug") == logging.DEBUG
    assert resolve_log_level(" warning ") == logging.WARNING
    assert resolve_log_level("chatty") == logging.INFO


def test_telemetry_client_redacts_sensitive_fields() -> None:
    sink = _CaptureSink()
    client = TelemetryClient(enabled=True, sink=sink)

    client.emit(
        "metadata.resolve.finish",
        url="https://youtu.be/abc123",
        api_key="secret",
        description="long channel description",
        duration_ms=12,
        has_representative_video=False,
    )

    [(event_name, attributes)] = sink.events
    assert event_name == "metadata.resolve.finish"
    assert attributes["url"] == "https://youtu.be/abc123"
    assert attributes["api_key"] == "[redacted]"
    assert attributes["description"] == "[redacted]"
    assert attributes["duration_ms"] == 12
    assert attributes["has_representative_video"] is False


def test_telemetry_truncates_long_strings_and_summarizes_objects() -> None:
    sink = _CaptureSink()
    client = TelemetryClient(enabled=True, sink=sink)

    client.emit("metadata.resolve.start", url="x" * 500, payload_shape={"a": 1})

    [(_, attributes)] = sink.events
    assert attributes["url"].endswith("...")
    assert len(attributes["url"]) == 163
    assert attributes["payload_shape"] == "dict"


def test_disabled_telemetry_client_does_not_emit() -> None:
    sink = _CaptureSink()
    client = TelemetryClient(enabled=False, sink=sink)

    client.emit("metadata.resolve.start", url="https://youtu.be/abc123")
    assert sink.events == []


def test_build_telemetry_client_none_sink_is_disabled() -> None:
    assert build_telemetry_client(enabled=True, sink="none").enabled is False
    assert build_telemetry_client(enabled=False, sink="log").enabled is False
    assert build_telemetry_client(enabled=True, sink="log").enabled is True
