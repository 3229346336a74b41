from __future__ import annotations

from functools import lru_cache

from fastapi import HTTPException

from backend.app.config import AppSettings, load_settings
from backend.app.services.metadata_resolver import MetadataResolver
from backend.app.telemetry import TelemetryClient, build_telemetry_client


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    return load_settings()


@lru_cache(maxsize=1)
def _build_metadata_resolver() -> MetadataResolver | None:
    settings = get_settings()
    if settings.youtube_api_key is None:
        return None
    return MetadataResolver(
        settings.youtube_api_key,
        base_url=settings.youtube_api_base_url,
        timeout_seconds=settings.youtube_http_timeout_seconds,
    )


def get_metadata_resolver() -> MetadataResolver:
    resolver = _build_metadata_resolver()
    if resolver is None:
        raise HTTPException(status_code=500, detail="YouTube API key not configured")
    return resolver


@lru_cache(maxsize=1)
def get_telemetry() -> TelemetryClient:
    settings = get_settings()
    return build_telemetry_client(
        enabled=settings.telemetry_enabled,
        sink=settings.telemetry_sink,
    )


def reset_cached_dependencies() -> None:
    _build_metadata_resolver.cache_clear()
    get_telemetry.cache_clear()
    get_settings.cache_clear()
