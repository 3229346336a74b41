from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, cast

import httpx

from backend.app.services.resolution_errors import NotFoundError, UpstreamUnavailableError
from backend.app.services.url_normalizer import (
    ChannelLookup,
    IdentifierKind,
    NormalizedIdentifier,
    normalize_url,
)

LOGGER = logging.getLogger("curation.youtube")

DEFAULT_API_BASE_URL = "https://www.googleapis.com/youtube/v3"
DEFAULT_TIMEOUT_SECONDS = 10.0
THUMBNAIL_PREFERENCE: tuple[str, ...] = ("high", "default")
_USER_AGENT = "video-curation/0.1"


@dataclass(frozen=True)
class ContentDescriptor:
    title: str
    description: str
    thumbnail_url: str
    representative_video_id: str | None = None


@dataclass(frozen=True)
class ResolvedContent:
    identifier: NormalizedIdentifier
    descriptor: ContentDescriptor


@dataclass(frozen=True)
class RepresentativeVideoLookup:
    video_id: str | None
    failure_reason: str | None = None

    @classmethod
    def missing(cls, reason: str) -> RepresentativeVideoLookup:
        return cls(video_id=None, failure_reason=reason)


@dataclass(frozen=True)
class _ApiFetch:
    payload: dict[str, Any] | None
    failure_reason: str | None = None

    @classmethod
    def failed(cls, reason: str) -> _ApiFetch:
        return cls(payload=None, failure_reason=reason)


@dataclass(frozen=True)
class _ChannelSnippet:
    descriptor: ContentDescriptor
    platform_channel_id: str | None


class MetadataResolver:
    """
    Resolve a normalized YouTube identifier into a content descriptor.

    Holds only the API credential and transport settings; every `resolve` call opens
    its own HTTP client, so one instance can be shared across concurrent tasks.
    """

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = DEFAULT_API_BASE_URL,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        normalized_key = api_key.strip() if isinstance(api_key, str) else ""
        if not normalized_key:
            raise ValueError("YouTube API key is required")
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")
        self._api_key = normalized_key
        self._base_url = base_url.rstrip("/")
        self._timeout = httpx.Timeout(timeout_seconds)
        self._transport = transport

    async def resolve(self, identifier: NormalizedIdentifier) -> ContentDescriptor:
        async with self._client() as client:
            if identifier.kind is IdentifierKind.VIDEO:
                return await self._resolve_video(client, identifier.id)
            return await self._resolve_channel(client, identifier)

    async def resolve_url(self, raw_url: str) -> ResolvedContent:
        identifier = normalize_url(raw_url)
        descriptor = await self.resolve(identifier)
        return ResolvedContent(identifier=identifier, descriptor=descriptor)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            transport=self._transport,
            headers={"accept": "application/json", "user-agent": _USER_AGENT},
        )

    async def _resolve_video(self, client: httpx.AsyncClient, video_id: str) -> ContentDescriptor:
        fetch = await self._get_json(
            client,
            "videos",
            {"id": video_id, "part": "snippet,contentDetails"},
        )
        item = _first_item_or_raise(fetch, kind=IdentifierKind.VIDEO, identifier=video_id)
        snippet = _as_dict(item.get("snippet"))
        return _descriptor_from_snippet(snippet, source=f"video {video_id}")

    async def _resolve_channel(
        self,
        client: httpx.AsyncClient,
        identifier: NormalizedIdentifier,
    ) -> ContentDescriptor:
        params = {"part": "snippet,contentDetails"}
        if identifier.channel_lookup is ChannelLookup.BY_ID:
            params["id"] = identifier.id
        else:
            params["forHandle"] = identifier.id

        fetch = await self._get_json(client, "channels", params)
        item = _first_item_or_raise(fetch, kind=IdentifierKind.CHANNEL, identifier=identifier.id)
        channel = _channel_snippet_from_item(item, source=f"channel {identifier.id}")

        if channel.platform_channel_id is None:
            lookup = RepresentativeVideoLookup.missing("channel item has no id")
        else:
            lookup = await self._lookup_latest_video(client, channel.platform_channel_id)

        if lookup.video_id is None:
            LOGGER.warning(
                "representative video unavailable channel=%s reason=%s",
                identifier.id,
                lookup.failure_reason,
            )
            return channel.descriptor

        return ContentDescriptor(
            title=channel.descriptor.title,
            description=channel.descriptor.description,
            thumbnail_url=channel.descriptor.thumbnail_url,
            representative_video_id=lookup.video_id,
        )

    async def _lookup_latest_video(
        self,
        client: httpx.AsyncClient,
        platform_channel_id: str,
    ) -> RepresentativeVideoLookup:
        fetch = await self._get_json(
            client,
            "search",
            {
                "channelId": platform_channel_id,
                "part": "snippet",
                "order": "date",
                "maxResults": "1",
                "type": "video",
            },
        )
        if fetch.payload is None:
            return RepresentativeVideoLookup.missing(fetch.failure_reason or "request failed")

        items = _as_list(fetch.payload.get("items"))
        if not items:
            return RepresentativeVideoLookup.missing("no videos found for channel")

        video_id = _as_dict(_as_dict(items[0]).get("id")).get("videoId")
        if not isinstance(video_id, str) or not video_id.strip():
            return RepresentativeVideoLookup.missing("search item has no videoId")
        return RepresentativeVideoLookup(video_id=video_id)

    async def _get_json(
        self,
        client: httpx.AsyncClient,
        path: str,
        params: dict[str, str],
    ) -> _ApiFetch:
        LOGGER.debug("youtube api request path=%s params=%s", path, params)
        try:
            response = await client.get(path, params={**params, "key": self._api_key})
        except httpx.HTTPError as exc:
            return _ApiFetch.failed(f"{path} request failed: {type(exc).__name__}")

        if not response.is_success:
            return _ApiFetch.failed(f"{path} returned HTTP {response.status_code}")

        try:
            payload = response.json()
        except ValueError:
            return _ApiFetch.failed(f"{path} returned invalid JSON")
        if not isinstance(payload, dict):
            return _ApiFetch.failed(f"{path} returned an unexpected payload shape")
        return _ApiFetch(payload=cast(dict[str, Any], payload))


async def resolve_url(
    raw_url: str,
    *,
    api_key: str,
    base_url: str = DEFAULT_API_BASE_URL,
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    transport: httpx.AsyncBaseTransport | None = None,
) -> ContentDescriptor:
    resolver = MetadataResolver(
        api_key,
        base_url=base_url,
        timeout_seconds=timeout_seconds,
        transport=transport,
    )
    resolved = await resolver.resolve_url(raw_url)
    return resolved.descriptor


def pick_thumbnail_url(snippet: dict[str, Any]) -> str | None:
    thumbnails = _extract_thumbnail_urls(snippet)
    for quality in THUMBNAIL_PREFERENCE:
        url = thumbnails.get(quality)
        if url is not None:
            return url
    return None


def _first_item_or_raise(
    fetch: _ApiFetch,
    *,
    kind: IdentifierKind,
    identifier: str,
) -> dict[str, Any]:
    if fetch.payload is None:
        raise UpstreamUnavailableError(f"YouTube API error: {fetch.failure_reason}")
    items = _as_list(fetch.payload.get("items"))
    if not items:
        raise NotFoundError(kind, identifier)
    return _as_dict(items[0])


def _descriptor_from_snippet(snippet: dict[str, Any], *, source: str) -> ContentDescriptor:
    title = snippet.get("title")
    if not isinstance(title, str):
        raise UpstreamUnavailableError(f"YouTube API returned no title for {source}")
    thumbnail_url = pick_thumbnail_url(snippet)
    if thumbnail_url is None:
        raise UpstreamUnavailableError(f"YouTube API returned no thumbnail for {source}")
    description = snippet.get("description")
    return ContentDescriptor(
        title=title,
        description=description if isinstance(description, str) else "",
        thumbnail_url=thumbnail_url,
    )


def _channel_snippet_from_item(item: dict[str, Any], *, source: str) -> _ChannelSnippet:
    descriptor = _descriptor_from_snippet(_as_dict(item.get("snippet")), source=source)
    raw_channel_id = item.get("id")
    platform_channel_id = (
        raw_channel_id if isinstance(raw_channel_id, str) and raw_channel_id.strip() else None
    )
    return _ChannelSnippet(descriptor=descriptor, platform_channel_id=platform_channel_id)


def _extract_thumbnail_urls(snippet: dict[str, Any]) -> dict[str, str]:
    thumbnails = _as_dict(snippet.get("thumbnails"))
    urls: dict[str, str] = {}
    for quality, payload in thumbnails.items():
        url_value = _as_dict(payload).get("url")
        if isinstance(url_value, str) and url_value.strip():
            urls[quality] = url_value
    return urls


def _as_dict(value: Any) -> dict[str, Any]:
    if isinstance(value, dict):
        raw_dict = cast(dict[object, object], value)
        return {key: item for key, item in raw_dict.items() if isinstance(key, str)}
    return {}


def _as_list(value: Any) -> list[Any]:
    if isinstance(value, list):
        return list(cast(list[Any], value))
    return []
