from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from urllib.parse import SplitResult, parse_qs, urlsplit

from backend.app.services.resolution_errors import (
    MalformedUrlError,
    UnrecognizedFormatError,
    UnsupportedHostError,
)

CANONICAL_HOSTNAMES: frozenset[str] = frozenset({"youtube.com", "www.youtube.com"})
SHORT_LINK_HOSTNAMES: frozenset[str] = frozenset({"youtu.be", "www.youtu.be"})
SUPPORTED_HOSTNAMES: frozenset[str] = CANONICAL_HOSTNAMES | SHORT_LINK_HOSTNAMES

VIDEO_QUERY_PARAM = "v"
HANDLE_PATH_MARKER = "/@"
CHANNEL_ID_PATH_MARKER = "/channel/"
PLATFORM_CHANNEL_ID_PREFIX = "UC"


class IdentifierKind(str, Enum):
    VIDEO = "video"
    CHANNEL = "channel"


class ChannelLookup(str, Enum):
    BY_ID = "id"
    BY_HANDLE = "handle"


@dataclass(frozen=True)
class NormalizedIdentifier:
    kind: IdentifierKind
    id: str
    channel_lookup: ChannelLookup | None = None

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("NormalizedIdentifier.id must not be empty")
        if self.kind is IdentifierKind.CHANNEL and self.channel_lookup is None:
            raise ValueError("Channel identifiers require a channel_lookup")
        if self.kind is IdentifierKind.VIDEO and self.channel_lookup is not None:
            raise ValueError("Video identifiers do not take a channel_lookup")

    @classmethod
    def video(cls, video_id: str) -> NormalizedIdentifier:
        return cls(kind=IdentifierKind.VIDEO, id=video_id)

    @classmethod
    def channel(cls, channel_ref: str, *, lookup: ChannelLookup) -> NormalizedIdentifier:
        return cls(kind=IdentifierKind.CHANNEL, id=channel_ref, channel_lookup=lookup)


def is_platform_channel_id(value: str) -> bool:
    """Return True when ``value`` has the shape of an opaque ``UC…`` channel id."""
    return value.startswith(PLATFORM_CHANNEL_ID_PREFIX) and len(value) > len(
        PLATFORM_CHANNEL_ID_PREFIX
    )


def normalize_url(raw: str) -> NormalizedIdentifier:
    """
    Classify a user-supplied YouTube URL and extract its identifier.

    Supported shapes, checked in this order:
    - https://youtu.be/<video_id>
    - https://youtube.com/watch?v=<video_id>
    - https://youtube.com/@<handle>
    - https://youtube.com/channel/<channel_id>

    Host matching is case-sensitive against the allow-list.
    """
    parsed = _parse_absolute_url(raw)
    hostname = _raw_hostname(parsed.netloc)
    if hostname not in SUPPORTED_HOSTNAMES:
        raise UnsupportedHostError(hostname)

    if hostname in SHORT_LINK_HOSTNAMES:
        video_id = _first_segment(parsed.path, "/")
        if not video_id:
            raise MalformedUrlError("Invalid youtu.be URL: missing video ID")
        return NormalizedIdentifier.video(video_id)

    query = parse_qs(parsed.query, keep_blank_values=True)
    if VIDEO_QUERY_PARAM in query:
        # parse_qs decodes "+" and "%20" to spaces; a blank value is still empty.
        video_id = query[VIDEO_QUERY_PARAM][0].strip()
        if not video_id:
            raise MalformedUrlError("Invalid watch URL: missing video ID")
        return NormalizedIdentifier.video(video_id)

    path = parsed.path
    if path.startswith(HANDLE_PATH_MARKER):
        handle = _first_segment(path, HANDLE_PATH_MARKER)
        if not handle:
            raise MalformedUrlError("Invalid channel handle URL")
        return NormalizedIdentifier.channel(handle, lookup=ChannelLookup.BY_HANDLE)

    if path.startswith(CHANNEL_ID_PATH_MARKER):
        channel_id = _first_segment(path, CHANNEL_ID_PATH_MARKER)
        if not channel_id:
            raise MalformedUrlError("Invalid channel ID URL")
        lookup = (
            ChannelLookup.BY_ID
            if is_platform_channel_id(channel_id)
            else ChannelLookup.BY_HANDLE
        )
        return NormalizedIdentifier.channel(channel_id, lookup=lookup)

    raise UnrecognizedFormatError("Could not recognize URL format")


def is_supported_url(raw: str) -> bool:
    try:
        normalize_url(raw)
    except (MalformedUrlError, UnsupportedHostError, UnrecognizedFormatError):
        return False
    return True


def _parse_absolute_url(raw: object) -> SplitResult:
    if not isinstance(raw, str):
        raise MalformedUrlError("Invalid URL: expected a string")
    candidate = raw.strip()
    if not candidate:
        raise MalformedUrlError("Invalid URL: empty input")
    if any(character.isspace() for character in candidate):
        raise MalformedUrlError("Invalid URL: contains whitespace")

    try:
        parsed = urlsplit(candidate)
        # Accessing port validates the netloc (non-numeric or out-of-range ports raise).
        _ = parsed.port
    except ValueError as exc:
        raise MalformedUrlError(f"Invalid URL: {exc}") from exc

    if not parsed.scheme or not parsed.netloc or not parsed.hostname:
        raise MalformedUrlError(f"Invalid URL: {candidate!r} is not an absolute URL")
    return parsed


def _raw_hostname(netloc: str) -> str:
    # SplitResult.hostname lowercases; the allow-list compares the host as written.
    host_port = netloc.rpartition("@")[2]
    if host_port.startswith("["):
        return host_port.partition("]")[0] + "]"
    return host_port.partition(":")[0]


def _first_segment(path: str, marker: str) -> str:
    remainder = path[len(marker) :] if path.startswith(marker) else path.lstrip("/")
    return remainder.split("/", 1)[0]
