from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from backend.app.services.url_normalizer import IdentifierKind


class ResolutionError(Exception):
    code: str = "resolution_error"
    client_error: bool = True


class MalformedUrlError(ResolutionError):
    code = "malformed_url"


class UnsupportedHostError(ResolutionError):
    code = "unsupported_host"

    def __init__(self, hostname: str) -> None:
        super().__init__(f"Unsupported hostname: {hostname}")
        self.hostname = hostname


class UnrecognizedFormatError(ResolutionError):
    code = "unrecognized_format"


class NotFoundError(ResolutionError):
    code = "not_found"

    def __init__(self, kind: IdentifierKind, identifier: str) -> None:
        super().__init__(f"{kind.value.capitalize()} not found: {identifier}")
        self.kind = kind
        self.identifier = identifier


class UpstreamUnavailableError(ResolutionError):
    code = "upstream_unavailable"
    client_error = False
