"""Media upload hooks.

Demo photos and videos are pushed to object storage and only the resulting
shareable link is stored on the request. Without a configured provider the
no-op client reports the upload as skipped so the rest of the service keeps
working in local runs and tests.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol


@dataclass(slots=True)
class MediaFile:
    filename: str
    content: bytes
    content_type: str | None = None


@dataclass(slots=True)
class MediaUploadResult:
    """Container returned by :class:`MediaUploadClient` implementations."""

    link: str | None
    uploaded: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)
    provider: str = "noop"

    @property
    def success(self) -> bool:
        return bool(self.link) and not self.failed


class MediaUploadError(RuntimeError):
    """Raised when the storage provider rejects an upload."""


class MediaUploadClient(Protocol):
    """Contract for media storage integrations."""

    def upload(self, folder: str, files: list[MediaFile]) -> MediaUploadResult:
        """Upload ``files`` into ``folder`` and return a shareable link."""


class NoOpMediaClient:
    """Fallback client used when no provider is configured."""

    def upload(self, folder: str, files: list[MediaFile]) -> MediaUploadResult:
        return MediaUploadResult(
            link=None,
            failed={item.filename: "media upload not configured" for item in files},
        )


_client: MediaUploadClient = NoOpMediaClient()


def configure_media_client(client: MediaUploadClient) -> None:
    """Install the media client used by the upload route."""

    global _client
    _client = client


def get_media_client() -> MediaUploadClient:
    return _client
