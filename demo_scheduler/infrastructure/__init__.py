"""Infrastructure layer exports."""

from .demo_requests import DemoRequestRepository, InMemoryDemoRequestRepository
from .dropbox import DropboxMediaClient
from .media import (
    MediaFile,
    MediaUploadClient,
    MediaUploadError,
    MediaUploadResult,
    NoOpMediaClient,
    configure_media_client,
    get_media_client,
)
from .recipes import RecipeCatalog, SheetRecipeCatalog, StaticRecipeCatalog
from .sheets import SheetDemoRequestRepository, SheetFetchError

__all__ = [
    "DemoRequestRepository",
    "InMemoryDemoRequestRepository",
    "SheetDemoRequestRepository",
    "SheetFetchError",
    "DropboxMediaClient",
    "MediaFile",
    "MediaUploadClient",
    "MediaUploadError",
    "MediaUploadResult",
    "NoOpMediaClient",
    "configure_media_client",
    "get_media_client",
    "RecipeCatalog",
    "SheetRecipeCatalog",
    "StaticRecipeCatalog",
]
