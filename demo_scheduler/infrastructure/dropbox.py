"""Dropbox integration for demo media uploads."""
from __future__ import annotations

import json
import logging
import re

import httpx

from .media import MediaFile, MediaUploadError, MediaUploadResult

logger = logging.getLogger(__name__)

_UNSAFE = re.compile(r"[\\/:*?\"<>|]+")


class DropboxMediaClient:
    """Uploads files through the Dropbox v2 HTTP API."""

    def __init__(
        self,
        access_token: str,
        *,
        root_folder: str = "/Demo Media",
        api_base: str = "https://api.dropboxapi.com/2",
        content_base: str = "https://content.dropboxapi.com/2",
        timeout: float = 60.0,
        http_client: httpx.Client | None = None,
    ) -> None:
        if not access_token:
            raise ValueError("access_token is required")
        self._token = access_token
        self._root = "/" + root_folder.strip("/")
        self._api_base = api_base.rstrip("/")
        self._content_base = content_base.rstrip("/")
        self._client = http_client or httpx.Client(timeout=timeout)
        self._owns_client = http_client is None

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _safe_name(value: str) -> str:
        cleaned = _UNSAFE.sub("_", value).strip()
        return cleaned or "untitled"

    def _folder_path(self, folder: str) -> str:
        return f"{self._root}/{self._safe_name(folder)}"

    def _auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._token}"}

    def _upload_one(self, folder_path: str, item: MediaFile) -> None:
        arg = {
            "path": f"{folder_path}/{self._safe_name(item.filename)}",
            "mode": "add",
            "autorename": True,
            "mute": True,
        }
        headers = {
            **self._auth_headers(),
            "Content-Type": "application/octet-stream",
            "Dropbox-API-Arg": json.dumps(arg),
        }
        response = self._client.post(f"{self._content_base}/files/upload", headers=headers, content=item.content)
        response.raise_for_status()
        if not response.content:
            raise MediaUploadError("upload returned an empty response")

    @staticmethod
    def _json(response: httpx.Response, folder_path: str) -> dict:
        try:
            payload = response.json()
        except ValueError as exc:
            raise MediaUploadError(f"could not share {folder_path}: {response.text[:200] or response.reason_phrase}") from exc
        return payload if isinstance(payload, dict) else {}

    def _shared_link(self, folder_path: str) -> str:
        response = self._client.post(
            f"{self._api_base}/sharing/create_shared_link_with_settings",
            headers=self._auth_headers(),
            json={"path": folder_path},
        )
        if response.status_code == 409:
            error = self._json(response, folder_path).get("error") or {}
            existing = (error.get("shared_link_already_exists") or {}).get("metadata") or {}
            if existing.get("url"):
                return str(existing["url"])
            raise MediaUploadError(f"could not share {folder_path}: {response.text[:200]}")
        response.raise_for_status()
        url = self._json(response, folder_path).get("url")
        if not url:
            raise MediaUploadError(f"no shared link returned for {folder_path}")
        return str(url)

    # ------------------------------------------------------------------
    # public API
    # ------------------------------------------------------------------
    def upload(self, folder: str, files: list[MediaFile]) -> MediaUploadResult:
        folder_path = self._folder_path(folder)
        result = MediaUploadResult(link=None, provider="dropbox")

        for item in files:
            try:
                self._upload_one(folder_path, item)
            except (httpx.HTTPError, MediaUploadError) as exc:
                logger.warning("Dropbox upload of %s failed: %s", item.filename, exc)
                result.failed[item.filename] = str(exc)
            else:
                result.uploaded.append(item.filename)

        if not result.uploaded:
            return result

        try:
            result.link = self._shared_link(folder_path)
        except httpx.HTTPError as exc:
            raise MediaUploadError(f"could not share {folder_path}: {exc}") from exc
        return result

    def close(self) -> None:  # pragma: no cover - best effort cleanup
        if self._owns_client:
            self._client.close()


__all__ = ["DropboxMediaClient"]
