"""Demo request persistence backed by the Google Sheets ``Demo_schedule`` tab.

Reads go through the sheet's CSV export. Writes go through the row update
endpoint of the sheet bridge service, which locates the row by client name
and email and rewrites the recipe, media, team and status cells.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Any, Callable
from urllib.parse import urlparse

import httpx

from demo_scheduler.core.errors import PersistenceError, StaleWriteError
from demo_scheduler.domain import DemoRequest
from demo_scheduler.extractors import demo_schedule_sheet

logger = logging.getLogger(__name__)


class SheetFetchError(PersistenceError):
    """Raised when the CSV export cannot be downloaded."""


class SheetDemoRequestRepository:
    """Client for the sales sheet export and its write-back bridge."""

    def __init__(
        self,
        csv_url: str,
        *,
        write_url: str | None = None,
        timeout: float = 30.0,
        http_client: httpx.Client | None = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        parsed = urlparse(csv_url)
        if not parsed.scheme or not parsed.netloc:
            raise ValueError("csv_url must include scheme and host")

        self._csv_url = csv_url
        self._write_url = write_url.rstrip("/") if write_url else None
        self._today = today
        self._client = http_client or httpx.Client(timeout=timeout, follow_redirects=True)
        self._owns_client = http_client is None

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            payload = response.json()
        except ValueError:
            return response.text[:200] or response.reason_phrase
        if isinstance(payload, dict):
            return str(payload.get("error") or payload.get("details") or payload.get("message") or payload)
        return str(payload)

    @staticmethod
    def _payload_version(response: httpx.Response) -> int | None:
        try:
            payload = response.json()
        except ValueError:
            return None
        if not isinstance(payload, dict):
            return None
        data = payload.get("data")
        candidate = data.get("version") if isinstance(data, dict) else payload.get("storedVersion")
        try:
            return int(candidate) if candidate is not None else None
        except (TypeError, ValueError):
            return None

    # ------------------------------------------------------------------
    # public API
    # ------------------------------------------------------------------
    def fetch_all(self) -> list[DemoRequest]:
        try:
            response = self._client.get(self._csv_url)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise SheetFetchError(f"failed to fetch demo schedule CSV: {exc}") from exc

        text = response.text
        if text.lstrip().lower().startswith("<!doctype html") or text.lstrip().lower().startswith("<html"):
            # Private sheets answer with a sign-in page instead of CSV.
            raise SheetFetchError("demo schedule export returned HTML; check the sheet sharing settings")

        return demo_schedule_sheet.parse_text(text, today=self._today()).requests

    def upsert(self, request: DemoRequest) -> DemoRequest:
        if self._write_url is None:
            raise PersistenceError("sheet write-back is not configured", request)
        if not request.client_name or not request.client_email:
            raise PersistenceError("client name and email are required to locate the sheet row", request)

        payload: dict[str, Any] = demo_schedule_sheet.request_to_row_update(request)
        url = f"{self._write_url}/demo-requests/{request.id}"
        try:
            response = self._client.put(url, json=payload)
        except httpx.HTTPError as exc:
            raise PersistenceError(f"sheet update for {request.id} failed: {exc}", request) from exc

        if response.status_code == 409:
            stored_version = self._payload_version(response)
            raise StaleWriteError(request, stored_version if stored_version is not None else request.version)
        if response.is_error:
            raise PersistenceError(
                f"sheet update for {request.id} failed with {response.status_code}: {self._error_message(response)}",
                request,
            )

        if not response.content:
            # An empty 200 gives no confirmation that the row was written.
            raise PersistenceError(f"sheet update for {request.id} returned an empty response", request)
        try:
            body = response.json()
        except ValueError as exc:
            raise PersistenceError(f"sheet update for {request.id} returned invalid JSON", request) from exc
        if isinstance(body, dict) and body.get("success") is False:
            raise PersistenceError(f"sheet update for {request.id} rejected: {self._error_message(response)}", request)

        stored = request.copy()
        version = self._payload_version(response)
        stored.version = version if version is not None else request.version + 1
        logger.info("Sheet row for %s updated (version %d)", request.id, stored.version)
        return stored

    def close(self) -> None:  # pragma: no cover - best effort cleanup
        if self._owns_client:
            self._client.close()


__all__ = ["SheetDemoRequestRepository", "SheetFetchError"]
