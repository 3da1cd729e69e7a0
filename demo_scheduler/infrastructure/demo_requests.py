"""Persistence contract for demo requests."""
from __future__ import annotations

import logging
from typing import Iterable, Protocol

from demo_scheduler.core.errors import StaleWriteError
from demo_scheduler.domain import DemoRequest

logger = logging.getLogger(__name__)


class DemoRequestRepository(Protocol):
    """Remote tabular store holding the authoritative request rows.

    Both calls are best effort. ``upsert`` returns the stored request with its
    new ``version``; failures raise :class:`PersistenceError`.
    """

    def fetch_all(self) -> list[DemoRequest]: ...

    def upsert(self, request: DemoRequest) -> DemoRequest: ...


class InMemoryDemoRequestRepository:
    """Simple in-memory repository for local runs and tests.

    Writes are last-write-wins unless ``enforce_versions`` is set, in which
    case a write based on an outdated version raises :class:`StaleWriteError`.
    """

    def __init__(self, requests: Iterable[DemoRequest] = (), *, enforce_versions: bool = False) -> None:
        self._rows: dict[str, DemoRequest] = {}
        self.enforce_versions = enforce_versions
        self.seed(requests)

    def seed(self, requests: Iterable[DemoRequest]) -> None:
        for request in requests:
            self._rows[request.id] = request.copy()

    def fetch_all(self) -> list[DemoRequest]:
        return [request.copy() for request in self._rows.values()]

    def upsert(self, request: DemoRequest) -> DemoRequest:
        existing = self._rows.get(request.id)
        if self.enforce_versions and existing is not None and existing.version != request.version:
            raise StaleWriteError(request, existing.version)

        stored = request.copy()
        stored.version = (existing.version if existing is not None else request.version) + 1
        self._rows[request.id] = stored
        logger.debug("Stored %s at version %d", request.id, stored.version)
        return stored.copy()

    def reset(self) -> None:
        self._rows.clear()
