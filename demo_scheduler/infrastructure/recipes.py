"""Read-only recipe catalog."""
from __future__ import annotations

from typing import Iterable, Protocol

import httpx

from demo_scheduler.extractors.recipe_sheet import RecipeEntry, parse_text


class RecipeCatalog(Protocol):
    def list_recipes(self) -> list[RecipeEntry]: ...


class StaticRecipeCatalog:
    """Catalog with a fixed list, used when no sheet is configured."""

    def __init__(self, entries: Iterable[RecipeEntry] = ()) -> None:
        self._entries = list(entries)

    def list_recipes(self) -> list[RecipeEntry]:
        return list(self._entries)


class SheetRecipeCatalog:
    """Catalog read from the recipe repository's published CSV."""

    def __init__(self, csv_url: str, *, timeout: float = 30.0, http_client: httpx.Client | None = None) -> None:
        self._csv_url = csv_url
        self._client = http_client or httpx.Client(timeout=timeout, follow_redirects=True)
        self._owns_client = http_client is None

    def list_recipes(self) -> list[RecipeEntry]:
        response = self._client.get(self._csv_url)
        response.raise_for_status()
        return parse_text(response.text)

    def close(self) -> None:
        if self._owns_client:
            self._client.close()
