"""Parser for the recipe repository sheet."""

from __future__ import annotations

import io
from dataclasses import dataclass

import pandas as pd


@dataclass
class RecipeEntry:
    name: str
    image_link: str | None = None
    json_link: str | None = None
    category: str | None = None


def _find_column(dataframe: pd.DataFrame, keywords: list[str]) -> str | None:
    for keyword in keywords:
        for column in dataframe.columns:
            if keyword in str(column).strip().lower():
                return column
    return None


def _optional(row: pd.Series, column: str | None) -> str | None:
    if column is None:
        return None
    value = str(row.get(column) or "").strip()
    return value or None


def parse_text(text: str) -> list[RecipeEntry]:
    if not text or not text.strip():
        return []
    dataframe = pd.read_csv(io.StringIO(text), dtype=str, keep_default_na=False)

    name_column = _find_column(dataframe, ["recipe name", "name", "recipe"])
    if name_column is None:
        return []
    image_column = _find_column(dataframe, ["image"])
    json_column = _find_column(dataframe, ["json"])
    category_column = _find_column(dataframe, ["category"])

    entries: list[RecipeEntry] = []
    seen: set[str] = set()
    for _, row in dataframe.iterrows():
        name = str(row.get(name_column) or "").strip()
        if not name or name.lower() in seen:
            continue
        seen.add(name.lower())
        entries.append(
            RecipeEntry(
                name=name,
                image_link=_optional(row, image_column),
                json_link=_optional(row, json_column),
                category=_optional(row, category_column),
            )
        )
    return entries
