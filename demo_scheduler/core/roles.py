from __future__ import annotations

import unicodedata

HEAD_CHEF = "head_chef"
PRESALES = "presales"
SALES = "sales"
CEO = "ceo"
CULINARY_TEAM = "culinary_team"
CONTENT_MANAGER = "content_manager"

KNOWN_ROLES = frozenset({HEAD_CHEF, PRESALES, SALES, CEO, CULINARY_TEAM, CONTENT_MANAGER})

# The only role allowed to drop requests onto the grid.
SCHEDULING_ROLE = HEAD_CHEF
# The role that attaches recipes and sees its own unready requests.
RECIPE_AUTHOR_ROLE = PRESALES

_ROLE_ALIASES = {
    "head chef": HEAD_CHEF,
    "headchef": HEAD_CHEF,
    "kitchen": CULINARY_TEAM,
    "kitchen team": CULINARY_TEAM,
    "culinary": CULINARY_TEAM,
    "vijay": CONTENT_MANAGER,
    "content manager": CONTENT_MANAGER,
}


def normalize_identity(value: str | None) -> str:
    """Fold a display name for case-insensitive comparison."""

    if not value:
        return ""
    folded = unicodedata.normalize("NFKC", value).strip().casefold()
    return " ".join(folded.split())


def normalize_role(role: str | None) -> str:
    label = normalize_identity(role).replace("-", "_")
    if label in KNOWN_ROLES:
        return label
    return _ROLE_ALIASES.get(label.replace("_", " "), label)


def same_identity(left: str | None, right: str | None) -> bool:
    left_norm = normalize_identity(left)
    return bool(left_norm) and left_norm == normalize_identity(right)


def is_scheduler(role: str | None) -> bool:
    return normalize_role(role) == SCHEDULING_ROLE


def is_recipe_author(role: str | None) -> bool:
    return normalize_role(role) == RECIPE_AUTHOR_ROLE
