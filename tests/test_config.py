from __future__ import annotations

import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

import pytest

from demo_scheduler.core.config import CONFIG_DIR, DEFAULT_SLOTS, Settings, load_teams_config


def test_bundled_teams_file_matches_defaults():
    teams, slots = load_teams_config(CONFIG_DIR / "teams.yaml")
    assert [team.id for team in teams] == [1, 2, 3, 4, 5]
    assert teams[4].members == ["Prathimesh", "Rajesh", "Suresh"]
    assert slots == DEFAULT_SLOTS


def test_missing_teams_file_uses_defaults(tmp_path):
    teams, slots = load_teams_config(tmp_path / "absent.yaml")
    assert len(teams) == 5
    assert slots == DEFAULT_SLOTS


def test_custom_teams_file(tmp_path):
    path = tmp_path / "teams.yaml"
    path.write_text(
        "teams:\n  - id: 7\n    name: Pastry\n    members: [Asha, ' ']\nslots:\n  - '10:00 AM - 12:00 PM'\n",
        encoding="utf-8",
    )
    teams, slots = load_teams_config(path)
    assert [(team.id, team.name, team.members) for team in teams] == [(7, "Pastry", ["Asha"])]
    assert slots == ["10:00 AM - 12:00 PM"]


def test_invalid_slot_label_is_rejected(tmp_path):
    path = tmp_path / "teams.yaml"
    path.write_text("slots:\n  - morning\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_teams_config(path)


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("DEMO_SCHEDULER_MEMBER_POLICY", "Round_Robin")
    monkeypatch.setenv("DEMO_SCHEDULER_ENFORCE_VERSIONS", "yes")
    monkeypatch.setenv("API_CORS_ORIGINS", "https://kitchen.test, ")
    monkeypatch.delenv("DEMO_SHEET_CSV_URL", raising=False)

    settings = Settings.from_env()

    assert settings.member_policy == "round_robin"
    assert settings.enforce_versions is True
    assert settings.cors_origins == ["https://kitchen.test"]
    assert settings.demo_sheet_csv_url is None
