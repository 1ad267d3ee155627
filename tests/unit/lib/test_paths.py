from pathlib import Path

import pytest

from missiondeck.lib import paths


def test_workspace_root_respects_env_var(monkeypatch):
    monkeypatch.setenv("MISSIONDECK_ROOT", "/custom/mission")
    assert paths.workspace_root() == Path("/custom/mission")


def test_workspace_root_expands_user(monkeypatch):
    monkeypatch.setenv("MISSIONDECK_ROOT", "~/altmission")
    assert paths.workspace_root() == Path.home() / "altmission"


def test_workspace_root_default(monkeypatch):
    monkeypatch.delenv("MISSIONDECK_ROOT", raising=False)
    assert paths.workspace_root() == Path.home() / "mission"


def test_data_files_resolve_under_explicit_root(tmp_path):
    assert paths.database(tmp_path) == tmp_path / "mission-control" / "database.json"
    assert paths.ideas_bank(tmp_path) == tmp_path / "content" / "ideas-bank.md"
    assert paths.posting_schedule(tmp_path) == tmp_path / "POSTING_SCHEDULE.md"


@pytest.mark.parametrize("value", ["task-1", "abc_DEF-9", "x" * 100])
def test_validate_record_id_accepts(value):
    assert paths.validate_record_id(value) == (True, "")


@pytest.mark.parametrize("value", ["", "x" * 101, "../etc", "task 1", "tâche"])
def test_validate_record_id_rejects(value):
    valid, reason = paths.validate_record_id(value)
    assert not valid
    assert reason
