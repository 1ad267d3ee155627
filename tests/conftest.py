import json
from datetime import datetime, timezone

import pytest

from missiondeck.core.cache import Cache
from missiondeck.core.store import Store
from missiondeck.lib import config, paths

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def deck_root(monkeypatch, tmp_path):
    """Isolated workspace root.

    Points MISSIONDECK_ROOT at a fresh tmp directory and resets the config
    cache on both sides so no test reads the real ~/mission.
    """
    root = tmp_path / "mission"
    root.mkdir()
    monkeypatch.setenv("MISSIONDECK_ROOT", str(root))
    config.clear_cache()
    yield root
    config.clear_cache()


@pytest.fixture
def cache():
    return Cache()


@pytest.fixture
def store(deck_root, cache):
    return Store(paths.database(deck_root), cache)


def make_task(task_id="task-1", **overrides) -> dict:
    task = {
        "id": task_id,
        "title": f"Title {task_id}",
        "description": "",
        "status": "assigned",
        "assigneeIds": ["writer"],
        "reviewerIds": [],
        "createdAt": "2026-03-10T08:00:00.000Z",
    }
    task.update(overrides)
    return task


def write_document(root, **collections) -> dict:
    document = {"tasks": [], "agents": [], "activities": [], "notifications": []}
    document.update(collections)
    path = paths.database(root)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(document, indent=2))
    return document


def read_document(root) -> dict:
    return json.loads(paths.database(root).read_text())
