import asyncio
from collections import Counter

import pytest

from missiondeck.core.cache import Category
from missiondeck.core.watcher import (
    Debouncer,
    FileWatcher,
    WatchRoute,
    default_routes,
    resolve_category,
)


@pytest.mark.parametrize(
    ("relative", "category"),
    [
        ("mission-control/database.json", Category.STORE),
        ("mission-control/recurring-tasks.json", Category.RECURRING),
        ("content/ideas-bank.md", Category.IDEAS),
        ("memory/2026-03-10.md", Category.MEMORY),
        ("philosophers/seneca/drafts/post-twitter.md", Category.DRAFTS),
        ("books/book-1/PROJECT_TRACKER.md", Category.BOOKS),
        ("books/book-1/chapters/chapter-3.md", Category.BOOKS),
        ("books/book-1/outline/MASTER_OUTLINE.md", Category.BOOKS),
        ("POSTING_SCHEDULE.md", Category.SCHEDULE),
    ],
)
def test_resolve_category(tmp_path, relative, category):
    assert resolve_category(tmp_path / relative, tmp_path, default_routes()) is category


@pytest.mark.parametrize(
    "relative",
    [
        "mission-control/.database-abc.tmp",
        ".git/index",
        "content/notes.txt",
        "random.md",
        "content/weekly-plan.md",
        "mission-control/backup.json",
        "memory/archive/2026-03-10.md",
        "books/b1/notes/x.md",
    ],
)
def test_unrelated_paths_are_ignored(tmp_path, relative):
    assert resolve_category(tmp_path / relative, tmp_path, default_routes()) is None


def test_paths_outside_root_are_ignored(tmp_path):
    root = tmp_path / "mission"
    outside = tmp_path / "elsewhere" / "content" / "ideas-bank.md"
    assert resolve_category(outside, root, default_routes()) is None


def test_route_shape():
    drafts = WatchRoute(Category.DRAFTS, "philosophers/*/drafts/*.md")
    memory = WatchRoute(Category.MEMORY, "memory/*.md")
    schedule = WatchRoute(Category.SCHEDULE, "POSTING_SCHEDULE.md")

    assert (drafts.base, drafts.recursive) == ("philosophers", True)
    assert (memory.base, memory.recursive) == ("memory", False)
    assert (schedule.base, schedule.recursive) == ("", False)


def test_missing_bases_fall_back_to_recursive_root(tmp_path):
    (tmp_path / "memory").mkdir()
    watcher = FileWatcher(tmp_path, lambda category: None)
    dirs = watcher._watch_dirs()
    assert dirs[tmp_path / "memory"] is False
    assert dirs[tmp_path] is True


@pytest.mark.asyncio
async def test_debouncer_coalesces_per_key():
    fired = []
    debouncer = Debouncer(0.05, fired.append)

    for _ in range(3):
        debouncer.trigger(Category.IDEAS)
        await asyncio.sleep(0.01)
    debouncer.trigger(Category.STORE)
    assert debouncer.pending() == 2

    await asyncio.sleep(0.2)
    assert Counter(fired) == {Category.IDEAS: 1, Category.STORE: 1}
    assert debouncer.pending() == 0


@pytest.mark.asyncio
async def test_debouncer_restarts_window():
    fired = []
    debouncer = Debouncer(0.1, fired.append)

    debouncer.trigger("k")
    await asyncio.sleep(0.07)
    debouncer.trigger("k")
    await asyncio.sleep(0.07)
    assert fired == []

    await asyncio.sleep(0.1)
    assert fired == ["k"]


@pytest.mark.asyncio
async def test_debouncer_survives_callback_errors():
    calls = []

    def callback(key):
        calls.append(key)
        raise RuntimeError("boom")

    debouncer = Debouncer(0.01, callback)
    debouncer.trigger("a")
    await asyncio.sleep(0.05)
    debouncer.trigger("a")
    await asyncio.sleep(0.05)
    assert calls == ["a", "a"]


@pytest.mark.asyncio
async def test_cancel_all_drops_pending():
    fired = []
    debouncer = Debouncer(0.05, fired.append)
    debouncer.trigger("a")
    debouncer.cancel_all()
    await asyncio.sleep(0.1)
    assert fired == []


def test_threadsafe_trigger_without_loop_is_dropped():
    debouncer = Debouncer(0.01, lambda key: None)
    debouncer.trigger_threadsafe("a")
    assert debouncer.pending() == 0
