import os
from pathlib import Path


def workspace_root() -> Path:
    """Root of the watched workspace, $MISSIONDECK_ROOT or ~/mission."""
    override = os.environ.get("MISSIONDECK_ROOT")
    if override:
        return Path(override).expanduser()
    return Path.home() / "mission"


def _root(root: Path | None) -> Path:
    return Path(root) if root is not None else workspace_root()


def dot_dir(root: Path | None = None) -> Path:
    return _root(root) / ".missiondeck"


def package_root() -> Path:
    return Path(__file__).resolve().parent.parent


def mission_control_dir(root: Path | None = None) -> Path:
    return _root(root) / "mission-control"


def database(root: Path | None = None) -> Path:
    return mission_control_dir(root) / "database.json"


def recurring_tasks(root: Path | None = None) -> Path:
    return mission_control_dir(root) / "recurring-tasks.json"


def ideas_bank(root: Path | None = None) -> Path:
    return _root(root) / "content" / "ideas-bank.md"


def memory_dir(root: Path | None = None) -> Path:
    return _root(root) / "memory"


def drafts_root(root: Path | None = None) -> Path:
    """Per-agent workspaces; drafts live in <agent>/drafts/*.md."""
    return _root(root) / "philosophers"


def books_dir(root: Path | None = None) -> Path:
    return _root(root) / "books"


def posting_schedule(root: Path | None = None) -> Path:
    return _root(root) / "POSTING_SCHEDULE.md"


def validate_record_id(value: str, max_length: int = 100) -> tuple[bool, str]:
    if not value:
        return False, "ID cannot be empty"
    if len(value) > max_length:
        return False, f"ID longer than {max_length} characters"
    if not all(ch.isalnum() or ch in "-_" for ch in value) or not value.isascii():
        return False, "ID must be alphanumeric (with - and _ allowed)"
    return True, ""
