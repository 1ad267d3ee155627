"""Loaders for the knowledge-side cache regions: memory notes, drafts, books, schedule."""

import json
import logging
import re
from datetime import datetime, timezone
from pathlib import Path

import yaml

from missiondeck.lib.format import iso
from missiondeck.models import Idea

from .ideas import chapter_ref

log = logging.getLogger(__name__)

MAX_CONTENT_BYTES = 1024 * 1024
TRUNCATION_NOTE = "\n\n[Content truncated - file too large]"

PLATFORMS = ("twitter", "bluesky", "threads", "reddit", "medium")

BOOK_ID = re.compile(r"^[A-Za-z0-9_-]+$")
OUTLINE_CHAPTER = re.compile(r"^####\s+Chapter\s+(\d+):\s+(.+)")
PHASE_HEADER = re.compile(r"^###\s+Phase\s+(\d+):\s+(.+)\s+\((.+)\)")
CHECKBOX = re.compile(r"^-\s+\[([ xX])\]\s*(.*)")
TABLE_CHAPTER = re.compile(r"Ch\s+(\d+)")
SCHEDULE_ENTRY = re.compile(r"^-\s+\*\*(\d{1,2}:\d{2}\s+[AP]M):\*\*\s+(.+)")


def truncate(text: str, max_bytes: int = MAX_CONTENT_BYTES) -> str:
    encoded = text.encode("utf-8")
    if len(encoded) <= max_bytes:
        return text
    return encoded[:max_bytes].decode("utf-8", errors="ignore") + TRUNCATION_NOTE


def _mtime(path: Path) -> str:
    return iso(datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc))


def _read_text(path: Path) -> str:
    return path.read_text(encoding="utf-8", errors="replace")


def load_memory_files(memory_dir: Path, max_bytes: int = MAX_CONTENT_BYTES) -> list[dict]:
    if not memory_dir.is_dir():
        return []
    files = []
    for path in memory_dir.glob("*.md"):
        files.append(
            {
                "filename": path.name,
                "content": truncate(_read_text(path), max_bytes),
                "size": path.stat().st_size,
                "modified": _mtime(path),
            }
        )
    return sorted(files, key=lambda f: f["modified"], reverse=True)


def split_front_matter(text: str) -> tuple[dict, str]:
    """Split a leading `---` YAML block from the body. Bad YAML yields empty metadata."""
    if not text.startswith("---"):
        return {}, text
    parts = text.split("\n---", 1)
    if len(parts) != 2:
        return {}, text
    header = parts[0][3:]
    body = parts[1].split("\n", 1)[1] if "\n" in parts[1] else ""
    try:
        metadata = yaml.safe_load(header) or {}
    except yaml.YAMLError as e:
        log.debug(f"Ignoring malformed front matter: {e}")
        return {}, body
    if not isinstance(metadata, dict):
        return {}, body
    return metadata, body


def infer_platform(filename: str) -> str:
    lowered = filename.lower()
    for platform in PLATFORMS:
        if platform in lowered:
            return platform
    return "unknown"


def load_drafts(drafts_root: Path, max_bytes: int = MAX_CONTENT_BYTES) -> list[dict]:
    if not drafts_root.is_dir():
        return []
    drafts = []
    for agent_dir in sorted(p for p in drafts_root.iterdir() if p.is_dir()):
        drafts_dir = agent_dir / "drafts"
        if not drafts_dir.is_dir():
            continue
        for path in drafts_dir.glob("*.md"):
            metadata, body = split_front_matter(_read_text(path))
            drafts.append(
                {
                    "philosopher": agent_dir.name,
                    "filename": path.name,
                    "platform": infer_platform(path.name),
                    "content": truncate(body, max_bytes),
                    "metadata": json.loads(json.dumps(metadata, default=str)),
                    "modified": _mtime(path),
                    "size": path.stat().st_size,
                }
            )
    return sorted(drafts, key=lambda d: d["modified"], reverse=True)


def _percent(part: int, whole: int) -> int:
    return round(part / whole * 100) if whole > 0 else 0


def _int(cell: str) -> int:
    try:
        return int(cell.replace(",", ""))
    except ValueError:
        return 0


def chapter_titles(book_dir: Path) -> dict[int, str]:
    outline = book_dir / "outline" / "MASTER_OUTLINE.md"
    if not outline.exists():
        return {}
    titles = {}
    for line in _read_text(outline).splitlines():
        if m := OUTLINE_CHAPTER.match(line):
            titles[int(m.group(1))] = m.group(2).strip()
    return titles


def parse_tracker(book_id: str, text: str, titles: dict[int, str]) -> dict:
    book = {
        "id": book_id,
        "name": "",
        "phase": "",
        "totalWords": 0,
        "targetWords": 0,
        "chapters": [],
        "phases": [],
    }
    phase = None
    in_table = False
    skip_separator = False

    for line in text.splitlines():
        if line.startswith("# ") and not book["name"]:
            book["name"] = line[2:].replace(" - Project Tracker", "").strip()
        if "**Current Phase:**" in line:
            book["phase"] = line.split("**Current Phase:**", 1)[1].strip()

        if m := PHASE_HEADER.match(line):
            phase = {
                "number": int(m.group(1)),
                "name": m.group(2).strip(),
                "status": m.group(3).strip(),
                "tasks": [],
            }
            book["phases"].append(phase)
        if phase is not None and (m := CHECKBOX.match(line)):
            phase["tasks"].append({"task": m.group(2).strip(), "completed": m.group(1) != " "})

        if "| Chapter | Target | Current | Status |" in line:
            in_table = True
            skip_separator = True
            continue
        if skip_separator:
            skip_separator = False
            continue
        if not (in_table and line.startswith("|")):
            continue

        cells = [c.strip() for c in line.split("|") if c.strip()]
        if len(cells) < 3:
            continue
        if cells[0] == "**Total**":
            book["targetWords"] = _int(cells[1])
            book["totalWords"] = _int(cells[2])
            in_table = False
        elif cells[0].startswith("Ch ") or cells[0] == "Intro":
            m = TABLE_CHAPTER.match(cells[0])
            number = int(m.group(1)) if m else 0
            target, current = _int(cells[1]), _int(cells[2])
            book["chapters"].append(
                {
                    "number": number,
                    "title": titles.get(number) or ("Introduction" if number == 0 else ""),
                    "targetWords": target,
                    "currentWords": current,
                    "status": cells[3] if len(cells) > 3 else "",
                    "percentComplete": _percent(current, target),
                }
            )

    for p in book["phases"]:
        p["percentComplete"] = _percent(sum(t["completed"] for t in p["tasks"]), len(p["tasks"]))
    book["percentComplete"] = _percent(book["totalWords"], book["targetWords"])
    return book


def load_books(books_dir: Path) -> list[dict]:
    if not books_dir.is_dir():
        return []
    books = []
    for book_dir in sorted(p for p in books_dir.iterdir() if p.is_dir()):
        tracker = book_dir / "PROJECT_TRACKER.md"
        if not tracker.exists():
            continue
        books.append(parse_tracker(book_dir.name, _read_text(tracker), chapter_titles(book_dir)))
    return books


def _book_dir(books_dir: Path, book_id: str) -> Path:
    if not book_id or not BOOK_ID.match(book_id):
        raise ValueError("Invalid book ID")
    book_dir = (books_dir / book_id).resolve()
    if book_dir.parent != books_dir.resolve() or not book_dir.is_dir():
        raise ValueError("Invalid book ID")
    return book_dir


def _book_number(book_id: str) -> int | None:
    digits = re.findall(r"\d+", book_id)
    return int(digits[-1]) if digits else None


def chapter_details(
    books_dir: Path,
    book_id: str,
    number: int,
    ideas: list[Idea],
    max_bytes: int = MAX_CONTENT_BYTES,
) -> dict:
    book_dir = _book_dir(books_dir, book_id)
    if not isinstance(number, int) or not 0 <= number <= 100:
        raise ValueError("Invalid chapter number")

    chapter = {
        "bookId": book_id,
        "number": number,
        "title": chapter_titles(book_dir).get(number, f"Chapter {number}"),
        "content": "",
        "wordCount": 0,
        "ideas": [],
        "outline": "",
    }

    chapter_path = book_dir / "chapters" / f"chapter-{number}.md"
    if chapter_path.exists():
        raw = _read_text(chapter_path)
        chapter["content"] = truncate(raw, max_bytes)
        chapter["wordCount"] = len(raw.split())

    outline = book_dir / "outline" / "MASTER_OUTLINE.md"
    if outline.exists():
        collected, inside = [], False
        for line in _read_text(outline).splitlines():
            if line.startswith(f"#### Chapter {number}:"):
                inside = True
                continue
            if inside:
                if line.startswith("####"):
                    break
                collected.append(line)
        chapter["outline"] = "\n".join(collected).strip()

    book_number = _book_number(book_id)
    for idea in ideas:
        ref = chapter_ref(idea)
        if ref is None or ref[1] != number:
            continue
        if book_number is not None and ref[0] != book_number:
            continue
        chapter["ideas"].append(idea.to_dict())
    return chapter


def load_schedule(path: Path) -> dict:
    if not path.exists():
        return {"content": "", "dailySchedule": [], "lastUpdated": None}
    content = _read_text(path)
    daily = [
        {"time": m.group(1), "description": m.group(2).strip()}
        for line in content.splitlines()
        if (m := SCHEDULE_ENTRY.match(line))
    ]
    return {"content": content, "dailySchedule": daily, "lastUpdated": _mtime(path)}


def load_recurring_tasks(path: Path) -> dict:
    if not path.exists():
        return {"recurringTasks": []}
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, list):
        return {"recurringTasks": data}
    return data
