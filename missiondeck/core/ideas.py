"""Idea log parser: a line-oriented state machine over the markdown idea bank.

States: IDLE (no idea open), IN_IDEA (idea open, no free-text section),
IN_SECTION (idea open and a multi-line section accumulating).

Each line is classified into exactly one LineKind and dispatched through
TRANSITIONS[(state, kind)]. Unknown or malformed lines never raise; they
fall through to CONTENT and are dropped when no section is open.
"""

import logging
import re
from collections import Counter
from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import Enum
from pathlib import Path

from missiondeck.models import Idea, IdeaStatus

log = logging.getLogger(__name__)


class ParseState(Enum):
    IDLE = "idle"
    IN_IDEA = "in_idea"
    IN_SECTION = "in_section"


class LineKind(Enum):
    DATE_HEADER = "date_header"
    IDEA_HEADER = "idea_header"
    TYPED_FIELD = "typed_field"
    SECTION_OPEN = "section_open"
    OTHER_LABEL = "other_label"
    CONTENT = "content"


DATE_HEADER = re.compile(r"^##\s+(\d{4}-\d{2}-\d{2})")
IDEA_HEADER = re.compile(r"^###?\s+#?(\d+)\s+[-|]\s+(.+)")
BOLD_LABEL = re.compile(r"^\*\*[^*]+:\*\*")
BULLET = re.compile(r"^\s*[-*+]\s+(.+)")
CHAPTER_REF = re.compile(r"Book\s+(\d+)\s+-\s+Chapter\s+(\d+)", re.IGNORECASE)

# Single-line fields. Searched anywhere in the line, checked in order.
TYPED_FIELDS = (
    ("quote_original", re.compile(r"\*\*Quote \(original\):\*\*\s+(.+)")),
    ("quote_refined", re.compile(r"\*\*Quote \(refined\):\*\*\s+(.+)")),
    ("quote", re.compile(r"\*\*Quote:\*\*\s+(.+)")),
    ("tags", re.compile(r"\*\*Tags:\*\*\s+(.+)")),
    ("chapter", re.compile(r"\*\*Chapter:\*\*\s+(.+)")),
    ("status", re.compile(r"\*\*Status:\*\*\s+(.+)")),
)

# Multi-line sections: (section, opener, keep the whole opener line as content).
SECTION_OPENERS = (
    ("notes", re.compile(r"^\*\*Notes:\*\*\s*"), False),
    ("tension", re.compile(r"^\*\*The tension:\*\*\s*", re.IGNORECASE), False),
    ("paradox", re.compile(r"^\*\*The paradox:\*\*\s*", re.IGNORECASE), False),
    ("connections", re.compile(r"^\*\*(Connection|The TensionLines|Why)", re.IGNORECASE), True),
    ("potential_content", re.compile(r"^\*\*Potential Content:\*\*\s*"), False),
)

# Ordered: the first group with a matching marker wins.
STATUS_MARKERS = (
    (IdeaStatus.SHIPPED, ("🟢", "used", "shipped", "posted")),
    (IdeaStatus.DRAFTED, ("🟠", "creating", "drafted")),
    (IdeaStatus.ASSIGNED, ("🟡", "organizing", "assigned")),
)

STATUS_LABELS = {
    IdeaStatus.SHIPPED: "🟢 Shipped",
    IdeaStatus.DRAFTED: "🟠 Drafted",
    IdeaStatus.ASSIGNED: "🟡 Assigned",
    IdeaStatus.CAPTURED: "⚪ Captured",
}


def classify_status(text: str) -> IdeaStatus:
    lowered = text.lower()
    for status, markers in STATUS_MARKERS:
        if any(marker in lowered for marker in markers):
            return status
    return IdeaStatus.CAPTURED


def _strip_quotes(value: str) -> str:
    return re.sub(r'^"|"$', "", value.strip())


@dataclass
class Line:
    kind: LineKind
    text: str
    match: re.Match | None = None
    name: str | None = None
    inline: str = ""


def classify(text: str) -> Line:
    if m := DATE_HEADER.match(text):
        return Line(LineKind.DATE_HEADER, text, m)
    if m := IDEA_HEADER.match(text):
        return Line(LineKind.IDEA_HEADER, text, m)
    for name, pattern in TYPED_FIELDS:
        if m := pattern.search(text):
            return Line(LineKind.TYPED_FIELD, text, m, name)
    for name, pattern, keep_line in SECTION_OPENERS:
        if m := pattern.match(text):
            inline = text.strip() if keep_line else text[m.end() :].strip()
            return Line(LineKind.SECTION_OPEN, text, m, name, inline)
    if BOLD_LABEL.match(text):
        return Line(LineKind.OTHER_LABEL, text)
    return Line(LineKind.CONTENT, text)


@dataclass
class _Parser:
    ideas: list[Idea] = field(default_factory=list)
    state: ParseState = ParseState.IDLE
    current: Idea | None = None
    current_date: str | None = None
    section: str | None = None
    buffer: list[str] = field(default_factory=list)

    def feed(self, text: str) -> None:
        line = classify(text)
        handler = TRANSITIONS.get((self.state, line.kind))
        if handler is not None:
            handler(self, line)

    def finish(self) -> list[Idea]:
        self._close_section()
        self._close_idea()
        self.state = ParseState.IDLE
        return self.ideas

    def _close_section(self) -> None:
        if self.current is not None and self.section and self.section != "potential_content":
            body = "\n".join(self.buffer).strip()
            if body:
                setattr(self.current, self.section, body)
        self.section = None
        self.buffer = []
        if self.state is ParseState.IN_SECTION:
            self.state = ParseState.IN_IDEA

    def _close_idea(self) -> None:
        if self.current is None:
            return
        idea = self.current
        idea.text = idea.quote_refined or idea.quote or idea.quote_original
        if idea.quote_refined:
            idea.quote = idea.quote_refined
        elif not idea.quote:
            idea.quote = idea.quote_original
        self.ideas.append(idea)
        self.current = None

    def on_date(self, line: Line) -> None:
        self._close_section()
        self.current_date = line.match.group(1)

    def on_idea(self, line: Line) -> None:
        self._close_section()
        self._close_idea()
        self.current = Idea(
            id=line.match.group(1),
            captured_at=line.match.group(2).strip(),
            date=self.current_date,
        )
        self.state = ParseState.IN_IDEA

    def on_field(self, line: Line) -> None:
        self._close_section()
        value = line.match.group(1).strip()
        idea = self.current
        if line.name in ("quote_original", "quote_refined", "quote"):
            setattr(idea, line.name, _strip_quotes(value))
        elif line.name == "tags":
            idea.tags = [t[1:] for t in value.split() if t.startswith("#") and len(t) > 1]
        elif line.name == "chapter":
            idea.chapter = value
        elif line.name == "status":
            idea.status_detail = value
            idea.status = classify_status(value).value

    def on_section(self, line: Line) -> None:
        self._close_section()
        self.section = line.name
        self.state = ParseState.IN_SECTION
        if line.inline and self.section != "potential_content":
            self.on_content(Line(LineKind.CONTENT, line.inline))

    def on_other_label(self, line: Line) -> None:
        self._close_section()

    def on_content(self, line: Line) -> None:
        if self.section == "potential_content":
            if m := BULLET.match(line.text):
                self.current.potential_content.append(m.group(1).strip())
            return
        self.buffer.append(line.text)


TRANSITIONS = {
    (ParseState.IDLE, LineKind.DATE_HEADER): _Parser.on_date,
    (ParseState.IDLE, LineKind.IDEA_HEADER): _Parser.on_idea,
    (ParseState.IN_IDEA, LineKind.DATE_HEADER): _Parser.on_date,
    (ParseState.IN_IDEA, LineKind.IDEA_HEADER): _Parser.on_idea,
    (ParseState.IN_IDEA, LineKind.TYPED_FIELD): _Parser.on_field,
    (ParseState.IN_IDEA, LineKind.SECTION_OPEN): _Parser.on_section,
    (ParseState.IN_SECTION, LineKind.DATE_HEADER): _Parser.on_date,
    (ParseState.IN_SECTION, LineKind.IDEA_HEADER): _Parser.on_idea,
    (ParseState.IN_SECTION, LineKind.TYPED_FIELD): _Parser.on_field,
    (ParseState.IN_SECTION, LineKind.SECTION_OPEN): _Parser.on_section,
    (ParseState.IN_SECTION, LineKind.OTHER_LABEL): _Parser.on_other_label,
    (ParseState.IN_SECTION, LineKind.CONTENT): _Parser.on_content,
}


def parse_ideas(text: str) -> list[Idea]:
    parser = _Parser()
    for raw in text.splitlines():
        parser.feed(raw)
    return parser.finish()


def load_ideas(path: Path) -> list[Idea]:
    if not path.exists():
        return []
    text = path.read_text(encoding="utf-8", errors="replace")
    ideas = parse_ideas(text)
    log.debug(f"Parsed {len(ideas)} ideas from {path}")
    return ideas


def format_idea(idea: Idea) -> str:
    """Render the recognized fields of an idea back to idea-log markdown."""
    lines = [f"### #{idea.id} - {idea.captured_at}", ""]
    if idea.quote_original:
        lines.append(f'**Quote (original):** "{idea.quote_original}"')
    if idea.quote_refined:
        lines.append(f'**Quote (refined):** "{idea.quote_refined}"')
    if idea.quote and idea.quote != (idea.quote_refined or idea.quote_original):
        lines.append(f'**Quote:** "{idea.quote}"')
    if idea.tags:
        lines.append("**Tags:** " + " ".join(f"#{t}" for t in idea.tags))
    if idea.chapter:
        lines.append(f"**Chapter:** {idea.chapter}")
    if idea.status_detail:
        lines.append(f"**Status:** {idea.status_detail}")
    elif idea.status != IdeaStatus.CAPTURED.value:
        lines.append(f"**Status:** {STATUS_LABELS[IdeaStatus(idea.status)]}")
    for name, label in (("notes", "Notes"), ("tension", "The tension"), ("paradox", "The paradox")):
        body = getattr(idea, name)
        if body:
            lines.extend(["", f"**{label}:**", body])
    if idea.connections:
        lines.extend(["", idea.connections])
    if idea.potential_content:
        lines.extend(["", "**Potential Content:**"])
        lines.extend(f"- {item}" for item in idea.potential_content)
    lines.append("")
    return "\n".join(lines)


def format_ideas(ideas: list[Idea]) -> str:
    out: list[str] = []
    current_date = None
    for idea in ideas:
        if idea.date and idea.date != current_date:
            out.append(f"## {idea.date}\n")
            current_date = idea.date
        out.append(format_idea(idea))
    return "\n".join(out)


def chapter_ref(idea: Idea) -> tuple[int, int] | None:
    """(book, chapter) from chapter text like 'Book 1 - Chapter 3'."""
    if m := CHAPTER_REF.search(idea.chapter):
        return int(m.group(1)), int(m.group(2))
    return None


WEEKLY_GOAL = 4


def _iso_week(day: date) -> str:
    year, week, _ = day.isocalendar()
    return f"{year}-W{week:02d}"


def idea_stats(ideas: list[Idea], today: date) -> dict:
    """Capture counts by period, weekly goal progress and streak, counts by status."""
    dated = []
    for idea in ideas:
        try:
            dated.append((idea, date.fromisoformat(idea.date)))
        except (TypeError, ValueError):
            continue

    week_start = today - timedelta(days=(today.weekday() + 1) % 7)
    month_start = today.replace(day=1)
    year_start = today.replace(month=1, day=1)
    thirty_days_ago = today - timedelta(days=30)

    daily = Counter(d.isoformat() for _, d in dated if d >= thirty_days_ago)
    weekly = Counter(_iso_week(d) for _, d in dated)
    monthly = Counter(d.isoformat()[:7] for _, d in dated)

    this_week = sum(1 for _, d in dated if d >= week_start)
    streak = 0
    for _, count in sorted(weekly.items(), reverse=True):
        if count < WEEKLY_GOAL:
            break
        streak += 1

    by_status = Counter(idea.status for idea in ideas)
    return {
        "total": len(ideas),
        "today": sum(1 for _, d in dated if d == today),
        "thisWeek": this_week,
        "thisMonth": sum(1 for _, d in dated if d >= month_start),
        "thisYear": sum(1 for _, d in dated if d >= year_start),
        "weeklyGoal": WEEKLY_GOAL,
        "weeklyProgress": this_week,
        "needsMoreIdeas": this_week < WEEKLY_GOAL,
        "streak": streak,
        "dailyCounts": dict(daily),
        "weeklyCounts": dict(weekly),
        "monthlyCounts": dict(monthly),
        "byStatus": {s.value: by_status.get(s.value, 0) for s in IdeaStatus},
    }
