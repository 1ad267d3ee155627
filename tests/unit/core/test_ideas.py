from datetime import date

import pytest

from missiondeck.core.ideas import (
    ParseState,
    _Parser,
    chapter_ref,
    classify_status,
    format_ideas,
    idea_stats,
    load_ideas,
    parse_ideas,
)
from missiondeck.models import Idea, IdeaStatus

IDEA_LOG = """# Ideas Bank

Preamble text that belongs to no idea.
**Quote:** "ignored, no idea open"

## 2026-03-09

### #007 - 08:00 AM PST

**Quote (original):** "x"
**Quote (refined):** "y"
**Tags:** #freedom #will notatag
**Chapter:** Book 1 - Chapter 3
**Status:** 🟠 Creating draft

**Notes:**
First note line.
Second note line.

**The Tension:** inline tension
continues here

**Connection to Book 1:** links to the prologue
more connection

**Potential Content:**
- Thread on will
* Essay on freedom
not a bullet
+ Short post

**Source:** podcast

## 2026-03-10

### 008 | 09:15 AM PST
**Quote:** "plain quote"
**Status:** used in Twitter post
"""


def test_parses_ideas_with_dates_and_ids():
    ideas = parse_ideas(IDEA_LOG)
    assert [i.id for i in ideas] == ["007", "008"]
    assert ideas[0].date == "2026-03-09"
    assert ideas[1].date == "2026-03-10"
    assert ideas[0].captured_at == "08:00 AM PST"
    assert ideas[0].number == 7


def test_refined_quote_wins_as_text():
    """### #007 with original "x" and refined "y" yields text "y"."""
    idea = parse_ideas(IDEA_LOG)[0]
    assert idea.text == "y"
    assert idea.quote == "y"
    assert idea.quote_original == "x"
    assert idea.quote_refined == "y"


def test_refined_wins_regardless_of_line_order():
    text = '### #1 - now\n**Quote (refined):** "y"\n**Quote (original):** "x"\n'
    assert parse_ideas(text)[0].text == "y"


def test_plain_quote_beats_original():
    text = '### #1 - now\n**Quote (original):** "x"\n**Quote:** "q"\n'
    assert parse_ideas(text)[0].text == "q"


def test_original_only_becomes_text_and_quote():
    idea = parse_ideas('### #1 - now\n**Quote (original):** "x"\n')[0]
    assert idea.text == "x"
    assert idea.quote == "x"


def test_typed_fields():
    idea = parse_ideas(IDEA_LOG)[0]
    assert idea.tags == ["freedom", "will"]
    assert idea.chapter == "Book 1 - Chapter 3"
    assert idea.status == IdeaStatus.DRAFTED.value
    assert idea.status_detail == "🟠 Creating draft"


def test_sections_accumulate_until_next_label():
    idea = parse_ideas(IDEA_LOG)[0]
    assert idea.notes == "First note line.\nSecond note line."
    assert idea.tension == "inline tension\ncontinues here"
    assert idea.connections == "**Connection to Book 1:** links to the prologue\nmore connection"


def test_potential_content_keeps_only_bullets():
    idea = parse_ideas(IDEA_LOG)[0]
    assert idea.potential_content == ["Thread on will", "Essay on freedom", "Short post"]


def test_text_on_potential_content_label_line_is_dropped():
    log = "### #001 - 08:00 AM PST\n**Potential Content:** - inline idea\n- Listed idea\n"
    (idea,) = parse_ideas(log)
    assert idea.potential_content == ["Listed idea"]


def test_unknown_label_closes_section():
    idea = parse_ideas(IDEA_LOG)[0]
    assert "podcast" not in idea.notes
    assert "podcast" not in " ".join(idea.potential_content)


def test_lines_before_first_idea_are_ignored():
    ideas = parse_ideas(IDEA_LOG)
    assert all("ignored" not in i.text for i in ideas)


def test_pipe_header_and_status_used():
    idea = parse_ideas(IDEA_LOG)[1]
    assert idea.id == "008"
    assert idea.text == "plain quote"
    assert idea.status == IdeaStatus.SHIPPED.value


def test_date_header_keeps_open_idea():
    text = "### #1 - now\n## 2026-01-02\n**Quote:** \"late\"\n"
    idea = parse_ideas(text)[0]
    assert idea.text == "late"
    assert idea.date is None


def test_empty_section_stays_empty():
    idea = parse_ideas("### #1 - now\n**Notes:**\n\n### #2 - later\n")[0]
    assert idea.notes == ""


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("🟢 Shipped", IdeaStatus.SHIPPED),
        ("Posted to Bluesky", IdeaStatus.SHIPPED),
        ("CREATING a thread (drafted soon)", IdeaStatus.DRAFTED),
        ("🟡 organizing", IdeaStatus.ASSIGNED),
        ("assigned and used", IdeaStatus.SHIPPED),
        ("just captured", IdeaStatus.CAPTURED),
    ],
)
def test_classify_status_priority(text, expected):
    assert classify_status(text) is expected


def test_parse_is_deterministic():
    assert parse_ideas(IDEA_LOG) == parse_ideas(IDEA_LOG)


def test_format_then_parse_is_idempotent():
    first = parse_ideas(IDEA_LOG)
    assert parse_ideas(format_ideas(first)) == first


def test_format_idempotent_with_distinct_plain_quote():
    text = '### #3 - noon\n**Quote (original):** "a"\n**Quote:** "b"\n**Tags:** #x\n'
    first = parse_ideas(text)
    assert parse_ideas(format_ideas(first)) == first


def test_malformed_input_never_raises():
    garbage = "### #\n**Quote:**\n## not-a-date\n\x00�\n**Tags:** \n- stray bullet\n"
    assert parse_ideas(garbage) == []


def test_parser_returns_to_idle():
    parser = _Parser()
    for line in "### #1 - now\n**Notes:**\nbody\n".splitlines():
        parser.feed(line)
    assert parser.state is ParseState.IN_SECTION
    parser.finish()
    assert parser.state is ParseState.IDLE


def test_load_ideas_missing_file_is_empty(tmp_path):
    assert load_ideas(tmp_path / "missing.md") == []


def test_load_ideas_replaces_bad_bytes(tmp_path):
    path = tmp_path / "ideas.md"
    path.write_bytes(b'### #1 - now\n**Quote:** "caf\xe9"\n')
    idea = load_ideas(path)[0]
    assert idea.text.startswith("caf")


def test_chapter_ref():
    assert chapter_ref(Idea(id="1", captured_at="", chapter="Book 2 - Chapter 11")) == (2, 11)
    assert chapter_ref(Idea(id="1", captured_at="", chapter="someday")) is None


def test_idea_stats_weekly_goal_and_streak():
    today = date(2026, 3, 11)  # Wednesday; goal week starts Sunday 03-08
    days = ["2026-03-09", "2026-03-10", "2026-03-11", "2026-03-11"]
    days += ["2026-03-02", "2026-03-03", "2026-03-04", "2026-03-05"]
    ideas = [Idea(id=str(n), captured_at="", date=d) for n, d in enumerate(days)]
    ideas.append(Idea(id="99", captured_at="", date=None, status="shipped"))

    stats = idea_stats(ideas, today)
    assert stats["total"] == 9
    assert stats["today"] == 2
    assert stats["thisWeek"] == 4
    assert stats["needsMoreIdeas"] is False
    assert stats["thisMonth"] == 8
    assert stats["streak"] == 2
    assert stats["byStatus"]["shipped"] == 1
    assert stats["weeklyCounts"] == {"2026-W10": 4, "2026-W11": 4}
