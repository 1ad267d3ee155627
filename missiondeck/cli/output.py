import json as json_lib

import typer

from missiondeck.models import AlertLevel, Idea, Task, TimeTracking

ALERT_MARKS = {AlertLevel.NONE: " ", AlertLevel.YELLOW: "!", AlertLevel.RED: "‼"}
IDEA_TEXT_WIDTH = 72


def init_context(ctx: typer.Context, json_output: bool = False, quiet_output: bool = False) -> None:
    """Store the group-level --json/--quiet flags on the context."""
    if ctx.obj is None or not isinstance(ctx.obj, dict):
        ctx.obj = {}
    ctx.obj["json_output"] = json_output
    ctx.obj["quiet_output"] = quiet_output


def is_json_mode(ctx: typer.Context) -> bool:
    return ctx.obj.get("json_output", False) if ctx.obj else False


def is_quiet_mode(ctx: typer.Context) -> bool:
    return ctx.obj.get("quiet_output", False) if ctx.obj else False


def echo_json(data, ctx: typer.Context) -> bool:
    """Print data as JSON in --json mode. Returns whether anything was printed."""
    if is_json_mode(ctx):
        typer.echo(json_lib.dumps(data, indent=2, default=str))
        return True
    return False


def echo_text(msg: str, ctx: typer.Context) -> None:
    if not is_quiet_mode(ctx):
        typer.echo(msg)


def idea_row(idea: Idea) -> str:
    text = idea.text.replace("\n", " ")
    if len(text) > IDEA_TEXT_WIDTH:
        text = text[: IDEA_TEXT_WIDTH - 3] + "..."
    return f"#{idea.id} [{idea.status:<8}] {text}"


def task_row(task: Task, tracking: TimeTracking, marker: str | None = None) -> str:
    """One task line: alert marker, id, status, time in status, title."""
    if marker is None:
        marker = ALERT_MARKS[tracking.alert_level]
    return f"{marker} {task.id:<20} {task.status:<12} {tracking.human:>8}  {task.title}"
