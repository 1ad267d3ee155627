"""Command-line entry point for missiondeck."""

import asyncio
import logging

import typer

from missiondeck.core.broadcast import CATEGORY_CHANNELS
from missiondeck.core.cache import Cache, Category
from missiondeck.core.ideas import load_ideas
from missiondeck.core.monitor import StuckTaskMonitor, stuck_tasks
from missiondeck.core.store import Store
from missiondeck.core.tracking import compute_time_in_status
from missiondeck.core.watcher import FileWatcher
from missiondeck.lib import config, paths
from missiondeck.models import Task

from . import output
from .errors import error_feedback

app = typer.Typer(
    invoke_without_command=True,
    add_completion=False,
    help="Mission dashboard core: structured store, idea log, live invalidation.",
)


def configure_logging() -> None:
    level = str(config.load_config().get("log_level", "INFO")).upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="[missiondeck] %(levelname)s %(name)s: %(message)s",
    )


@app.callback(context_settings={"help_option_names": ["-h", "--help"]})
def main_callback(
    ctx: typer.Context,
    json_output: bool = typer.Option(False, "--json", "-j", help="Output in JSON format."),
    quiet_output: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
):
    output.init_context(ctx, json_output, quiet_output)

    if ctx.resilient_parsing:
        return

    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())


@app.command()
@error_feedback
def init(ctx: typer.Context):
    """Write the default config into the workspace."""
    path = config.init_config()
    if output.echo_json({"config": str(path)}, ctx):
        return
    output.echo_text(f"Config: {path}", ctx)


@app.command()
@error_feedback
def serve(
    host: str = typer.Option(None, "--host", help="Bind address."),
    port: int = typer.Option(None, "--port", help="Port."),
):
    """Run the HTTP API with the file watcher and stuck-task monitor."""
    import uvicorn

    from missiondeck.api.main import create_app

    configure_logging()
    api_cfg = config.section("api")
    uvicorn.run(
        create_app(),
        host=host or api_cfg.get("host", "127.0.0.1"),
        port=port or int(api_cfg.get("port", 8000)),
    )


@app.command()
@error_feedback
def ideas(
    ctx: typer.Context,
    status: str = typer.Option(None, "--status", "-s", help="Filter by idea status."),
):
    """List ideas parsed from the idea log."""
    items = load_ideas(paths.ideas_bank())
    if status:
        items = [i for i in items if i.status == status]

    if output.echo_json([i.to_dict() for i in items], ctx):
        return
    if not items:
        output.echo_text("No ideas.", ctx)
        return
    for idea in items:
        typer.echo(output.idea_row(idea))


def _load_tasks() -> list[dict]:
    return Store(paths.database(), Cache()).load()["tasks"]


@app.command()
@error_feedback
def tasks(
    ctx: typer.Context,
    status: str = typer.Option(None, "--status", "-s", help="Filter by task status."),
):
    """List tasks with time in status and alert level."""
    records = [t for t in _load_tasks() if isinstance(t, dict)]
    if status:
        records = [t for t in records if t.get("status") == status]

    rows = []
    for record in records:
        task = Task.from_dict(record)
        rows.append((task, compute_time_in_status(task)))

    if output.echo_json(
        [{**r, "timeTracking": tr.to_dict()} for r, (_, tr) in zip(records, rows)], ctx
    ):
        return
    if not rows:
        output.echo_text("No tasks.", ctx)
        return
    for task, tracking in rows:
        typer.echo(output.task_row(task, tracking))


@app.command()
@error_feedback
def stuck(
    ctx: typer.Context,
    notify: bool = typer.Option(
        False, "--notify", help="Run one monitor sweep and persist alerts."
    ),
):
    """Show active tasks at yellow or red."""
    found = stuck_tasks(_load_tasks())
    created = []
    if notify:
        monitor_cfg = config.section("monitor")
        monitor = StuckTaskMonitor(
            Store(paths.database(), Cache()),
            orchestrator=monitor_cfg.get("orchestrator", "lead"),
        )
        monitor.restore_notified()
        created = monitor.sweep()

    payload = {
        "stuck": [
            {"id": t.id, "title": t.title, "status": t.status, **tr.to_dict()} for t, tr in found
        ],
        "notificationsCreated": len(created),
    }
    if output.echo_json(payload, ctx):
        return
    if not found:
        output.echo_text("Nothing stuck.", ctx)
    for task, tracking in found:
        typer.echo(output.task_row(task, tracking, marker=f"{tracking.alert_level.value:<6}"))
    if notify:
        output.echo_text(f"Created {len(created)} notification(s).", ctx)


@app.command()
@error_feedback
def watch(ctx: typer.Context):
    """Print each debounced invalidation and the channels it maps to."""
    configure_logging()
    root = paths.workspace_root()
    debounce = float(config.section("watcher").get("debounce_ms", 500)) / 1000

    def on_change(category: Category) -> None:
        channels = list(CATEGORY_CHANNELS.get(category, ()))
        if output.echo_json({"category": category.value, "channels": channels}, ctx):
            return
        typer.echo(f"{category.value} -> {', '.join(channels)}")

    async def run() -> None:
        watcher = FileWatcher(root, on_change, debounce_seconds=debounce)
        watcher.start()
        output.echo_text(f"Watching {root} (Ctrl-C to stop)", ctx)
        try:
            while True:
                await asyncio.sleep(3600)
        finally:
            watcher.stop()

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        output.echo_text("Stopped.", ctx)


def main() -> None:
    """Entry point for missiondeck command."""
    try:
        app()
    except SystemExit:
        raise
    except BaseException as e:
        raise SystemExit(1) from e
