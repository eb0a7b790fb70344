"""TimeCraft CLI - calendar and task dashboard."""

import json
import logging
import queue
import sys
import threading
from datetime import date

import click

from .config import Config, load_config
from .core.snapshot import DashboardSnapshot, format_snapshot
from .errors import ConfigError, TaskSourceError
from .progress import ProgressBroker, ProgressEvent, Stage, forward_logs
from .workflows import (
    accept_suggestion,
    build_aggregator,
    current_context,
    get_cache,
    refresh_dashboard,
)


def _config_or_exit() -> Config:
    """Load and validate configuration; invalid config is fatal."""
    try:
        config = load_config()
        config.validate()
    except ConfigError as e:
        click.echo(f"Configuration error: {e}", err=True)
        sys.exit(1)
    return config


def _parse_date(value: str | None) -> date | None:
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise click.BadParameter(f"Invalid date: {value} (expected YYYY-MM-DD)")


def _show_snapshot(snapshot: DashboardSnapshot, as_json: bool) -> None:
    if as_json:
        click.echo(json.dumps(snapshot.to_dict(), indent=2))
    else:
        click.echo(format_snapshot(snapshot))


def _echo_event(event: ProgressEvent) -> None:
    """One line per progress event on stderr."""
    if event.stage == Stage.LOG:
        click.echo(f"  · {event.message}", err=True)
    elif event.stage == Stage.ERROR:
        click.echo(f"[error] {event.message}", err=True)
    else:
        click.echo(f"[{event.stage.value}] {event.message}", err=True)


@click.group()
@click.version_option()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def main(debug: bool):
    """TimeCraft - calendar, tasks and title suggestions in one view."""
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=logging.DEBUG if debug else logging.WARNING,
    )


@main.command()
@click.option("--date", "-d", "target_date", default=None, help="Day to show (YYYY-MM-DD), defaults to today")
@click.option("--force", is_flag=True, help="Discard cached suggestions and regenerate them")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.option("--follow", "-f", is_flag=True, help="Stream progress and log messages while loading")
def dashboard(target_date: str | None, force: bool, as_json: bool, follow: bool):
    """Build today's dashboard."""
    config = _config_or_exit()
    target = _parse_date(target_date)

    if not follow:
        try:
            snapshot = refresh_dashboard(config, target_date=target, force_update=force)
        except ConfigError as e:
            click.echo(f"Configuration error: {e}", err=True)
            sys.exit(1)
        _show_snapshot(snapshot, as_json)
        return

    broker = ProgressBroker()
    cancel = threading.Event()
    try:
        aggregator = build_aggregator(config, progress=broker)
    except ConfigError as e:
        click.echo(f"Configuration error: {e}", err=True)
        sys.exit(1)

    result: list[DashboardSnapshot] = []
    with broker.subscribe() as events, forward_logs(broker, propagate=False):
        worker = threading.Thread(
            target=lambda: result.append(
                aggregator.build(target_date=target, force_update=force, cancel=cancel)
            ),
            daemon=True,
        )
        worker.start()
        try:
            while worker.is_alive() or not events.empty():
                try:
                    _echo_event(events.get(timeout=0.2))
                except queue.Empty:
                    continue
        except KeyboardInterrupt:
            click.echo("Stopping after the current task...", err=True)
            cancel.set()
            worker.join()

    if result:
        _show_snapshot(result[0], as_json)


@main.command()
def context():
    """Show the task and calendar context sent to the language model."""
    config = _config_or_exit()
    try:
        text, updated = current_context(config)
    except ConfigError as e:
        click.echo(f"Configuration error: {e}", err=True)
        sys.exit(1)
    if updated:
        click.echo(f"# Context built {updated.strftime('%Y-%m-%d %H:%M')}\n")
    click.echo(text)


@main.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def suggestions(as_json: bool):
    """List cached title suggestions."""
    config = _config_or_exit()
    cached = get_cache(config).get_all()

    if as_json:
        click.echo(json.dumps({k: v.to_dict() for k, v in cached.items()}, indent=2))
        return

    if not cached:
        click.echo("No cached suggestions.")
        return

    for task_id, suggestion_set in cached.items():
        click.echo(f"Task {task_id}:")
        for i, s in enumerate(suggestion_set.suggestions, start=1):
            click.echo(f"  {i}. {s.new_title} (~{s.estimated_duration_minutes} min)")
            if s.reason:
                click.echo(f"     {s.reason}")


@main.command()
@click.argument("task_id")
@click.argument("title", required=False)
@click.option("--pick", "-p", default=1, show_default=True, help="Use the Nth cached suggestion when no TITLE is given")
def accept(task_id: str, title: str | None, pick: int):
    """Rename TASK_ID in Todoist and mark it optimized."""
    config = _config_or_exit()

    if not title:
        suggestion_set = get_cache(config).get(task_id)
        if suggestion_set is None:
            click.echo(f"No cached suggestions for task {task_id}.", err=True)
            sys.exit(1)
        if not 1 <= pick <= len(suggestion_set.suggestions):
            click.echo(f"--pick must be between 1 and {len(suggestion_set.suggestions)}", err=True)
            sys.exit(1)
        title = suggestion_set.suggestions[pick - 1].new_title

    try:
        accept_suggestion(config, task_id, title)
    except ConfigError as e:
        click.echo(f"Configuration error: {e}", err=True)
        sys.exit(1)
    except TaskSourceError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(f"✓ Renamed task {task_id} to: {title}")


@main.command("clear-cache")
def clear_cache():
    """Drop all cached suggestions."""
    config = _config_or_exit()
    get_cache(config).force_clear()
    click.echo("Suggestion cache cleared.")


@main.command()
def serve():
    """Refresh the dashboard periodically and print it."""
    from apscheduler.schedulers.blocking import BlockingScheduler
    from apscheduler.triggers.interval import IntervalTrigger

    config = _config_or_exit()
    try:
        aggregator = build_aggregator(config)
    except ConfigError as e:
        click.echo(f"Configuration error: {e}", err=True)
        sys.exit(1)

    def refresh():
        snapshot = aggregator.build()
        click.clear()
        click.echo(format_snapshot(snapshot))
        click.echo(f"\nLast update: {snapshot.timestamp.strftime('%H:%M:%S')} - Ctrl+C to stop")

    scheduler = BlockingScheduler(timezone=config.timezone)
    scheduler.add_job(
        refresh,
        IntervalTrigger(minutes=config.refresh_interval_minutes),
        id="dashboard_refresh",
        max_instances=1,
        coalesce=True,
    )

    click.echo(f"Work hours: {config.work_start_hour}:00 - {config.work_end_hour}:00")
    click.echo(f"Refresh interval: {config.refresh_interval_minutes} minutes\n")
    refresh()
    try:
        scheduler.start()
    except (KeyboardInterrupt, SystemExit):
        click.echo("\nService stopped.")


@main.command()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def bot(debug: bool):
    """Run the Telegram bot."""
    # The bot is long-running; keep its INFO logs visible
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=logging.DEBUG if debug else logging.INFO,
        force=True,
    )

    try:
        from .telegram_bot import run_bot
        click.echo("Starting TimeCraft Telegram bot...")
        click.echo("Press Ctrl+C to stop")
        run_bot()
    except ImportError as e:
        click.echo("Error: Missing dependencies. Run 'pip install python-telegram-bot apscheduler'", err=True)
        click.echo(f"Details: {e}", err=True)
        sys.exit(1)
    except (ValueError, ConfigError) as e:
        click.echo(f"Configuration error: {e}", err=True)
        sys.exit(1)
    except KeyboardInterrupt:
        click.echo("\nBot stopped.")


if __name__ == "__main__":
    main()
