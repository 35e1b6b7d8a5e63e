# Overview: Flask CLI command groups for database bootstrap and the periodic jobs.

# backend/thintava/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init-db
#   Create any missing tables (use `flask db upgrade` where migrations are managed).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Jobs (each is also run by the scheduler). Schedule them with cron OR run-scheduler, not both:
# - python -m flask jobs terminate-stale-pickups [--minutes 5]
#   Terminate and archive orders left in Pick Up past the pickup window. Cron (without run-scheduler): every minute.
# - python -m flask jobs cleanup-session-history [--retention-days 30] [--limit 500]
#   Delete session history entries older than the retention window. Cron (without run-scheduler): daily.
# - python -m flask jobs run-scheduler
#   Run both jobs at their configured intervals until interrupted.

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .services import maintenance_service, pickup_service
from .scheduler import EXTENSION_KEY as SCHEDULER_KEY
from .triggers import get_trigger_runner


def _drain_triggers():
    runner = get_trigger_runner()
    if runner is None:
        return
    if runner.run_async:
        # Let queued notifications finish before the process exits
        runner.shutdown(wait=True)
    else:
        runner.run_pending()


@click.group('system')
def system_group():
    """Database bootstrap commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database tables created")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Confirm destructive reset')
@with_appcontext
def reset_db(yes):
    """DEV/TEST only: drop and recreate all tables."""
    if not yes:
        click.echo("FAIL Refusing to reset without --yes")
        raise SystemExit(1)
    db.drop_all()
    db.create_all()
    click.echo("PASS Database reset")


@click.group('jobs')
def jobs_group():
    """Periodic sweep commands."""


@jobs_group.command('terminate-stale-pickups')
@click.option('--minutes', type=int, default=None, help='Pickup window in minutes (default from config)')
@with_appcontext
def terminate_stale_pickups_cli(minutes):
    """Terminate orders stuck in Pick Up and archive them."""
    count = pickup_service.terminate_stale_pickups(pickup_minutes=minutes)
    _drain_triggers()
    click.echo(f"Terminated {count} stale pickups.")


@jobs_group.command('cleanup-session-history')
@click.option('--retention-days', type=int, default=None, help='Retention window (default from config)')
@click.option('--limit', type=int, default=None, help='Max entries deleted per run (default from config)')
@with_appcontext
def cleanup_session_history_cli(retention_days, limit):
    """
    Delete old session history entries.

    Default retention: 30 days, 500 entries per run.
    """
    deleted = maintenance_service.cleanup_session_history(retention_days=retention_days, limit=limit)
    click.echo(f"Deleted {deleted} session history entries.")


@jobs_group.command('run-scheduler')
@with_appcontext
def run_scheduler_cli():
    """Run the periodic jobs until interrupted (Ctrl+C)."""
    scheduler = current_app.extensions[SCHEDULER_KEY]
    for job in scheduler.jobs.values():
        click.echo(f"  {job.name}: every {int(job.interval.total_seconds())}s")
    try:
        scheduler.run_forever()
    except KeyboardInterrupt:
        click.echo("Scheduler interrupted")
    finally:
        _drain_triggers()


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(jobs_group)
