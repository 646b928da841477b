import click
from flask.cli import AppGroup, with_appcontext

maintenance_cli = AppGroup("maintenance", help="Lock and version housekeeping.")


@maintenance_cli.command("sweep-locks")
def sweep_locks_command():
    """Clear expired edit locks."""
    from blockcms.application.locks.sweep_locks import sweep_expired_locks

    cleared = sweep_expired_locks()
    click.echo(f"Cleared {cleared} expired lock(s)")


@maintenance_cli.command("prune-versions")
@click.option("--days", type=int, default=None, help="Age horizon in days (default: VERSION_RETENTION_DAYS).")
@click.option("--keep", type=int, default=None, help="Newest versions kept per story (default: VERSION_KEEP_LATEST).")
@click.option("--story", "story_id", default=None, help="Only prune this story.")
def prune_versions_command(days, keep, story_id):
    """Delete old story versions."""
    from blockcms.application.versions.prune_versions import prune_versions

    deleted = prune_versions(story_id=story_id, older_than_days=days, keep_latest=keep)
    click.echo(f"Deleted {deleted} version(s)")


@click.command("init-db")
@with_appcontext
def init_db_command():
    """Create all tables."""
    from blockcms.extensions import db

    db.create_all()
    click.echo("Database tables created")


def register_commands(app):
    app.cli.add_command(maintenance_cli)
    app.cli.add_command(init_db_command)
