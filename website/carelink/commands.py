import click
from flask.cli import with_appcontext

from carelink.services import auto_confirmation, lifecycle


@click.command("auto-confirm")
@with_appcontext
def auto_confirm_command():
    """Confirm pending appointments older than the configured threshold."""
    summary = auto_confirmation.run_auto_confirmation()
    click.echo(
        f"Checked {summary['checked']}, confirmed {summary['confirmed']}, "
        f"conflicts {summary['conflicts']}, failed {summary['failed']}"
    )


@click.command("complete-elapsed")
@with_appcontext
def complete_elapsed_command():
    """Mark confirmed appointments whose slot has ended as completed."""
    summary = lifecycle.complete_elapsed()
    click.echo(f"Completed {summary['completed']}, skipped {summary['skipped']}")


def register_commands(app):
    app.cli.add_command(auto_confirm_command)
    app.cli.add_command(complete_elapsed_command)
