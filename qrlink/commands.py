import secrets

import click
from flask import Blueprint

from .extensions import db
from .models.user import User
from .repositories.user_repository import get_user_by_email
from .services.scan_recorder import reconcile_scan_counts

commands_bp = Blueprint("commands", __name__, cli_group=None)


@commands_bp.cli.command("reconcile-scan-counts")
@click.option("--link-id", default=None, help="Only reconcile this link.")
def reconcile_scan_counts_command(link_id):
    """Recompute denormalized scan counts from the scan event log."""
    fixed = reconcile_scan_counts(link_id)
    click.echo(f"Reconciled {fixed} link(s).")


@commands_bp.cli.command("create-user")
@click.argument("email")
@click.option("--name", default=None)
def create_user_command(email, name):
    """Provision an API user and print its client credentials."""
    if get_user_by_email(email):
        raise click.ClickException(f"User {email} already exists")

    user = User(
        email=email,
        name=name,
        client_id=secrets.token_hex(8),
        client_secret=secrets.token_hex(16),
    )
    db.session.add(user)
    db.session.commit()

    click.echo(f"client_id={user.client_id}")
    click.echo(f"client_secret={user.client_secret}")
