"""
``flask payments`` commands for operator-driven imports.
"""

from __future__ import annotations

import click
from flask.cli import ScriptInfo

from membership_app.models import db

from .adapters.givingfuel_csv import CSVAdapterError
from .events import PaymentValidationError


def _load_app(ctx):
    info = ctx.ensure_object(ScriptInfo)
    return info.load_app()


@click.group(name="payments", invoke_without_command=True)
@click.pass_context
def payments_cli(ctx):
    """
    Payment ingestion commands.

    Shows the configured providers when invoked without a subcommand.
    """
    if ctx.invoked_subcommand is not None:
        return
    from . import get_provider_settings

    settings = get_provider_settings(_load_app(ctx))
    click.echo("Configured payment providers:")
    click.echo(f"  - webconnex (forms: {', '.join(map(str, settings.webconnex_form_ids)) or 'all'})")
    click.echo(f"  - donorbox (campaigns: {', '.join(map(str, settings.donorbox_campaign_ids)) or 'none'})")
    click.echo("  - givingfuel-csv")


@payments_cli.command("backfill-donorbox")
@click.option(
    "--date-from",
    "date_from",
    required=True,
    type=click.DateTime(formats=["%Y-%m-%d"]),
    help="Fetch donations made on or after this date (YYYY-MM-DD).",
)
@click.option("--notify/--no-notify", default=False, show_default=True, help="Send welcome e-mails to new members.")
@click.pass_context
def backfill_donorbox_command(ctx, date_from, notify):
    """Replay Donorbox donations from the read API."""
    from . import get_donorbox_client, get_notifier, get_provider_settings
    from .pipeline.backfill import run_donorbox_backfill

    app = _load_app(ctx)
    with app.app_context():
        settings = get_provider_settings(app)
        if not settings.donorbox_api_email or not settings.donorbox_api_key:
            raise click.ClickException("DONORBOX_API_EMAIL and DONORBOX_API_KEY must be set for backfill.")
        summary = run_donorbox_backfill(
            date_from.date(),
            client=get_donorbox_client(app),
            settings=settings,
            session=db.session,
            notifier=get_notifier(app) if notify else None,
        )

    click.echo(
        f"Pages fetched: {summary.pages_fetched}; succeeded: {summary.succeeded}; "
        f"skipped: {summary.skipped}; failed: {summary.failed}"
    )
    for error in summary.errors:
        click.echo(f"  ! {error}", err=True)
    for error in summary.notification_errors:
        click.echo(f"  ~ notification {error}", err=True)
    if summary.aborted:
        raise click.ClickException("Backfill stopped early; rerun from the last good date once the API recovers.")


@payments_cli.command("import-givingfuel")
@click.argument("csv_path", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def import_givingfuel_command(ctx, csv_path):
    """Import a GivingFuel transactions export (all rows or none)."""
    from . import get_provider_settings
    from .pipeline.csv_import import import_givingfuel_csv

    app = _load_app(ctx)
    with app.app_context():
        try:
            with open(csv_path, newline="", encoding="utf-8-sig") as handle:
                summary = import_givingfuel_csv(handle, session=db.session, settings=get_provider_settings(app))
        except (CSVAdapterError, PaymentValidationError) as exc:
            raise click.ClickException(str(exc)) from exc

    click.echo(summary.message)
    if summary.rows_skipped:
        click.echo(f"Skipped {summary.rows_skipped} rows that were not completed charges.")
