"""Flask CLI commands for running calculations and managing caches."""
import asyncio
import json
import click
from flask.cli import with_appcontext

from app.caches import clear_caches, get_calculator, get_nisab_cache
from app.constants import NISAB_GRANULARITIES
from app.services.calculator import run_calculation, summarize
from app.services.gold_history import load_nisab_table
from app.services.ledger import LedgerError, parse_gregorian_month, parse_ledger_payload
from app.services.providers import CredentialError, ProviderError
from app.services.threshold_resolver import seed_cache


@click.command('calculate')
@click.argument('ledger_path', type=click.Path(exists=True))
@click.option('--granularity', type=click.Choice(NISAB_GRANULARITIES), default=None,
              help='Resolve one nisab per year (default) or per month')
@with_appcontext
def calculate_command(ledger_path, granularity):
    """Run the Hawl calculation over a ledger JSON file.

    File format: {"monthlyData": [...], "nisabData": {...}, "goldApiKey": "..."}
    """
    with open(ledger_path, 'r', encoding='utf-8') as f:
        try:
            payload = parse_ledger_payload(json.load(f))
        except (json.JSONDecodeError, LedgerError) as e:
            raise click.ClickException(f'Invalid ledger: {e}')

    calculator = get_calculator(api_key=payload.api_key, granularity=granularity)
    try:
        rows = run_calculation(calculator, payload.entries, payload.nisab_table)
    except CredentialError as e:
        raise click.ClickException(f'{e}. Check your GoldAPI key.')
    except (ProviderError, LookupError) as e:
        raise click.ClickException(f'Data could not be loaded: {e}')

    click.echo(f"{'Date':<8} {'Hijri':<8} {'Total':>12} {'Nisab':>12} {'Zakat':>10}  Note")
    for row in rows:
        zakat = f'{row.zakat_due:.2f}' if row.zakat_due is not None else '-'
        click.echo(
            f'{row.date:<8} {row.hijri_date:<8} {row.total:>12.2f} '
            f'{row.nisab_threshold:>12.2f} {zakat:>10}  {row.note}'
        )
    summary = summarize(rows)
    click.echo(f"{summary['count']} rows, {summary['zakat_events']} zakat events, total due {summary['zakat_total']:.2f}")


@click.command('convert-date')
@click.argument('gregorian_month')
@with_appcontext
def convert_date_command(gregorian_month):
    """Print the Hijri month for the first day of MM/YYYY."""
    try:
        month, year = parse_gregorian_month(gregorian_month)
    except LedgerError as e:
        raise click.ClickException(str(e))
    calculator = get_calculator()
    result = asyncio.run(calculator.date_resolver.resolve_hijri_date(month, year))
    click.echo(f'{month:02d}/{year} -> {result}')


@click.command('nisab')
@click.argument('year', type=int)
@click.option('--month', type=click.IntRange(1, 12), default=None, help='Resolve a monthly value')
@with_appcontext
def nisab_command(year, month):
    """Print the nisab threshold for YEAR (optionally --month)."""
    calculator = get_calculator()
    try:
        value = asyncio.run(calculator.threshold_resolver.resolve_threshold(year, month))
    except ProviderError as e:
        raise click.ClickException(str(e))
    click.echo(f'{value:.2f}')


@click.command('import-gold-history')
@click.argument('prices_path', type=click.Path(exists=True))
@with_appcontext
def import_gold_history_command(prices_path):
    """Seed the nisab cache from historical gold prices.

    File format: [{"date": "2023-01-02", "price": 58.4}, ...] with prices
    per gram of 24k gold. Yearly and monthly averages are imported.
    """
    try:
        table = load_nisab_table(prices_path)
    except (json.JSONDecodeError, ValueError) as e:
        raise click.ClickException(f'Invalid gold price data: {e}')
    count = seed_cache(get_nisab_cache(), table)
    click.echo(f'Imported {count} nisab values from {prices_path}')


@click.command('clear-cache')
@with_appcontext
def clear_cache_command():
    """Remove cached Hijri dates and nisab values."""
    clear_caches()
    click.echo('Cleared Hijri date and nisab caches')


def register_cli(app):
    """Register CLI commands with the Flask app."""
    app.cli.add_command(calculate_command)
    app.cli.add_command(convert_date_command)
    app.cli.add_command(nisab_command)
    app.cli.add_command(import_gold_history_command)
    app.cli.add_command(clear_cache_command)
