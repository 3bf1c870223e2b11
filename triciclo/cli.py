"""Command line entry point: run the terminal app or do housekeeping.

Commands (TRICICLO_DATA_PATH selects the data file):
- triciclo run
  Open the keyboard POS.
- triciclo export [DIR]
  Write triciclo_backup_<date>.json into DIR (default: TRICICLO_EXPORT_DIR).
- triciclo import FILE
  Replace all data with a backup; malformed fields are corrected and listed.
- triciclo report sales|expenses --from 2024-01-01 --to 2024-01-31 --format pdf
  Write a sales or expenses report as PDF or Excel.
- triciclo summary
  Print today / week / month / all-time sales and the top products.
- triciclo wipe --confirm WORD
  Delete everything after typing the confirmation word.
"""

from __future__ import annotations

import click

from triciclo.config import DATA_PATH, EXPORT_DIR, LOG_PATH
from triciclo.controller import Outcome, PosController
from triciclo.errors import TricicloError
from triciclo.ledger import summarize_sales
from triciclo.logs import configure_logging
from triciclo.rendering import money


def _finish(outcome: Outcome) -> None:
    if not outcome.ok:
        raise click.ClickException(outcome.message or "Nothing to do.")
    click.echo(f"PASS {outcome.message}")


@click.group()
@click.option("--data", "data_path", default=DATA_PATH, show_default=True, help="Path of the JSON data file.")
@click.option("--log", "log_path", default=LOG_PATH, show_default=True, help="Path of the debug log.")
@click.pass_context
def cli(ctx: click.Context, data_path: str, log_path: str) -> None:
    """Triciclo point of sale."""
    configure_logging(log_path)
    try:
        ctx.obj = PosController.open(data_path)
    except (TricicloError, ValueError) as exc:
        raise click.ClickException(f"Could not load {data_path}: {exc}") from exc


@cli.command("run")
@click.option("--export-dir", default=EXPORT_DIR, show_default=True, help="Directory for reports and backups.")
@click.pass_obj
def run_app(controller: PosController, export_dir: str) -> None:
    """Open the terminal POS."""
    from triciclo.pos_app import TricicloApp

    TricicloApp(controller, export_dir).run()


@cli.command("export")
@click.argument("directory", required=False, default=EXPORT_DIR)
@click.pass_obj
def export_cmd(controller: PosController, directory: str) -> None:
    """Write a JSON backup of all data."""
    _finish(controller.export_backup(directory))


@cli.command("import")
@click.argument("source", type=click.Path(exists=True, dir_okay=False))
@click.pass_obj
def import_cmd(controller: PosController, source: str) -> None:
    """Replace all data with the contents of a backup file."""
    outcome = controller.import_backup(source)
    _finish(outcome)
    for warning in outcome.value or []:
        click.echo(f"WARN  {warning}")


@cli.command("report")
@click.argument("kind", type=click.Choice(["sales", "expenses"]))
@click.option("--from", "date_from", default=None, help="First day, YYYY-MM-DD.")
@click.option("--to", "date_to", default=None, help="Last day, YYYY-MM-DD.")
@click.option("--keyword", default="", help="Expense description/category filter.")
@click.option("--format", "fmt", type=click.Choice(["pdf", "excel"]), default="pdf", show_default=True)
@click.option("--out", "out_dir", default=EXPORT_DIR, show_default=True, help="Output directory.")
@click.pass_obj
def report_cmd(
    controller: PosController,
    kind: str,
    date_from: str | None,
    date_to: str | None,
    keyword: str,
    fmt: str,
    out_dir: str,
) -> None:
    """Write a sales or expenses report."""
    _finish(controller.export_report(kind, fmt, out_dir, date_from, date_to, keyword))


@cli.command("summary")
@click.pass_obj
def summary_cmd(controller: PosController) -> None:
    """Print sales totals and the best-selling products."""
    summary = summarize_sales(controller.data.sales_history)
    click.echo(f"Today:     {money(summary.today)}")
    click.echo(f"This week: {money(summary.week)}")
    click.echo(f"Month:     {money(summary.month)}")
    click.echo(f"All time:  {money(summary.all_time)}")
    if not summary.top_products:
        click.echo("\nNo sales recorded yet.")
        return
    click.echo("\nTop products:")
    for idx, top in enumerate(summary.top_products, start=1):
        click.echo(f"  #{idx} {top.name} ({top.count} units) {money(top.total)}")


@cli.command("wipe")
@click.option("--confirm", "confirmation", prompt="Type the confirmation word", help="Confirmation word.")
@click.pass_obj
def wipe_cmd(controller: PosController, confirmation: str) -> None:
    """Delete all products, sales, expenses and settings."""
    _finish(controller.wipe(confirmation))


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
