import json
import logging
from collections import OrderedDict
from pathlib import Path
from typing import Optional

import click
from flask import current_app
from flask.cli import with_appcontext

from quotegrid.api.provider import ProviderClient
from quotegrid.grid.entities import QuoteSummary
from quotegrid.grid.layout import build_workbook
from quotegrid.grid.memory import MemoryWorkbook
from quotegrid.grid.parser import parse_workbook


def _client() -> ProviderClient:
    return ProviderClient(
        base_url=current_app.config['QUOTEGRID_PROVIDER_URL'],
        timeout=current_app.config['QUOTEGRID_PROVIDER_TIMEOUT'],
    )


def _emit(payload, out: Optional[str]) -> None:
    text = json.dumps(payload, indent=2)
    if out:
        Path(out).write_text(text)
        logging.info("Wrote %s", out)
    else:
        click.echo(text)


def _read_sheets(path: str):
    data = json.loads(Path(path).read_text())
    sheets = OrderedDict(
        (s["name"], (s.get("values") or [], s.get("formulas"))) for s in data.get("sheets") or []
    )
    return data, sheets


@click.group("quotegrid")
def quotegrid_cli() -> None:
    """Quote grid layout commands."""


@quotegrid_cli.command("render")
@click.argument("quote_json", type=click.Path(exists=True, dir_okay=False))
@click.option("--out", type=click.Path(dir_okay=False), help="Write the layout here instead of stdout")
@click.option("--workers", type=int, default=None, help="Threads used to build BOM sheets")
@click.option("--snapshot", is_flag=True, help="Emit the rendered grid (values/formulas) instead of directives")
@click.option(
    "--into",
    type=click.Path(exists=True, dir_okay=False),
    help="Workbook snapshot to render over; its quote sheets are replaced, other sheets kept",
)
def render_command(
    quote_json: str,
    out: Optional[str],
    workers: Optional[int],
    snapshot: bool,
    into: Optional[str],
) -> None:
    """Lay out a provider quote JSON file."""
    logging.basicConfig(level=logging.INFO)
    summary = QuoteSummary.from_dict(json.loads(Path(quote_json).read_text()))
    layout = build_workbook(summary, max_workers=workers)
    if not (snapshot or into):
        _emit(layout.to_dict(), out)
        return
    book = MemoryWorkbook()
    if into:
        book.load(_read_sheets(into)[1])
        book.reset()
    book.apply(layout)
    _emit(
        {"sheets": [
            {"name": name, "values": values, "formulas": formulas}
            for name, (values, formulas) in book.snapshot().items()
        ]},
        out,
    )


@quotegrid_cli.command("parse")
@click.argument("workbook_json", type=click.Path(exists=True, dir_okay=False))
@click.option("--out", type=click.Path(dir_okay=False))
def parse_command(workbook_json: str, out: Optional[str]) -> None:
    """Rebuild quote JSON from a grid snapshot ``{sheets: [{name, values, formulas}]}``."""
    logging.basicConfig(level=logging.INFO)
    data, sheets = _read_sheets(workbook_json)
    summary = parse_workbook(sheets, bom_ids=data.get("bomIds"), quote_id=int(data.get("id") or 0))
    _emit(summary.to_dict(), out)


@quotegrid_cli.command("pull")
@click.argument("quote_id", type=int)
@click.option("--store", is_flag=True, help="Save the quote in the local database")
@with_appcontext
def pull_command(quote_id: int, store: bool) -> None:
    """Fetch a quote from the remote provider."""
    from quotegrid.quotes.utils import summary_to_quote

    data = _client().quote(quote_id)
    if not data:
        raise click.ClickException(f"Provider returned nothing for quote {quote_id}")
    if not store:
        click.echo(json.dumps(data, indent=2))
        return
    quote = summary_to_quote(QuoteSummary.from_dict(data), name=data.get("name") or f"Quote {quote_id}")
    click.echo(f"Stored remote quote {quote_id} as {quote.id}")


@quotegrid_cli.command("push")
@click.argument("quote_id", type=int)
@with_appcontext
def push_command(quote_id: int) -> None:
    """Send a locally stored quote to the remote provider."""
    from quotegrid import db
    from quotegrid.models import Quote
    from quotegrid.quotes.utils import quote_to_summary

    quote = db.session.get(Quote, quote_id)
    if quote is None:
        raise click.ClickException(f"No local quote {quote_id}")
    result = _client().save_quote(quote_to_summary(quote))
    click.echo(json.dumps(result, indent=2))


@quotegrid_cli.command("revision")
@click.argument("quote_id", type=int)
@with_appcontext
def revision_command(quote_id: int) -> None:
    """Ask the remote provider to open a new revision of a quote."""
    result = _client().new_revision(quote_id)
    if not result:
        raise click.ClickException(f"Provider did not create a revision of quote {quote_id}")
    click.echo(json.dumps(result, indent=2))


@quotegrid_cli.command("browse")
@click.argument("kind", type=click.Choice(["customers", "projects", "quotes"]))
@click.option("--customer-id", type=int, default=None)
@click.option("--project-id", type=int, default=None)
@with_appcontext
def browse_command(kind: str, customer_id: Optional[int], project_id: Optional[int]) -> None:
    """List remote customers, projects or quotes."""
    client = _client()
    if kind == "customers":
        result = client.customers()
    elif kind == "projects":
        result = client.projects(customer_id=customer_id)
    else:
        result = client.quotes(customer_id=customer_id, project_id=project_id)
    click.echo(json.dumps(result, indent=2))
