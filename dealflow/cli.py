"""CLI interface for DealFlow."""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import date
from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from dealflow.config import AppConfig, Settings, load_config
from dealflow.errors import DealFlowError
from dealflow.models import BatchAnalysisResult, DateRange, DetailedAnalysisResult, Property

app = typer.Typer(
    name="dealflow",
    help="DealFlow - Rental property investment analysis.",
    no_args_is_help=True,
)
console = Console()


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _fail(message: str) -> None:
    console.print(f"[bold red]Error:[/bold red] {message}")
    raise typer.Exit(code=1)


def _load(config_path: Path | None) -> AppConfig:
    try:
        return load_config(config_path)
    except DealFlowError as e:
        _fail(str(e))


def _data_path(cfg: AppConfig, settings: Settings) -> str:
    return settings.data_path or cfg.storage.data_path


def _batch_analyzer(cfg: AppConfig):
    from dealflow.analysis.batch import BatchAnalyzer
    from dealflow.analysis.engine import PropertyAnalyzer
    from dealflow.rent.estimator import RentalEstimator

    estimator = RentalEstimator.from_config(cfg.financial.rental)
    return BatchAnalyzer(PropertyAnalyzer(estimator))


def _money(value: float) -> str:
    return f"-${abs(value):,.2f}" if value < 0 else f"${value:,.2f}"


def _result_summary(result: DetailedAnalysisResult) -> str:
    m = result.financial_metrics
    rent = result.rental_estimate
    exp = m.operating_expenses_breakdown
    return "\n".join(
        [
            f"Rent:               {_money(m.monthly_rent)}/mo ({rent.source.value}, {rent.confidence.value})",
            f"  {rent.match_details}",
            f"Mortgage payment:   {_money(m.monthly_mortgage_payment)}/mo",
            f"Operating expenses: {_money(m.monthly_operating_expenses)}/mo",
            f"  management {_money(exp.property_management)}, maintenance {_money(exp.maintenance)}, "
            f"vacancy {_money(exp.vacancy)}, insurance {_money(exp.insurance)}, "
            f"tax {_money(exp.property_tax)}",
            f"Cash flow:          {_money(m.monthly_cash_flow)}/mo, {_money(m.annual_cash_flow)}/yr",
            f"NOI:                {_money(m.net_operating_income)}/yr",
            f"Cash invested:      {_money(m.total_cash_invested)}",
            f"Cash-on-cash:       {m.cash_on_cash_return:.2f}%",
            f"Cap rate:           {m.cap_rate:.2f}%",
            f"GRM:                {m.gross_rent_multiplier:.2f}",
            f"DSCR:               {m.debt_service_coverage_ratio:.2f}",
            f"Projected value:    {_money(m.projected_value)} "
            f"(appreciation {_money(m.appreciation_value)})",
            f"Total return:       {_money(m.total_return)} ({m.annualized_return:.2f}%/yr)",
        ]
    )


def _display_batch(batch: BatchAnalysisResult, limit: int) -> None:
    table = Table(title="Analysis Results", show_lines=True)
    table.add_column("#", style="dim", width=3)
    table.add_column("Property", style="white")
    table.add_column("Zip", style="dim")
    table.add_column("Rent", style="green")
    table.add_column("Cash Flow/mo", style="bold")
    table.add_column("CoC %", style="yellow")
    table.add_column("Cap %", style="yellow")
    table.add_column("Rent Source", style="cyan")

    ranked = sorted(
        batch.results, key=lambda r: r.financial_metrics.cash_on_cash_return, reverse=True
    )
    for i, result in enumerate(ranked[:limit], 1):
        m = result.financial_metrics
        cash_flow = _money(m.monthly_cash_flow)
        if m.monthly_cash_flow > 0:
            cash_flow = f"[bold green]{cash_flow}[/bold green]"
        elif m.monthly_cash_flow < 0:
            cash_flow = f"[red]{cash_flow}[/red]"
        table.add_row(
            str(i),
            result.property_id,
            result.zip_code or "-",
            _money(m.monthly_rent),
            cash_flow,
            f"{m.cash_on_cash_return:.2f}",
            f"{m.cap_rate:.2f}",
            result.rental_estimate.source.value,
        )

    console.print(table)

    s = batch.summary
    console.print(
        f"\n[bold]{batch.successful_analyses}/{batch.total_properties} analyzed[/bold], "
        f"{batch.failed_analyses} failed\n"
        f"Average annual cash flow: {_money(s.average_cash_flow)}\n"
        f"Average cash-on-cash: {s.average_roi:.2f}%   Average cap rate: {s.average_cap_rate:.2f}%\n"
        f"Data quality score: {s.data_quality_score:.2f}%"
    )
    for error in batch.errors:
        console.print(f"[red]{error.property_id}: {error.error_message}[/red]")


@app.command()
def analyze(
    address: str = typer.Argument(..., help='Full address, e.g. "123 Main St, Columbus, OH 43211"'),
    price: float = typer.Option(..., "--price", "-p", help="Purchase price"),
    beds: int = typer.Option(3, "--beds"),
    baths: float = typer.Option(2, "--baths"),
    sqft: float = typer.Option(1500, "--sqft"),
    rent: float = typer.Option(None, "--rent", help="Known monthly rent estimate"),
    zpid: str = typer.Option("manual-entry", "--id", help="Property identifier"),
    config_path: Path = typer.Option(None, "--config", "-c"),
):
    """Analyze a single property as a buy-and-hold rental."""
    cfg = _load(config_path)

    from dealflow.analysis.engine import PropertyAnalyzer
    from dealflow.rent.estimator import RentalEstimator, check_estimate

    prop = Property(
        property_id=zpid,
        address=address,
        price=price,
        bedrooms=beds,
        bathrooms=baths,
        living_area=sqft,
        rent_zestimate=rent,
    )

    analyzer = PropertyAnalyzer(RentalEstimator.from_config(cfg.financial.rental))
    try:
        result = analyzer.analyze(prop, cfg.financial)
    except DealFlowError as e:
        _fail(str(e))

    console.print()
    console.print(Panel(_result_summary(result), title=f"{address}"))

    check = check_estimate(prop, result.rental_estimate)
    for warning in check.warnings:
        console.print(f"[yellow]Warning:[/yellow] {warning}")
    for suggestion in check.suggestions:
        console.print(f"[dim]- {suggestion}[/dim]")


@app.command()
def batch(
    properties_file: Path = typer.Argument(..., help="JSON file with an array of properties"),
    save: bool = typer.Option(False, "--save", help="Store results in the data directory"),
    limit: int = typer.Option(20, "--limit", "-l", help="Max results to show"),
    config_path: Path = typer.Option(None, "--config", "-c"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """Analyze every property in a JSON file."""
    setup_logging(verbose)
    cfg = _load(config_path)

    if not properties_file.exists():
        _fail(f"File not found: {properties_file}")
    raw = json.loads(properties_file.read_text(encoding="utf-8"))
    if isinstance(raw, dict):
        raw = raw.get("properties", [])
    properties = [Property.model_validate(p) for p in raw]

    result = _batch_analyzer(cfg).analyze_batch(properties, cfg.financial)
    _display_batch(result, limit)

    if save and result.results:
        from dealflow.storage.repository import AnalysisRepository

        path = AnalysisRepository(_data_path(cfg, Settings())).save_batch_result(result)
        console.print(f"\n[bold]Saved results to {path}[/bold]")


@app.command()
def collect(
    config_path: Path = typer.Option(None, "--config", "-c"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """Fetch the buybox's properties from the listing API and store them."""
    setup_logging(verbose)
    cfg = _load(config_path)
    settings = Settings()
    if not settings.rapidapi_key:
        _fail("RAPIDAPI_KEY is not set")

    asyncio.run(_run_collect(cfg, settings))


async def _run_collect(cfg: AppConfig, settings: Settings) -> None:
    from dealflow.collector import PropertyCollector
    from dealflow.sources import create_source
    from dealflow.storage.repository import AnalysisRepository

    source = create_source(cfg.listing_api, settings.rapidapi_key, settings.rapidapi_host)
    collector = PropertyCollector(source, AnalysisRepository(_data_path(cfg, settings)))

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        task = progress.add_task(f"Fetching buybox {cfg.buybox.name}...", total=None)
        try:
            result = await collector.collect(cfg.buybox)
        finally:
            await source.close()
        if result.success:
            progress.update(
                task,
                description=f"[green]{cfg.buybox.name}: {result.stats.total_properties} properties",
            )
        else:
            progress.update(task, description=f"[red]{cfg.buybox.name}: fetch failed")

    for error in result.errors:
        console.print(f"[red]{error.error_type}: {error.error_message} ({error.error_details})[/red]")
    console.print(
        f"Zip codes: {result.stats.zip_codes_processed}  "
        f"API requests used: {result.stats.api_requests_used}  "
        f"remaining: {result.stats.remaining_requests}"
    )
    if not result.success:
        raise typer.Exit(code=1)


@app.command()
def watch(
    config_path: Path = typer.Option(None, "--config", "-c"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """Start the scheduler to collect and analyze properties on a cron schedule."""
    setup_logging(verbose)
    cfg = _load(config_path)

    from dealflow.scheduler import start_scheduler

    console.print(
        f"[bold]Starting DealFlow watcher[/bold]\n"
        f"Buybox: {cfg.buybox.name}\n"
        f"Zip codes: {', '.join(cfg.buybox.zip_codes)}\n"
        f"Schedule: {cfg.scheduler.cron_schedule} ({cfg.scheduler.timezone})\n"
        f"Retention: {cfg.storage.retention_days} days\n"
    )

    start_scheduler(cfg)


@app.command()
def export(
    output: Path = typer.Option(None, "--output", "-o", help="Write CSV here instead of stdout"),
    zip_codes: list[str] = typer.Option(None, "--zip", "-z", help="Zip code (repeatable)"),
    start: str = typer.Option(None, "--start", help="Start date YYYY-MM-DD"),
    end: str = typer.Option(None, "--end", help="End date YYYY-MM-DD"),
    columns: list[str] = typer.Option(None, "--column", help="Column name (repeatable)"),
    config_path: Path = typer.Option(None, "--config", "-c"),
):
    """Export stored analysis results to CSV."""
    cfg = _load(config_path)

    from dealflow.storage.export import export_csv
    from dealflow.storage.repository import AnalysisRepository

    date_range = None
    if start and end:
        date_range = DateRange(start_date=date.fromisoformat(start), end_date=date.fromisoformat(end))

    repo = AnalysisRepository(_data_path(cfg, Settings()))
    csv_text = export_csv(repo, zip_codes or None, date_range, columns or None)

    if output:
        output.write_text(csv_text + "\n", encoding="utf-8")
        console.print(f"[bold]Wrote {output}[/bold]")
    else:
        typer.echo(csv_text)


@app.command()
def convert_hud(
    csv_path: Path = typer.Argument(..., help="HUD rents CSV export"),
    output: Path = typer.Option(None, "--output", "-o", help="Reference JSON path"),
    year: int = typer.Option(None, "--year", help="Year for rows without one"),
    state: str = typer.Option("", "--state", help="State for wide-layout rows"),
    config_path: Path = typer.Option(None, "--config", "-c"),
):
    """Convert a HUD Fair Market Rent CSV into reference JSON."""
    cfg = _load(config_path)

    from dealflow.config import DEFAULT_HUD_DATA_PATH
    from dealflow.rent.convert import convert_hud_csv

    target = output or Path(cfg.financial.rental.hud_data_path or DEFAULT_HUD_DATA_PATH)
    try:
        report = convert_hud_csv(csv_path, target, year=year, state=state)
    except DealFlowError as e:
        _fail(str(e))

    console.print(
        f"[bold green]Wrote {report.records} records[/bold green] to {target} "
        f"({report.layout} layout, {report.rows} rows, {len(report.errors)} errors)"
    )
    for error in report.errors[:5]:
        console.print(f"[yellow]{error}[/yellow]")


@app.command()
def config_show(
    config_path: Path = typer.Option(None, "--config", "-c"),
):
    """Display current configuration."""
    cfg = _load(config_path)
    console.print_json(json.dumps(cfg.model_dump(), indent=2, default=str))


@app.command()
def serve(
    config_path: Path = typer.Option(None, "--config", "-c"),
    host: str = typer.Option("0.0.0.0", "--host"),
    port: int = typer.Option(8000, "--port"),
):
    """Start the HTTP API server."""
    import uvicorn

    cfg = _load(config_path)

    from dealflow.api.server import create_app

    web_app = create_app(cfg)
    console.print(f"[bold]Starting DealFlow API at http://{host}:{port}[/bold]")
    uvicorn.run(web_app, host=host, port=port)


if __name__ == "__main__":
    app()
