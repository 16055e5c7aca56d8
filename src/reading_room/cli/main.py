"""
Command line interface for the reading room backend.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional, TypeVar

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from reading_room.core.config import Config, ConfigLoader, get_config
from reading_room.core.exceptions import ConfigError
from reading_room.core.logging import setup_logging
from reading_room.data.models import (
    AiAnalysisResult,
    IndexQuote,
    MarketOverview,
    NewsArticle,
    StockSnapshot,
)
from reading_room.data.tickers import format_price
from reading_room.output.formatters import INDEX_NAMES, get_formatter
from reading_room.services.market_data import MarketDataService

app = typer.Typer(
    name="reading-room",
    help="Stock dashboard backend: quotes, indices, news and AI analysis",
)
console = Console()

T = TypeVar("T")


@app.callback()
def configure(
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file path"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Load configuration and set up logging."""
    try:
        config = ConfigLoader(config_path).load()
    except ConfigError as e:
        console.print(f"[red]{escape(e.message)}[/red]")
        raise typer.Exit(1)
    if verbose:
        config.logging.console.level = "DEBUG"
    Config.initialize(config)
    setup_logging(config.logging.model_dump())


def _create_market() -> MarketDataService:
    from reading_room.storage import create_store

    config = get_config()
    store = create_store(config.storage) if config.storage.backend != "memory" else None
    return MarketDataService.from_config(config, store=store)


def _run(action: Callable[[MarketDataService], Awaitable[T]]) -> T:
    """Run an async action against a fresh service and always close it."""

    async def runner() -> T:
        market = _create_market()
        try:
            return await action(market)
        finally:
            await market.aclose()

    try:
        return asyncio.run(runner())
    except Exception as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(1)


def _emit(obj: Any, format: str, output: Optional[str], display: Callable[[Any], None]) -> None:
    try:
        formatter = get_formatter(format)
    except ValueError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(1)

    if output:
        formatter.save(formatter.format(obj), output)
        console.print(f"[green]Results saved to {output}[/green]")
    elif format == "text":
        display(obj)
    else:
        console.print(formatter.format(obj), markup=False, highlight=False, soft_wrap=True)


@app.command()
def quote(
    ticker: str = typer.Argument(..., help="Ticker, e.g. AAPL or 005930"),
    format: str = typer.Option("text", "--format", "-f", help="Output format: text, json, csv"),
    output: Optional[str] = typer.Option(None, "--output", "-o", help="Output file path"),
) -> None:
    """Show a quote and chart summary for one ticker."""
    snapshot = _run(lambda market: market.get_stock_and_chart(ticker))
    _emit(snapshot, format, output, _display_snapshot)


@app.command()
def indices(
    format: str = typer.Option("text", "--format", "-f", help="Output format: text, json, csv"),
) -> None:
    """Show KOSPI, NASDAQ, S&P 500 and USD/KRW."""
    quotes = _run(lambda market: market.get_global_indices())
    _emit(quotes, format, None, _display_indices)


@app.command()
def news(
    query: str = typer.Argument(..., help="Ticker for stock news, anything else for market news"),
    lang: str = typer.Option("kr", "--lang", "-l", help="Language: kr or en"),
    limit: int = typer.Option(10, "--limit", "-n", help="Maximum articles"),
    format: str = typer.Option("text", "--format", "-f", help="Output format: text, json, csv"),
) -> None:
    """Show headlines for a ticker or the market."""
    articles = _run(lambda market: market.news.get_headlines(query, lang))
    _emit(articles[:limit], format, None, _display_news)


@app.command()
def analyze(
    ticker: str = typer.Argument(..., help="Ticker to analyze"),
    lang: str = typer.Option("kr", "--lang", "-l", help="Language: kr or en"),
    save_user: Optional[str] = typer.Option(None, "--save-user", help="Save to this user's history"),
    format: str = typer.Option("text", "--format", "-f", help="Output format: text, json"),
) -> None:
    """AI investment analysis, with a rule-based fallback."""
    from reading_room.analysis.service import AnalysisService
    from reading_room.llm import create_model
    from reading_room.storage import create_store

    config = get_config()
    store = create_store(config.storage) if save_user else None

    async def action(market: MarketDataService) -> AiAnalysisResult:
        service = AnalysisService(market, create_model(config.llm), store)
        result = await service.analyze_ticker(ticker, lang)
        if save_user:
            saved = await service.save_to_history(save_user, result, ticker=ticker.upper())
            if saved is None:
                console.print("[yellow]Analysis could not be saved[/yellow]")
            else:
                console.print(f"[green]Saved to history for {save_user}[/green]")
        return result

    result = _run(action)
    _emit(result, format, None, _display_analysis)


@app.command("fear-greed")
def fear_greed(
    format: str = typer.Option("text", "--format", "-f", help="Output format: text, json"),
) -> None:
    """Show the Fear & Greed index."""
    from reading_room.services.fear_greed import FearGreedService

    async def action(market: MarketDataService):
        return await FearGreedService(market.providers, market.config.providers).get_index()

    reading = _run(action)
    _emit(reading, format, None, _display_fear_greed)


@app.command()
def overview(
    ticker: str = typer.Argument(..., help="Ticker"),
    lang: str = typer.Option("kr", "--lang", "-l", help="Language: kr or en"),
    format: str = typer.Option("text", "--format", "-f", help="Output format: text, json"),
) -> None:
    """Quote, news, company profile and technicals in one view."""
    result = _run(lambda market: market.get_market_overview(ticker, lang))
    _emit(result, format, None, _display_overview)


@app.command()
def watch(
    interval: Optional[float] = typer.Option(None, "--interval", "-i", help="Seconds between refreshes"),
    iterations: Optional[int] = typer.Option(None, "--iterations", "-n", help="Stop after N refreshes"),
    lang: str = typer.Option("kr", "--lang", "-l", help="Language: kr or en"),
) -> None:
    """Refresh indices and market news on a schedule."""
    from reading_room.scheduler import RefreshScheduler

    config = get_config()

    async def action(market: MarketDataService) -> None:
        async def refresh() -> None:
            quotes, articles = await asyncio.gather(
                market.get_global_indices(), market.news.get_market_news(lang)
            )
            _display_indices(quotes)
            _display_news(articles[:5])

        scheduler = RefreshScheduler(
            refresh,
            interval=interval or config.scheduler.interval_seconds,
            min_interval=config.scheduler.min_interval_seconds,
        )
        try:
            await scheduler.run(iterations)
        finally:
            status = scheduler.status
            console.print(f"[dim]{status.run_count} refreshes, last state: {status.state}[/dim]")

    try:
        _run(action)
    except KeyboardInterrupt:
        console.print("[yellow]Stopped[/yellow]")


def _display_snapshot(snapshot: StockSnapshot) -> None:
    s = snapshot.stock
    change = s.daily_change
    color = "green" if change.value > 0 else "red" if change.value < 0 else "white"
    source = snapshot.source + (" [yellow](simulated)[/yellow]" if snapshot.simulated else "")

    console.print(Panel(
        f"[bold white]{s.name}[/bold white] ({s.ticker}) | {s.exchange}\n"
        f"Price: [bold]{format_price(s.current_price, s.ticker)}[/bold] "
        f"[{color}]{change.value:+,.2f} ({change.percentage:+.2f}%)[/{color}]\n"
        f"Source: {source}",
        title="Quote",
    ))

    table = Table(show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Volume", s.volume)
    table.add_row("Market cap", s.market_cap)
    table.add_row("P/E", f"{s.pe_ratio:.2f}" if s.pe_ratio is not None else "N/A")
    table.add_row("52w high", format_price(s.fifty_two_week_high, s.ticker))
    table.add_row("52w low", format_price(s.fifty_two_week_low, s.ticker))
    table.add_row("Beta", f"{s.beta:.2f}" if s.beta is not None else "N/A")
    table.add_row("Chart days", str(len(snapshot.chart)))
    console.print(table)


def _display_indices(quotes: list[IndexQuote]) -> None:
    table = Table(title="Global Indices")
    table.add_column("Index", style="cyan")
    table.add_column("Price", justify="right")
    table.add_column("Change", justify="right")
    table.add_column("%", justify="right")
    table.add_column("Source", style="dim")

    for q in quotes:
        color = "green" if q.change > 0 else "red" if q.change < 0 else "white"
        table.add_row(
            INDEX_NAMES.get(q.symbol, q.symbol),
            f"{q.price:,.2f}",
            f"[{color}]{q.change:+,.2f}[/{color}]",
            f"[{color}]{q.change_percent:+.2f}%[/{color}]",
            q.source,
        )
    console.print(table)


def _display_news(articles: list[NewsArticle]) -> None:
    table = Table(title="News")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Title")
    table.add_column("Source", style="cyan")
    table.add_column("Category")
    table.add_column("Published", style="dim")

    for i, a in enumerate(articles, 1):
        title = escape(a.title) + (" [dim](generated)[/dim]" if a.is_generated else "")
        table.add_row(str(i), title, escape(a.source), a.category or "", a.published_at[:16])
    console.print(table)


def _display_analysis(result: AiAnalysisResult) -> None:
    color = {"Buy": "green", "Sell": "red"}.get(result.recommendation, "yellow")
    lines = [
        f"Recommendation: [bold {color}]{result.recommendation}[/bold {color}]",
        f"Confidence: {result.confidence_score * 100:.0f}%",
        f"Risk: {result.risk_level or 'N/A'}",
        f"Source: {result.source}",
    ]
    if result.news_sentiment is not None:
        lines.append(
            f"News sentiment: {result.news_sentiment.sentiment} "
            f"({result.news_sentiment.confidence_score * 100:.0f}%)"
        )
    console.print(Panel("\n".join(lines), title="AI Analysis"))
    console.print(result.analysis_summary)


def _display_fear_greed(reading) -> None:
    color = "red" if reading.value < 45 else "green" if reading.value > 55 else "yellow"
    console.print(Panel(
        f"[bold {color}]{reading.value:.0f}[/bold {color}] / 100\n"
        f"{reading.label}\n"
        f"[dim]source: {reading.source}[/dim]",
        title="Fear & Greed",
    ))


def _display_overview(result: MarketOverview) -> None:
    if result.snapshot is not None:
        _display_snapshot(result.snapshot)
    if result.company is not None:
        c = result.company
        console.print(Panel(
            f"{c.name or result.ticker}\n{c.sector or 'N/A'} / {c.industry or 'N/A'}\n\n"
            f"{escape((c.description or '')[:400])}",
            title="Company",
        ))
    if result.technicals is not None:
        t = result.technicals
        rsi = f"{t.rsi:.1f}" if t.rsi is not None else "N/A"
        console.print(Panel(
            f"RSI: {rsi} ({t.rsi_signal})\n"
            f"MACD: {t.macd_trend}\n"
            f"Trend: {t.trend} ({t.trend_change_pct:+.2f}%)\n"
            f"Volume: {t.volume_trend}\n"
            f"[dim]source: {t.source}[/dim]",
            title="Technicals",
        ))
    if result.news:
        _display_news(result.news)


def main():
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
