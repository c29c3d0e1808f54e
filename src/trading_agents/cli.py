"""Click-based CLI for trading-agents.

Thin wrapper around library modules. Every command delegates to providers,
agents, or llm connectors.
"""

from __future__ import annotations

import asyncio
import json
import logging

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from trading_agents.core.config import SUPPORTED_INDICATORS
from trading_agents.core.exceptions import CredentialError, TradingAgentsError
from trading_agents.core.models import (
    LLMProviderName,
    OutputSize,
    ProviderType,
    YahooInterval,
    YahooPeriod,
)

console = Console(stderr=True)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run_async(coro):
    """Run an async coroutine from synchronous Click code."""
    return asyncio.run(coro)


def _load_config(ctx: click.Context):
    """Load config lazily, caching on first call."""
    if "config" not in ctx.obj:
        from trading_agents.core import load_config

        try:
            ctx.obj["config"] = load_config(config_path=ctx.obj.get("config_path"))
        except TradingAgentsError as e:
            _fail(f"Invalid configuration: {e}")
    return ctx.obj["config"]


def _fail(message: str) -> None:
    console.print(f"[red]{message}[/red]")
    raise SystemExit(1)


def _split_tickers(tickers: str) -> list[str]:
    symbols = [t.strip().upper() for t in tickers.split(",") if t.strip()]
    if not symbols:
        raise click.UsageError("--tickers must name at least one symbol")
    return symbols


def _fetch_kwargs(provider: str, config, output_size, period, interval) -> dict:
    """Per-provider fetch options, CLI flags over config defaults."""
    if provider == ProviderType.ALPHAVANTAGE:
        return {"output_size": output_size or config.providers.alphavantage.output_size}
    return {
        "period": period or config.providers.yahoo.period,
        "interval": interval or config.providers.yahoo.interval,
    }


def _summarize(points) -> dict:
    closes = [p.close for p in points]
    days = [p.time for p in points]
    latest = max(points, key=lambda p: p.time)
    return {
        "points": len(points),
        "from": min(days),
        "to": max(days),
        "min_close": min(closes),
        "max_close": max(closes),
        "latest": latest,
    }


def _summary_table(title: str, data: dict, errors: dict) -> Table:
    table = Table(title=title)
    table.add_column("Symbol", style="bold")
    table.add_column("Points", justify="right")
    table.add_column("Date range")
    table.add_column("Close range", justify="right")
    table.add_column("Most recent")

    for symbol, points in data.items():
        if not points:
            table.add_row(symbol, "0", "-", "-", "[yellow]no data[/yellow]")
            continue
        s = _summarize(points)
        latest = s["latest"]
        table.add_row(
            symbol,
            str(s["points"]),
            f"{s['from']} → {s['to']}",
            f"${s['min_close']:.2f} – ${s['max_close']:.2f}",
            f"{latest.time} O ${latest.open:.2f} C ${latest.close:.2f}",
        )
    for symbol, message in errors.items():
        table.add_row(symbol, "-", "-", "-", f"[red]{message}[/red]")
    return table


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    envvar="TRADING_AGENTS_CONFIG",
    default=None,
    help="Path to trading-agents.yml config file.",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    default=False,
    help="Enable verbose output.",
)
@click.version_option(package_name="trading-agents")
@click.pass_context
def cli(ctx: click.Context, config: str | None, verbose: bool) -> None:
    """Trading Agents: market data collection, analysis agents, and LLM access."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config
    ctx.obj["verbose"] = verbose
    ctx.obj["console"] = console

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
    )


# ---------------------------------------------------------------------------
# collect
# ---------------------------------------------------------------------------


@cli.command()
@click.option(
    "--provider",
    "-p",
    type=click.Choice([p.value for p in ProviderType], case_sensitive=False),
    default=ProviderType.YAHOO.value,
    help="Market data provider.",
)
@click.option("--tickers", "-t", type=str, required=True, help="Comma-separated tickers.")
@click.option(
    "--output-size",
    type=click.Choice([s.value for s in OutputSize]),
    default=None,
    help="Alpha Vantage history depth.",
)
@click.option(
    "--period",
    type=click.Choice([p.value for p in YahooPeriod]),
    default=None,
    help="Yahoo Finance range.",
)
@click.option(
    "--interval",
    type=click.Choice([i.value for i in YahooInterval]),
    default=None,
    help="Yahoo Finance bar size.",
)
@click.option(
    "--store/--no-store",
    default=None,
    help="Archive raw responses as JSON. Default: from config.",
)
@click.option(
    "--storage-dir",
    type=click.Path(file_okay=False),
    default=None,
    help="Directory for archived responses.",
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["table", "json"], case_sensitive=False),
    default="table",
    help="Output format.",
)
@click.pass_context
def collect(
    ctx: click.Context,
    provider: str,
    tickers: str,
    output_size: str | None,
    period: str | None,
    interval: str | None,
    store: bool | None,
    storage_dir: str | None,
    output_format: str,
) -> None:
    """Fetch daily prices for one or more tickers."""
    config = _load_config(ctx)
    symbols = _split_tickers(tickers)
    provider = provider.lower()

    options = config.providers.options_for(provider)
    updates: dict = {}
    if storage_dir is not None:
        updates["storage_dir"] = storage_dir
        updates["store"] = True if store is None else store
    elif store is not None:
        updates["store"] = store
    options = options.model_copy(update=updates)
    fetch_kwargs = _fetch_kwargs(provider, config, output_size, period, interval)

    async def _run():
        from trading_agents.providers import create_provider

        async with create_provider(provider, options) as market:
            if not market.has_valid_credentials():
                raise CredentialError(
                    f"{market.provider_name} credentials missing. "
                    "Set ALPHAVANTAGE_API_KEY or providers.alphavantage.api_key.",
                    context={"provider": market.provider_name},
                )
            with console.status(f"Fetching {len(symbols)} symbols from {market.provider_name}..."):
                return await market.fetch_batch(symbols, **fetch_kwargs)

    try:
        batch = _run_async(_run())
    except TradingAgentsError as e:
        _fail(str(e))

    if output_format == "json":
        click.echo(json.dumps(batch.model_dump(mode="json"), indent=2))
    else:
        console.print(_summary_table(f"{provider} daily prices", batch.data, batch.errors))
        console.print(
            f"[green]✓[/green] Fetched {len(batch.data)} of {len(symbols)} symbols"
            + (f" ({len(batch.errors)} errors)" if batch.errors else "")
        )

    if not batch.data:
        raise SystemExit(1)


# ---------------------------------------------------------------------------
# compare
# ---------------------------------------------------------------------------


@cli.command()
@click.option("--tickers", "-t", type=str, default="AAPL,MSFT", help="Comma-separated tickers.")
@click.option(
    "--storage-dir",
    type=click.Path(file_okay=False),
    default=None,
    help="Archive both providers' raw responses here.",
)
@click.pass_context
def compare(ctx: click.Context, tickers: str, storage_dir: str | None) -> None:
    """Fetch the same tickers from every provider and summarize each."""
    config = _load_config(ctx)
    symbols = _split_tickers(tickers)

    async def _run():
        from trading_agents.providers import create_provider

        summaries = []
        for provider in (ProviderType.ALPHAVANTAGE, ProviderType.YAHOO):
            options = config.providers.options_for(provider.value)
            if storage_dir is not None:
                options = options.model_copy(update={"store": True, "storage_dir": storage_dir})
            async with create_provider(provider, options) as market:
                if not market.has_valid_credentials():
                    console.print(
                        f"[yellow]{market.provider_name} API key not found or invalid. "
                        "Skipping.[/yellow]"
                    )
                    continue
                kwargs = _fetch_kwargs(provider, config, None, None, None)
                with console.status(f"Fetching from {market.provider_name}..."):
                    batch = await market.fetch_batch(symbols, **kwargs)
                summaries.append((market.provider_name, batch))
        return summaries

    try:
        summaries = _run_async(_run())
    except TradingAgentsError as e:
        _fail(str(e))

    for name, batch in summaries:
        console.print(_summary_table(f"Data summary for {name}", batch.data, batch.errors))
    if storage_dir:
        console.print(f"Data stored in: {storage_dir}")


# ---------------------------------------------------------------------------
# analyze
# ---------------------------------------------------------------------------


@cli.command()
@click.option(
    "--provider",
    "-p",
    type=click.Choice([p.value for p in ProviderType], case_sensitive=False),
    default=ProviderType.YAHOO.value,
    help="Market data provider.",
)
@click.option("--ticker", "-t", type=str, required=True, help="Ticker to analyze.")
@click.option(
    "--indicator",
    "-i",
    type=click.Choice(list(SUPPORTED_INDICATORS), case_sensitive=False),
    multiple=True,
    help="Indicators to compute. Can specify multiple: -i sma -i rsi",
)
@click.option(
    "--period",
    type=click.Choice([p.value for p in YahooPeriod]),
    default=None,
    help="Yahoo Finance range.",
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["table", "json"], case_sensitive=False),
    default="table",
    help="Output format.",
)
@click.pass_context
def analyze(
    ctx: click.Context,
    provider: str,
    ticker: str,
    indicator: tuple[str, ...],
    period: str | None,
    output_format: str,
) -> None:
    """Run technical analysis on a ticker's daily prices."""
    config = _load_config(ctx)
    provider = provider.lower()
    symbol = ticker.strip().upper()
    indicators = [i.lower() for i in indicator] or list(config.agents.technical.indicators)
    fetch_kwargs = _fetch_kwargs(provider, config, None, period, None)

    async def _run():
        from trading_agents.agents import default_registry
        from trading_agents.providers import create_provider

        async with create_provider(provider, config.providers.options_for(provider)) as market:
            points = await market.fetch_daily_time_series(symbol, **fetch_kwargs)

        registry = default_registry()
        agent = registry.create("technical-analysis", f"technical-{symbol}")
        await agent.initialize({"indicators": indicators})
        try:
            return await agent.execute({"symbol": symbol, "data": points, "indicators": indicators})
        finally:
            await registry.remove(agent.id)

    try:
        result = _run_async(_run())
    except TradingAgentsError as e:
        _fail(str(e))

    if output_format == "json":
        click.echo(json.dumps(result, indent=2, default=str))
        return

    table = Table(title=f"Technical analysis: {symbol}")
    table.add_column("Indicator", style="bold")
    table.add_column("Latest", justify="right")
    for name, values in result["indicators"].items():
        table.add_row(name, _latest_text(values))
    console.print(table)

    signals = result["signals"]
    for bucket, colour in (("buy", "green"), ("sell", "red"), ("hold", "yellow")):
        for signal in signals[bucket]:
            console.print(f"[{colour}]{bucket.upper()}[/{colour}] {signal['indicator']}: {signal['reason']}")
    console.print(f"Overall: [bold]{signals['strength']}[/bold]")


def _latest_text(values: dict) -> str:
    latest = values.get("latest")
    if isinstance(latest, dict):
        return " ".join(f"{k}={v:.2f}" for k, v in latest.items())
    if latest is not None:
        return f"{latest:.2f}"
    parts = [f"{k}={v[-1]:.2f}" for k, v in values.items() if isinstance(v, list) and v]
    return " ".join(parts) or "insufficient data"


# ---------------------------------------------------------------------------
# sentiment
# ---------------------------------------------------------------------------


@cli.command()
@click.option(
    "--articles",
    "articles_path",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="JSON file: a list of articles or an object with an 'articles' list.",
)
@click.option("--source", "-s", multiple=True, help="News API URL returning {'articles': [...]}.")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["table", "json"], case_sensitive=False),
    default="table",
    help="Output format.",
)
@click.pass_context
def sentiment(
    ctx: click.Context,
    articles_path: str | None,
    source: tuple[str, ...],
    output_format: str,
) -> None:
    """Score the sentiment of news articles."""
    config = _load_config(ctx)
    articles: list = []
    if articles_path:
        with open(articles_path, encoding="utf-8") as f:
            try:
                raw = json.load(f)
            except json.JSONDecodeError as e:
                raise click.UsageError(f"{articles_path} is not valid JSON: {e}")
        articles = raw.get("articles", []) if isinstance(raw, dict) else raw

    sources = list(source) or list(config.agents.sentiment.sources)
    if not articles and not sources:
        raise click.UsageError("Provide --articles or at least one --source")

    async def _run():
        from trading_agents.agents import default_registry

        registry = default_registry()
        agent = registry.create("news-sentiment", "news-sentiment")
        await agent.initialize({"timeout": config.agents.sentiment.timeout})
        try:
            return await agent.execute({"articles": articles, "sources": sources})
        finally:
            await registry.remove(agent.id)

    try:
        result = _run_async(_run())
    except TradingAgentsError as e:
        _fail(str(e))

    if output_format == "json":
        click.echo(json.dumps(result, indent=2, default=str))
        return

    table = Table(title="Article sentiment")
    table.add_column("Title", style="bold")
    table.add_column("Score", justify="right")
    table.add_column("Vote")
    for item in result["article_sentiments"]:
        table.add_row(
            str(item["title"] or ""),
            f"{item['sentiment']['score']:.3f}",
            item["sentiment"]["vote"],
        )
    console.print(table)

    overall = result["overall_sentiment"]
    if overall is None:
        console.print("[yellow]No articles to analyze.[/yellow]")
    else:
        console.print(
            f"Overall: [bold]{overall['assessment']}[/bold] "
            f"({overall['score']:.3f} over {overall['article_count']} articles)"
        )


# ---------------------------------------------------------------------------
# llm
# ---------------------------------------------------------------------------


@cli.group()
def llm() -> None:
    """Talk to an LLM provider."""


def _llm_settings(ctx: click.Context, provider: str | None, model: str | None):
    config = _load_config(ctx)
    llm_config = config.llm
    if provider and provider != llm_config.provider:
        llm_config = llm_config.model_copy(
            update={"provider": LLMProviderName(provider), "model": None, "api_key": None, "base_url": None}
        )
    if model:
        llm_config = llm_config.model_copy(update={"model": model})
    return llm_config


@llm.command()
@click.argument("prompt")
@click.option(
    "--provider",
    "-p",
    type=click.Choice([p.value for p in LLMProviderName], case_sensitive=False),
    default=None,
    help="LLM provider. Default: from config.",
)
@click.option("--model", "-m", type=str, default=None, help="Model name.")
@click.option("--system", "system_prompt", type=str, default=None, help="System prompt.")
@click.option("--stream", is_flag=True, default=False, help="Print the reply as it arrives.")
@click.pass_context
def chat(
    ctx: click.Context,
    prompt: str,
    provider: str | None,
    model: str | None,
    system_prompt: str | None,
    stream: bool,
) -> None:
    """Send PROMPT and print the reply."""
    llm_config = _llm_settings(ctx, provider.lower() if provider else None, model)

    async def _run():
        from trading_agents.llm import connector_from_config

        async with connector_from_config(llm_config) as connector:
            messages = []
            if system_prompt:
                messages.append(connector.system_message(system_prompt))
            messages.append(connector.user_message(prompt))

            if stream:
                async for chunk in connector.stream_chat(messages):
                    click.echo(chunk.content, nl=False)
                click.echo()
                return None

            response = await connector.chat(messages)
            click.echo(response.content)
            return response

    try:
        response = _run_async(_run())
    except TradingAgentsError as e:
        _fail(str(e))

    if response is not None and response.usage is not None and ctx.obj["verbose"]:
        console.print(
            f"[dim]{response.model}: {response.usage.prompt_tokens} prompt + "
            f"{response.usage.completion_tokens} completion tokens[/dim]"
        )


async def _list_models(connector) -> list[str]:
    async with connector:
        return await connector.list_models()


@llm.command()
@click.option(
    "--provider",
    "-p",
    type=click.Choice([p.value for p in LLMProviderName], case_sensitive=False),
    default=None,
    help="LLM provider. Default: from config.",
)
@click.option("--live", is_flag=True, default=False, help="Ask the vendor API instead of the built-in list.")
@click.pass_context
def models(ctx: click.Context, provider: str | None, live: bool) -> None:
    """List models for an LLM provider."""
    llm_config = _llm_settings(ctx, provider.lower() if provider else None, None)

    from trading_agents.llm import available_models, connector_from_config, default_model

    if live:
        try:
            names = _run_async(_list_models(connector_from_config(llm_config)))
        except TradingAgentsError as e:
            _fail(str(e))
    else:
        names = available_models(llm_config.provider)

    default = default_model(llm_config.provider)
    table = Table(title=f"{llm_config.provider.value} models")
    table.add_column("Model", style="bold")
    table.add_column("Default")
    for name in names:
        table.add_row(name, "✓" if name == default else "")
    console.print(table)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
