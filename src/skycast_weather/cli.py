"""Terminal front-end: look up weather, analysis series and chat from the shell."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import time
from dataclasses import dataclass
from datetime import date, timedelta

from rich.console import Console
from rich.table import Table

from .analysis import AnalysisService, summarize
from .assistant import WeatherAssistant
from .cache import WeatherCache
from .config import Settings, load_settings
from .exceptions import ConfigError, SkyCastError
from .genai import GeminiClient
from .log_setup import setup_logger
from .models import (
    PARAMETER_CATALOG,
    RESOLUTIONS,
    AnalysisPoint,
    ChatMessage,
    Notification,
    WeatherSnapshot,
)
from .storage import JsonFileStore
from .sync import DashboardSync, LastCityStore
from .weather_service import WeatherService

_NOTIFICATION_STYLES = {"info": "cyan", "success": "green", "error": "bold red"}


@dataclass(slots=True)
class Services:
    client: GeminiClient
    weather: WeatherService
    analysis: AnalysisService
    assistant: WeatherAssistant
    last_city: LastCityStore


def build_services(settings: Settings, logger: logging.Logger) -> Services:
    store = JsonFileStore(settings.cache_path)
    client = GeminiClient(settings=settings, logger=logger)
    weather = WeatherService(
        client,
        WeatherCache(store, logger, prefix=settings.cache_prefix),
        logger=logger,
        model=settings.gemini_model,
        fresh_ttl_ms=settings.cache_fresh_ttl_ms,
    )
    return Services(
        client=client,
        weather=weather,
        analysis=AnalysisService(client, logger=logger, model=settings.gemini_model),
        assistant=WeatherAssistant(client, logger=logger, model=settings.gemini_model),
        last_city=LastCityStore(store),
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse skycast CLI arguments."""
    parser = argparse.ArgumentParser(
        prog="skycast",
        description="Weather conditions, forecasts and trends synthesized by a generative model.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    weather = sub.add_parser("weather", help="Show current conditions and forecast.")
    weather.add_argument("city", nargs="?", default=None, help="City (defaults to last city).")
    weather.add_argument("--hours", type=int, default=6, help="Hourly rows to print.")

    today = date.today()
    for name, help_text in (
        ("history", "Synthesized historical series for one parameter."),
        ("predict", "Synthesized predicted series for one parameter."),
    ):
        series = sub.add_parser(name, help=help_text)
        series.add_argument("city")
        series.add_argument("--parameter", choices=sorted(PARAMETER_CATALOG), default="temp")
        series.add_argument(
            "--start", default=(today - timedelta(days=7)).isoformat(), help="YYYY-MM-DD"
        )
        series.add_argument("--end", default=today.isoformat(), help="YYYY-MM-DD")
        series.add_argument("--resolution", choices=RESOLUTIONS, default="Daily")

    chat = sub.add_parser("chat", help="Ask the weather assistant one question.")
    chat.add_argument("message")
    chat.add_argument("--city", default=None, help="City whose weather frames the answer.")

    watch = sub.add_parser("watch", help="Load a city and keep refreshing it.")
    watch.add_argument("city", nargs="?", default=None)
    watch.add_argument(
        "--iterations", type=int, default=None, help="Stop after N loads (default: forever)."
    )
    return parser.parse_args(argv)


def _print_notification(console: Console, notification: Notification) -> None:
    console.print(f"[{_NOTIFICATION_STYLES[notification.kind]}]{notification.message}[/]")


def _print_snapshot(console: Console, snapshot: WeatherSnapshot, hours: int) -> None:
    console.print(
        f"[bold]{snapshot.city}[/] {snapshot.temp:g}°C (feels {snapshot.feels_like:g}°C) "
        f"{snapshot.condition} | wind {snapshot.wind_speed:g} @ {snapshot.wind_direction}° "
        f"| humidity {snapshot.humidity:g}% | AQI {snapshot.aqi:g} | tz {snapshot.timezone or '-'}"
    )
    for alert in snapshot.alerts:
        console.print(f"[yellow]Alert:[/] {alert}")

    table = Table(title="7-Day Forecast")
    for column in ("Day", "High", "Low", "Condition", "Precip %", "Rain mm", "Wind"):
        table.add_column(column)
    for day in snapshot.forecast:
        table.add_row(
            day.day or "-",
            f"{day.high:g}",
            f"{day.low:g}",
            day.condition or "-",
            f"{day.precip:g}",
            f"{day.precip_amount:g}",
            f"{day.wind_speed:g} @ {day.wind_direction}°",
        )
    console.print(table)

    if hours > 0 and snapshot.hourly:
        hourly = Table(title="Hourly")
        for column in ("Time", "Temp", "Condition", "Precip %", "Wind"):
            hourly.add_column(column)
        for hour in snapshot.hourly[:hours]:
            hourly.add_row(
                hour.time or "-",
                f"{hour.temp:g}",
                hour.condition or "-",
                f"{hour.precip:g}",
                f"{hour.wind_speed:g} @ {hour.wind_direction}°",
            )
        console.print(hourly)

    for source in snapshot.sources:
        console.print(f"[dim]Source: {source.title or source.uri} ({source.uri})[/]")


def _print_series(
    console: Console, title: str, parameter: str, points: list[AnalysisPoint]
) -> None:
    if not points:
        console.print("No data available for this range.")
        return
    info = PARAMETER_CATALOG[parameter]
    table = Table(title=title)
    table.add_column("Label")
    table.add_column(f"{info.label} ({info.unit})")
    for point in points:
        table.add_row(point.label, f"{point.value:g}")
    console.print(table)
    summary = summarize(points)
    console.print(
        f"Peak {summary.peak:.1f}{info.unit} | Mean {summary.mean:.1f}{info.unit} "
        f"| Low {summary.low:.1f}{info.unit}"
    )


async def _run(args: argparse.Namespace, settings: Settings, logger: logging.Logger) -> int:
    console = Console()
    services = build_services(settings, logger)

    def notify(notification: Notification) -> None:
        _print_notification(console, notification)

    try:
        if args.command == "weather":
            sync = DashboardSync(
                services.weather,
                services.last_city,
                logger=logger,
                notify=notify,
            )
            outcome = await sync.load(args.city or services.last_city.load(settings.default_city))
            if outcome.snapshot is None:
                return 1
            _print_snapshot(console, outcome.snapshot, args.hours)
            return 0

        if args.command in {"history", "predict"}:
            fetch = (
                services.analysis.fetch_historical
                if args.command == "history"
                else services.analysis.fetch_predicted
            )
            points = await fetch(args.city, args.parameter, args.start, args.end, args.resolution)
            _print_series(
                console,
                f"{args.command.capitalize()} {args.parameter} for {args.city} "
                f"({args.start} to {args.end}, {args.resolution})",
                args.parameter,
                points,
            )
            return 0

        if args.command == "chat":
            weather = await services.weather.fetch(args.city) if args.city else None
            history = [
                ChatMessage(role="user", content=args.message, timestamp=int(time.time() * 1000))
            ]
            reply = await services.assistant.reply(history, weather)
            console.print(reply.text)
            for source in reply.sources:
                console.print(f"[dim]Source: {source.title or source.uri} ({source.uri})[/]")
            if reply.city_to_update:
                outcome = await DashboardSync(
                    services.weather,
                    services.last_city,
                    logger=logger,
                    notify=notify,
                ).load(reply.city_to_update)
                if outcome.snapshot is not None:
                    _print_snapshot(console, outcome.snapshot, hours=0)
            return 0

        if args.command == "watch":
            city = args.city or services.last_city.load(settings.default_city)
            sync = DashboardSync(
                services.weather,
                services.last_city,
                logger=logger,
                interval_seconds=settings.sync_interval_seconds,
                notify=notify,
            )
            outcome = await sync.run(city, iterations=args.iterations)
            if outcome.snapshot is not None:
                _print_snapshot(console, outcome.snapshot, hours=0)
            return 0 if outcome.snapshot is not None else 1
    except SkyCastError as exc:
        logger.error("skycast %s failed: %s", args.command, exc)
        console.print("[bold red]Atmospheric Interruption[/]")
        return 1
    finally:
        # Let a stale-cache revalidation finish writing before the client goes away.
        await services.weather.coordinator.wait_idle()
        await services.client.aclose()
    return 1


def main(argv: list[str] | None = None) -> int:
    """Entry point for the ``skycast`` command."""
    args = parse_args(argv)
    logger = setup_logger()

    try:
        settings = load_settings()
    except ConfigError as exc:
        logger.error("Configuration failure: %s", exc)
        return 2

    logger.setLevel(settings.log_level)
    logger.info("skycast starting", extra={"config": settings.safe_summary()})
    try:
        return asyncio.run(_run(args, settings, logger))
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
