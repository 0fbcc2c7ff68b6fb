# health_summary/cli.py
from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional

import typer
import structlog

from .aggregator import DailyAggregator, run_daily_aggregation
from .config import get_settings, load_settings
from .errors import AuthorizationError, ConfigurationError, SerializationError
from .models import METRIC_KINDS
from .payload import encode_summary
from .sources.apple_health import AppleHealthExport
from .utils import get_tz, redact

app = typer.Typer(no_args_is_help=True, help="health-summary CLI")
log = structlog.get_logger()

EXIT_FAILED = 1
EXIT_STARTUP = 2


# ---------- helpers ----------

def _export_path(export: Optional[Path]) -> Path:
    if export is not None:
        return export
    configured = get_settings().HEALTH_EXPORT_PATH
    if not configured:
        raise ConfigurationError("No health export given. Pass --export or set HEALTH_EXPORT_PATH.")
    return Path(configured)


def _source_names() -> Optional[set[str]]:
    raw = get_settings().HEALTH_EXPORT_SOURCES or ""
    names = {s.strip() for s in raw.split(",") if s.strip()}
    return names or None


async def _authorized_source(path: Path) -> AppleHealthExport:
    source = AppleHealthExport(path, source_names=_source_names())
    await source.request_authorization(METRIC_KINDS)
    return source


def _startup_failure(e: Exception) -> typer.Exit:
    log.error("startup_failed", error=str(e))
    typer.echo(f"[ERR] {e}", err=True)
    return typer.Exit(code=EXIT_STARTUP)


# ---------- commands ----------

@app.command()
def run(
    export: Optional[Path] = typer.Option(None, help="Apple Health export.xml (default: HEALTH_EXPORT_PATH)"),
) -> None:
    """Build today's summary and POST it to the metrics API."""

    async def _run():
        settings = load_settings()
        source = await _authorized_source(_export_path(export))
        return await run_daily_aggregation(source, settings)

    try:
        result = asyncio.run(_run())
    except (ConfigurationError, AuthorizationError) as e:
        raise _startup_failure(e)

    for err in result.errors:
        typer.echo(f"[WARN] {err.target}: {err.reason}")
    if not result.submitted:
        typer.echo("Summary not sent (serialization failed).", err=True)
        raise typer.Exit(code=EXIT_FAILED)
    if not result.success:
        typer.echo("Summary rejected or API unreachable.", err=True)
        raise typer.Exit(code=EXIT_FAILED)
    typer.echo(f"OK: summary sent ({len(result.summary.sessions)} workouts).")


@app.command()
def show(
    export: Optional[Path] = typer.Option(None, help="Apple Health export.xml (default: HEALTH_EXPORT_PATH)"),
) -> None:
    """Print today's payload without sending it."""

    async def _show():
        settings = get_settings()
        source = await _authorized_source(_export_path(export))
        aggregator = DailyAggregator(
            source, None, tz=get_tz(settings.TZ), query_timeout=settings.QUERY_TIMEOUT_SECONDS
        )
        return await aggregator.run()

    try:
        result = asyncio.run(_show())
    except (ConfigurationError, AuthorizationError) as e:
        raise _startup_failure(e)

    try:
        typer.echo(encode_summary(result.summary).decode("utf-8"))
    except SerializationError as e:
        typer.echo(f"[ERR] {e}", err=True)
        raise typer.Exit(code=EXIT_FAILED)


@app.command("diag")
def diag() -> None:
    """Quick check of the loaded configuration."""
    settings = get_settings()
    typer.echo(f"BASE_URL: {settings.BASE_URL}")
    typer.echo(f"API_KEY set: {bool(settings.API_KEY)}  ({redact(settings.API_KEY)})")
    typer.echo(f"TZ: {settings.TZ}")
    export = settings.HEALTH_EXPORT_PATH
    typer.echo(f"HEALTH_EXPORT_PATH: {export}  (exists={Path(export).is_file() if export else False})")
    try:
        load_settings(settings)
    except ConfigurationError as e:
        typer.echo(f"[WARN] {e}")


if __name__ == "__main__":
    app()
