from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

import aiohttp
import typer
from dotenv import load_dotenv

from .core.errors import ConfigError, SummalyError
from .workflows.summarizer import RequestParams, Summarizer
from .workflows.summary_config import ServiceConfig, load_config

app = typer.Typer(add_completion=False, no_args_is_help=True)


def _setup(config_path: Optional[Path], log_level: str) -> ServiceConfig:
    load_dotenv()
    logging.basicConfig(level=getattr(logging, log_level.upper(), logging.INFO), format="%(message)s")
    try:
        return load_config(config_path)
    except ConfigError as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=2)


async def summarize_once(config: ServiceConfig, params: RequestParams) -> str:
    async with aiohttp.ClientSession() as session:
        summarizer = Summarizer(config, session)
        try:
            record = await summarizer.summarize(params)
        finally:
            await summarizer.throttle.wait_idle()
    return record.to_json()


@app.command("serve")
def serve(
    config_path: Optional[Path] = typer.Option(None, "--config", help="Config JSON (default: $SUMMALY_CONFIG_PATH or config.json)."),
    log_level: str = typer.Option("info", "--log-level", help="Logging level."),
) -> None:
    """Run the summary HTTP service on the configured bind address."""
    from .server import run

    config = _setup(config_path, log_level)
    logging.getLogger(__name__).info("listening on %s", config.bind_addr)
    run(config)


@app.command("get")
def get_summary(
    url: str = typer.Argument(..., help="URL to summarize."),
    lang: Optional[str] = typer.Option(None, "--lang", help="Accept-Language sent upstream."),
    user_agent: Optional[str] = typer.Option(None, "--user-agent", help="Override the configured user agent."),
    timeout: Optional[int] = typer.Option(None, "--timeout", help="Response timeout in ms (capped by config)."),
    limit: Optional[int] = typer.Option(None, "--limit", help="Content length limit in bytes."),
    config_path: Optional[Path] = typer.Option(None, "--config", help="Config JSON path."),
    log_level: str = typer.Option("warning", "--log-level", help="Logging level."),
) -> None:
    """Summarize one URL and print the JSON record."""
    config = _setup(config_path, log_level)
    params = RequestParams(
        url=url,
        lang=lang,
        user_agent=user_agent,
        response_timeout=timeout,
        content_length_limit=limit,
    )
    try:
        payload = asyncio.run(summarize_once(config, params))
    except SummalyError as exc:
        typer.echo(f"error: {exc.status} {exc}", err=True)
        raise typer.Exit(code=2)
    sys.stdout.write(payload + "\n")
