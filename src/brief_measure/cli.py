from __future__ import annotations

import asyncio
import json
import sys
from typing import Awaitable, Callable, List, Optional, TypeVar

import typer
from loguru import logger

from .app import BriefMeasureApp
from .codec import parse_answer_pairs
from .config import get_settings
from .credentials import summarize_key
from .errors import BriefMeasureError
from .questions import QUESTIONS

app = typer.Typer(help="brief-measure observation client")

R = TypeVar("R")


def _configure_logging(level: str) -> None:
    logger.remove()
    logger.add(sys.stderr, level=level.upper())


def _run(fn: Callable[[BriefMeasureApp], Awaitable[R]]) -> R:
    """Run fn against a freshly composed app; user errors exit with code 1."""

    async def runner() -> R:
        async with BriefMeasureApp.from_settings(get_settings()) as bm:
            return await fn(bm)

    try:
        return asyncio.run(runner())
    except BriefMeasureError as e:
        logger.error(str(e))
        raise typer.Exit(code=1)


def _echo(payload: dict) -> None:
    typer.echo(json.dumps(payload, indent=2, default=str))


def endpoint_opt() -> Optional[str]:
    return typer.Option(None, "--endpoint", help="API base URL or any of its endpoints")


def wait_opt() -> bool:
    return typer.Option(False, "--wait", help="Keep retrying until the queue is empty")


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Override LOG_LEVEL"),
):
    _configure_logging(log_level or get_settings().LOG_LEVEL)


@app.command("questions")
def questions():
    """List the questions in encoding order."""
    for q in QUESTIONS:
        typer.echo(f"{q.id:>2}  {q.text}  [{' / '.join(q.scale_labels)}]")


@app.command("submit")
def submit(
    answers: List[str] = typer.Argument(..., help="Answers as ID=VALUE (VALUE 1-4)"),
    wait: bool = wait_opt(),
):
    """Queue a completed answer-set and try to deliver it."""
    try:
        responses = parse_answer_pairs(answers)
    except BriefMeasureError as e:
        logger.error(str(e))
        raise typer.Exit(code=1)

    async def go(bm: BriefMeasureApp):
        record = await bm.submit(responses)
        if record is not None and wait:
            await bm.uploader.run_until_idle()
        return record, bm.status.snapshot

    record, snapshot = _run(go)
    if record is None:
        logger.error("Invalid response set; nothing was queued")
        raise typer.Exit(code=1)
    _echo({"queued": record.external_id, "status": snapshot.to_dict()})


@app.command("status")
def status():
    """Show pending count and delivery state."""

    async def go(bm: BriefMeasureApp):
        api_key = bm.credentials.load_api_key()
        return {
            "base_url": bm.credentials.base_url,
            "api_key": summarize_key(api_key) if api_key else None,
            "status": bm.status.snapshot.to_dict(),
        }

    _echo(_run(go))


@app.command("queue")
def queue():
    """Print pending observations as NDJSON."""

    async def go(bm: BriefMeasureApp):
        return bm.uploader.pending

    for record in _run(go):
        typer.echo(record.model_dump_json(by_alias=True))


@app.command("retry")
def retry(wait: bool = wait_opt()):
    """Attempt delivery of pending observations now."""

    async def go(bm: BriefMeasureApp):
        if wait:
            await bm.uploader.run_until_idle()
        else:
            await bm.uploader.retry_now()
        return bm.status.snapshot

    _echo(_run(go).to_dict())


@app.command("register")
def register(endpoint: Optional[str] = endpoint_opt()):
    """Request a new API key from the service."""

    async def go(bm: BriefMeasureApp):
        return await bm.register(endpoint)

    api_key = _run(go)
    _echo({"api_key": summarize_key(api_key)})


@app.command("set-endpoint")
def set_endpoint(url: str = typer.Argument(..., help="API base URL or any of its endpoints")):
    """Store a new API base URL."""

    async def go(bm: BriefMeasureApp):
        return await bm.change_endpoint(url)

    _echo(_run(go).model_dump())


@app.command("forget-me")
def forget_me(
    endpoint: Optional[str] = endpoint_opt(),
    yes: bool = typer.Option(False, "--yes", help="Do not ask for confirmation"),
):
    """Delete the remote account, the stored key and every pending observation."""
    if not yes:
        typer.confirm("Delete all data stored on the server for this key?", abort=True)

    async def go(bm: BriefMeasureApp):
        await bm.forget_me(endpoint)

    _run(go)
    _echo({"forgotten": True})


if __name__ == "__main__":
    app()
