"""wtracker command line interface."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any

import typer

from wtracker.codec import parse_response
from wtracker.config import PromptEngineeringMode, load_settings
from wtracker.context import inject_continuity
from wtracker.core import TrackerSession
from wtracker.errors import TrackerError
from wtracker.integrations import RepublicTransport
from wtracker.logging_utils import configure_logging
from wtracker.schema import SchemaNode, schema_to_example

app = typer.Typer(name="wtracker", help="Schema-shaped world state for chat sessions", add_completion=False)

FORMATS = ("json", "xml")


@app.callback()
def main_callback() -> None:
    configure_logging(profile="cli")


def _fail(message: str) -> typer.Exit:
    typer.secho(message, fg=typer.colors.RED, err=True)
    return typer.Exit(1)


def _notify(level: str, message: str) -> None:
    color = typer.colors.RED if level == "error" else typer.colors.YELLOW
    typer.secho(message, fg=color, err=True)


def _read_json(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise _fail(f"cannot read {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise _fail(f"{path} is not valid JSON: {exc}") from exc


def _check_format(fmt: str) -> str:
    if fmt not in FORMATS:
        raise _fail(f"unsupported format: {fmt} (expected one of {', '.join(FORMATS)})")
    return fmt


def _echo_json(value: Any) -> None:
    typer.echo(json.dumps(value, indent=2, ensure_ascii=False))


@app.command()
def example(
    schema_file: Path = typer.Argument(..., help="JSON schema file"),  # noqa: B008
    fmt: str = typer.Option("json", "--format", "-f", help="json or xml"),
) -> None:
    """Print the example response synthesized from a schema."""
    fmt = _check_format(fmt)
    try:
        schema = SchemaNode.from_dict(_read_json(schema_file))
    except TrackerError as exc:
        raise _fail(str(exc)) from exc
    typer.echo(schema_to_example(schema, fmt))  # type: ignore[arg-type]


@app.command()
def parse(
    response_file: Path = typer.Argument(..., help="Saved raw model response"),  # noqa: B008
    fmt: str = typer.Option("json", "--format", "-f", help="json or xml"),
    schema_file: Path | None = typer.Option(None, "--schema", "-s", help="Schema used to repair xml arrays"),  # noqa: B008
) -> None:
    """Parse a saved model response into a structured value."""
    fmt = _check_format(fmt)
    try:
        raw_text = response_file.read_text(encoding="utf-8")
    except OSError as exc:
        raise _fail(f"cannot read {response_file}: {exc}") from exc
    schema = _read_json(schema_file) if schema_file is not None else None
    try:
        value = parse_response(raw_text, fmt, schema)
    except TrackerError as exc:
        raise _fail(str(exc)) from exc
    _echo_json(value)


@app.command()
def inject(
    chat_file: Path = typer.Argument(..., help="JSON list of chat messages"),  # noqa: B008
    replay: int = typer.Option(1, "--replay", "-n", help="Number of snapshots to replay"),
    user_name: str = typer.Option("User", "--user-name", help="Author of replayed messages"),
) -> None:
    """Print the chat with earlier snapshots replayed into it."""
    chat = _read_json(chat_file)
    if not isinstance(chat, list) or not all(isinstance(item, dict) for item in chat):
        raise _fail(f"{chat_file} must contain a list of message objects")
    _echo_json(inject_continuity(chat, replay, user_name=user_name))


@app.command()
def generate(
    chat_file: Path = typer.Argument(..., help="JSON list of chat messages"),  # noqa: B008
    turn: int = typer.Option(..., "--turn", "-t", help="Index of the message to track"),
    schema_file: Path | None = typer.Option(None, "--schema", "-s", help="Schema file, defaults to the preset"),  # noqa: B008
    mode: PromptEngineeringMode | None = typer.Option(None, "--mode", "-m", help="native, json or xml"),  # noqa: B008
    write: bool = typer.Option(False, "--write", help="Store the snapshot back into the chat file"),
) -> None:
    """Generate a snapshot for one message with the configured model."""
    chat = _read_json(chat_file)
    if not isinstance(chat, list):
        raise _fail(f"{chat_file} must contain a list of message objects")
    schema = _read_json(schema_file) if schema_file is not None else None

    overrides: dict[str, Any] = {}
    if mode is not None:
        overrides["prompt_engineering_mode"] = mode
    try:
        settings = load_settings(profile="cli", **overrides)
        transport = RepublicTransport.from_settings(settings)
    except TrackerError as exc:
        raise _fail(str(exc)) from exc

    session = TrackerSession(settings, transport, notifier=_notify)
    result = asyncio.run(session.generate(turn, chat, schema=schema))
    if not result.ok:
        raise typer.Exit(1)
    _echo_json(result.value)
    if write:
        chat_file.write_text(json.dumps(chat, indent=2, ensure_ascii=False), encoding="utf-8")
