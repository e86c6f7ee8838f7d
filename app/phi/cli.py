"""Operator CLI for field encryption: config checks and record re-encryption."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable, Optional

import typer
from rich.console import Console
from rich.table import Table

from app.common.exceptions import ConfigurationError, UnknownEntityError
from app.common.logger import get_logger
from app.infra.safe_logging import safe_log_fields
from app.interpretation.service import provider_catalog
from app.phi.fields import decrypt_fields, encrypt_fields
from app.phi.keys import derive_key
from app.phi.sensitive_fields import SENSITIVE_FIELDS_BY_ENTITY, get_sensitive_fields
from config.startup_settings import load_environment

app = typer.Typer(help="Field encryption CLI")
console = Console(stderr=True)
logger = get_logger("phi.cli")

RECORD_PATH_ARGUMENT = typer.Argument(..., exists=True, dir_okay=False, help="JSON object or list of objects")


@app.callback()
def _cli_entry(_: typer.Context) -> None:
    load_environment()


def _resolve_fields(entity: str) -> tuple[str, ...]:
    try:
        return get_sensitive_fields(entity)
    except UnknownEntityError as exc:
        known = ", ".join(SENSITIVE_FIELDS_BY_ENTITY)
        console.print(f"[red]{exc}[/red] (known: {known})")
        raise typer.Exit(code=2) from exc


def _transform_file(
    path: Path,
    fields: tuple[str, ...],
    transform: Callable[..., dict[str, Any]],
) -> Any:
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        console.print(f"[red]{path} is not valid UTF-8 JSON: {type(exc).__name__}[/red]")
        raise typer.Exit(code=2) from exc
    if isinstance(payload, dict):
        logger.debug("Transforming record fields=%s", safe_log_fields(payload, fields))
        return transform(payload, fields)
    if isinstance(payload, list) and all(isinstance(item, dict) for item in payload):
        return [transform(item, fields) for item in payload]
    console.print("[red]Expected a JSON object or a list of JSON objects.[/red]")
    raise typer.Exit(code=2)


def _run(path: Path, entity: str, transform: Callable[..., dict[str, Any]]) -> None:
    fields = _resolve_fields(entity)
    try:
        result = _transform_file(path, fields, transform)
    except ConfigurationError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from exc
    typer.echo(json.dumps(result, ensure_ascii=False, indent=2))


@app.command("check-config")
def check_config() -> None:
    """Verify the encryption secret and list AI provider status."""
    try:
        derive_key()
    except ConfigurationError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from exc
    console.print("[green]Encryption secret configured; key derivation OK.[/green]")

    table = Table(title="AI providers", show_lines=False)
    table.add_column("Provider", style="cyan")
    table.add_column("Model")
    table.add_column("Configured")
    for entry in provider_catalog():
        table.add_row(str(entry["name"]), str(entry["model"]), "yes" if entry["configured"] else "no")
    console.print(table)


@app.command("fields")
def fields(entity: Optional[str] = typer.Argument(None, help="Entity name, e.g. patient")) -> None:
    """Show which fields are encrypted per entity."""
    entities = [entity] if entity else list(SENSITIVE_FIELDS_BY_ENTITY)
    table = Table(title="Sensitive fields", show_lines=False)
    table.add_column("Entity", style="cyan")
    table.add_column("Fields")
    for name in entities:
        table.add_row(name, ", ".join(_resolve_fields(name)))
    Console().print(table)


@app.command("encrypt-record")
def encrypt_record(
    entity: str = typer.Argument(..., help="Entity name, e.g. patient"),
    path: Path = RECORD_PATH_ARGUMENT,
) -> None:
    """Encrypt the sensitive fields of the record(s) in PATH and print JSON."""
    _run(path, entity, encrypt_fields)


@app.command("decrypt-record")
def decrypt_record(
    entity: str = typer.Argument(..., help="Entity name, e.g. patient"),
    path: Path = RECORD_PATH_ARGUMENT,
) -> None:
    """Decrypt the sensitive fields of the record(s) in PATH and print JSON."""
    _run(path, entity, decrypt_fields)


if __name__ == "__main__":
    app()
