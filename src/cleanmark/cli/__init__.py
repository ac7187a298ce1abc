from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from ..config import AppConfig, dump_config, load_config
from ..errors import CleanmarkError
from ..models import EMAIL_OPTIONS, Record
from ..records import HtmlRecordSettings, RecordProcessor
from ..service import ConversionService
from ..settings import get_settings
from ..utils import atomic_write

err_console = Console(stderr=True)

app = typer.Typer(help="Convert HTML and DOCX documents into clean Markdown")


def _load_config(path: Path | None) -> AppConfig:
    env = get_settings()
    return env.apply_to(load_config(path or env.config_path))


def _fail(exc: CleanmarkError) -> None:
    err_console.print(f"[red]Conversion failed[/red]: {exc.code} - {exc}", markup=True, highlight=False)
    raise typer.Exit(1) from exc


def _emit(markdown: str, output: Path | None) -> None:
    if output is None:
        typer.echo(markdown)
        return
    atomic_write(output, markdown + "\n")
    err_console.print(f"[green]Success[/green]: wrote {output}")


@app.command()
def html(
    file: Path,
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write Markdown to this file"),
    preserve_tables: bool = typer.Option(False, "--preserve-tables", help="Render tables as pipe tables"),
    max_length: int = typer.Option(0, "--max-length", min=0, help="Truncate output (0 = unlimited)"),
    no_image_alt: bool = typer.Option(False, "--no-image-alt", help="Drop image alt text"),
    allowed_domain: Optional[list[str]] = typer.Option(
        None, "--allowed-domain", help="Keep only links to these hostnames (repeatable)"
    ),
    preserve_line_breaks: bool = typer.Option(False, "--preserve-line-breaks", help="Keep <br> as newlines"),
    email: bool = typer.Option(False, "--email", help="Use the e-mail profile and ignore other options"),
    config: Optional[Path] = typer.Option(None, "--config", help="Path to config.toml"),
) -> None:
    """Convert an HTML file to Markdown."""
    cfg = _load_config(config)
    service = ConversionService(cfg)
    if email:
        options = EMAIL_OPTIONS
    else:
        options = service.options(
            {
                "preserve_tables": preserve_tables or cfg.defaults.preserve_tables,
                "max_length": max_length or cfg.defaults.max_length,
                "include_image_alt": cfg.defaults.include_image_alt and not no_image_alt,
                "allowed_domains": allowed_domain or cfg.defaults.allowed_domains,
                "preserve_line_breaks": preserve_line_breaks or cfg.defaults.preserve_line_breaks,
            }
        )
    try:
        result = service.convert_file(file, options=options)
    except CleanmarkError as exc:
        _fail(exc)
    _emit(result.markdown, output)


@app.command()
def docx(
    file: Path,
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write Markdown to this file"),
    flat: bool = typer.Option(False, "--flat", help="Do not keep tables as HTML"),
    config: Optional[Path] = typer.Option(None, "--config", help="Path to config.toml"),
) -> None:
    """Convert a .docx document to Markdown."""
    cfg = _load_config(config)
    service = ConversionService(cfg)
    if not file.exists():
        err_console.print(f"[red]Conversion failed[/red]: NOT_FOUND - {file}")
        raise typer.Exit(1)
    try:
        service.enforce_size_limit(file.stat().st_size)
        result = service.convert_docx(file.read_bytes(), preserve_structure=not flat, source=str(file))
    except CleanmarkError as exc:
        _fail(exc)
    for warning in result.warnings:
        err_console.print(f"[yellow]Warning[/yellow]: {warning}", highlight=False)
    _emit(result.markdown, output)


@app.command()
def records(
    file: Path,
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write converted records as JSON lines"),
    text_property: str = typer.Option("body", "--text-property", help="Dot path of the HTML field"),
    markdown_field: str = typer.Option("markdown", "--markdown-field", help="Field receiving the Markdown"),
    parallel: Optional[int] = typer.Option(None, "--parallel", min=1, help="Parallel workers"),
    continue_on_fail: bool = typer.Option(False, "--continue-on-fail", help="Record errors and keep going"),
    config: Optional[Path] = typer.Option(None, "--config", help="Path to config.toml"),
) -> None:
    """Convert the HTML field of every record in a JSON lines file."""
    cfg = _load_config(config)
    service = ConversionService(cfg)
    lines = [line for line in file.read_text(encoding="utf-8").splitlines() if line.strip()]
    inputs = [Record(json=json.loads(line)) for line in lines]
    settings = HtmlRecordSettings(text_property=text_property, markdown_field=markdown_field)
    try:
        batch = RecordProcessor(service).process_html(
            inputs, settings, parallelism=parallel, continue_on_fail=continue_on_fail
        )
    except CleanmarkError as exc:
        _fail(exc)
    payload = "\n".join(json.dumps(item.json, ensure_ascii=False) for item in batch.records)
    if output is None:
        typer.echo(payload)
    else:
        atomic_write(output, payload + "\n")

    table = Table(title="Batch summary")
    table.add_column("Total")
    table.add_column("Succeeded")
    table.add_column("Failed")
    summary = batch.summary
    table.add_row(str(summary.total), str(summary.successes), str(summary.failures))
    err_console.print(table)


@app.command()
def show_config(
    config: Optional[Path] = typer.Option(None, "--config", help="Path to config.toml"),
) -> None:
    """Print the effective configuration as JSON."""
    typer.echo(dump_config(_load_config(config)))


@app.command()
def serve(
    config: Optional[Path] = typer.Option(None, "--config", help="Path to config.toml"),
) -> None:
    """Run the local HTTP API."""
    import uvicorn

    from ..api import create_app

    cfg = _load_config(config)
    cfg.runtime.enable_local_api = True
    uvicorn.run(create_app(cfg), host=cfg.api.host, port=cfg.api.port)


if __name__ == "__main__":
    app()
