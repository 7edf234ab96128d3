"""
modelsync CLI.

Usage:
    modelsync copy llama3 http://gpu-box:11434/llama3
    modelsync copy http://gpu-box:11434/llama3:8b llama3:8b
    modelsync copy http://a:11434/llama3 http://b:11434/llama3 -bt 50MB
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

import click
from rich.console import Console
from rich.markup import escape
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    TextColumn,
    TimeRemainingColumn,
    TransferSpeedColumn,
)
from rich.table import Table

from modelsync.config import configure_settings, get_settings, parse_size
from modelsync.exceptions import ModelSyncError
from modelsync.logging import configure_logging
from modelsync.services.copy import AsyncCopyService, CopyReport
from modelsync.services.transfer import ProgressCallback

console = Console()
err_console = Console(stderr=True)


def _size_option(ctx: click.Context, param: click.Parameter, value: str | None) -> int | None:
    if value is None:
        return None
    try:
        return parse_size(value)
    except ValueError as e:
        raise click.BadParameter(str(e)) from e


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Log transfer decisions to stderr")
@click.version_option(package_name="modelsync")
@click.pass_context
def main(ctx: click.Context, verbose: bool) -> None:
    """Copy models between local disk and model servers."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose


# =============================================================================
# Copy Command
# =============================================================================


@main.command()
@click.argument("source")
@click.argument("destination")
@click.option(
    "--buffer-size",
    callback=_size_option,
    help="Memory buffer for remote-to-remote copies (e.g. 256MB)",
)
@click.option(
    "-bt",
    "--bandwidth",
    callback=_size_option,
    help="Bandwidth ceiling per second (e.g. 10MB)",
)
@click.option(
    "--models-dir",
    type=click.Path(file_okay=False, path_type=Path),
    help="Local models directory",
)
@click.option("--local-server", help="Local server URL used to register downloaded models")
@click.pass_context
def copy(
    ctx: click.Context,
    source: str,
    destination: str,
    buffer_size: int | None,
    bandwidth: int | None,
    models_dir: Path | None,
    local_server: str | None,
) -> None:
    """Copy a model.

    SOURCE and DESTINATION are local model names or
    http(s)://host:port/[namespace/]model[:tag] URLs.

    Examples:

        modelsync copy llama3 http://gpu-box:11434/llama3

        modelsync copy http://gpu-box:11434/llama3 llama3

        modelsync copy http://a:11434/llama3 http://b:11434/llama3 -bt 50MB
    """
    overrides: dict[str, Any] = {}
    if buffer_size is not None:
        overrides["buffer_size"] = buffer_size
    if bandwidth is not None:
        overrides["bandwidth_limit"] = bandwidth
    if models_dir is not None:
        overrides["models_dir"] = models_dir
    if local_server is not None:
        overrides["local_server_url"] = local_server

    try:
        settings = configure_settings(**overrides) if overrides else get_settings()
    except ValueError as e:
        err_console.print(f"[red]Error:[/red] {escape(str(e))}", soft_wrap=True)
        raise SystemExit(1) from e

    verbose = bool(ctx.obj and ctx.obj.get("verbose"))
    configure_logging("INFO" if verbose else settings.log_level, json_output=settings.log_json)

    try:
        report = asyncio.run(_copy_async(AsyncCopyService(settings), source, destination))
    except ModelSyncError as e:
        err_console.print(f"[red]Error:[/red] {escape(str(e))}", soft_wrap=True)
        raise SystemExit(1) from e
    except KeyboardInterrupt:
        err_console.print("[yellow]Cancelled[/yellow]")
        raise SystemExit(130)

    _print_report(report)


async def _copy_async(service: AsyncCopyService, source: str, destination: str) -> CopyReport:
    """Run the copy with a progress bar per blob."""
    progress = Progress(
        TextColumn("[cyan]{task.description}"),
        BarColumn(),
        DownloadColumn(),
        TransferSpeedColumn(),
        TimeRemainingColumn(),
        console=err_console,
        transient=False,
    )

    def progress_factory(digest: str, total: int) -> ProgressCallback:
        task_id = progress.add_task(digest[:19], total=total or None)

        def on_progress(transferred: int, size: int, elapsed: float) -> None:
            progress.update(task_id, completed=transferred, total=size or None)

        return on_progress

    def on_status(status: str) -> None:
        progress.console.print(f"[dim]{status}[/dim]")

    with progress:
        return await service.copy(
            source,
            destination,
            progress_factory=progress_factory,
            on_status=on_status,
        )


def _print_report(report: CopyReport) -> None:
    table = Table(show_header=True, header_style="bold")
    table.add_column("Blob", width=20)
    table.add_column("Result", width=12)
    table.add_column("Size", justify="right", width=12)

    for result in report.results:
        if result.kind == "transferred":
            status = "[green]transferred[/green]"
        else:
            status = "[dim]skipped[/dim]"
        size_mb = result.bytes_transferred / 1024 / 1024
        table.add_row(result.digest.short, status, f"{size_mb:.1f} MB" if size_mb else "-")

    console.print(table)
    console.print(
        f"[green]Copied[/green] [cyan]{report.model}[/cyan] "
        f"({report.transferred_count} transferred, {report.skipped_count} skipped) "
        f"in {report.duration:.1f}s"
    )


# =============================================================================
# Entry Point
# =============================================================================


if __name__ == "__main__":
    main()
