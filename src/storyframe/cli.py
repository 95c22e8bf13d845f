"""storyframe CLI - typer application entry point."""

from __future__ import annotations

import atexit
import json
from pathlib import Path
from typing import Annotated, Any

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from storyframe.errors import StoryframeError
from storyframe.observability import close_file_logging, configure_logging, get_logger
from storyframe.runtime.config import (
    CONFIG_FILENAME,
    ConfigError,
    EngineConfig,
    create_default_config,
    load_engine_config,
    write_engine_config,
)
from storyframe.runtime.driver import FrameDriver, build_stack
from storyframe.serde.codec import check_document, decode, encode
from storyframe.serde.registry import UNDEFINED, default_registry

# Load environment variables from .env file
load_dotenv()

app = typer.Typer(
    name="storyframe",
    help="storyframe: scene stack runtime and save-state codec.",
    no_args_is_help=True,
)
console = Console()
log = get_logger(__name__)


@app.callback()
def main(
    verbose: Annotated[
        int,
        typer.Option(
            "-v",
            "--verbose",
            count=True,
            help="Increase verbosity: -v for INFO, -vv for DEBUG.",
        ),
    ] = 0,
    log_dir: Annotated[
        Path | None,
        typer.Option(
            "--log-dir",
            help="Also write all log events to {log-dir}/debug.jsonl.",
            envvar="STORYFRAME_LOG_DIR",
        ),
    ] = None,
) -> None:
    """storyframe: scene stack runtime and save-state codec."""
    configure_logging(verbosity=verbose, log_to_file=log_dir is not None, log_dir=log_dir)
    if log_dir is not None:
        atexit.register(close_file_logging)


def _fail(message: str) -> typer.Exit:
    console.print(f"[red]Error:[/red] {escape(message)}", soft_wrap=True)
    return typer.Exit(1)


def _load_document(file: Path) -> dict[str, Any]:
    """Read a JSON document from disk, exiting with an error if unreadable."""
    try:
        with file.open("r", encoding="utf-8") as f:
            document = json.load(f)
    except OSError as e:
        raise _fail(f"Cannot read {file}: {e.strerror or e}") from None
    except json.JSONDecodeError as e:
        raise _fail(f"{file} is not valid JSON: {e}") from None
    if not isinstance(document, dict):
        raise _fail(f"{file} does not contain a document (expected a JSON object)")
    return document


def _resolve_config(config: Path | None) -> EngineConfig:
    if config is None:
        default_path = Path(CONFIG_FILENAME)
        if not default_path.exists():
            return create_default_config()
        config = default_path
    try:
        return load_engine_config(config)
    except ConfigError as e:
        raise _fail(str(e)) from None


# =============================================================================
# Commands
# =============================================================================


@app.command()
def version() -> None:
    """Show version information."""
    from storyframe import __version__

    console.print(f"storyframe v{__version__}")


@app.command()
def init(
    path: Annotated[
        Path,
        typer.Argument(help="Directory to write storyframe.yaml into."),
    ] = Path(),
    name: Annotated[
        str | None,
        typer.Option("--name", "-n", help="Game name (default: directory name)."),
    ] = None,
) -> None:
    """Create a default storyframe.yaml."""
    path.mkdir(parents=True, exist_ok=True)
    config_file = path / CONFIG_FILENAME
    if config_file.exists():
        raise _fail(f"'{config_file}' already exists")

    config = create_default_config(name or path.resolve().name)
    written = write_engine_config(config, path)
    console.print(f"[green]Created[/green] {escape(str(written))}")


@app.command()
def run(
    config: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help=f"Config file or directory (default: ./{CONFIG_FILENAME} if present).",
        ),
    ] = None,
    max_frames: Annotated[
        int | None,
        typer.Option("--max-frames", min=1, help="Override the configured frame limit."),
    ] = None,
    trace: Annotated[
        bool,
        typer.Option("--trace", help="Encode the stack every frame and print the last document."),
    ] = False,
) -> None:
    """Drive the configured scenes until the stack is empty."""
    engine_config = _resolve_config(config)
    if max_frames is not None:
        engine_config.max_frames = max_frames
    trace = trace or engine_config.trace_documents

    try:
        stack = build_stack(engine_config.initial_scenes)
        driver = FrameDriver(
            stack,
            max_frames=engine_config.max_frames,
            frame_interval_ms=engine_config.frame_interval_ms,
            trace_documents=trace,
        )
        summary = driver.run()
    except StoryframeError as e:
        raise _fail(str(e)) from None

    log.info("run_finished", game=engine_config.name, frames=summary.frames)
    if summary.completed:
        console.print(
            f"[green]{escape(engine_config.name)}[/green] finished after {summary.frames} frames"
        )
    else:
        console.print(
            f"[yellow]Stopped after {summary.frames} frames[/yellow] "
            f"with {len(stack.scenes)} scene(s) still on the stack"
        )
    if trace and summary.documents:
        console.print_json(data=summary.documents[-1])
    if not summary.completed:
        raise typer.Exit(1)


@app.command()
def singletons() -> None:
    """List registered singletons (classes and sentinel values)."""
    table = Table(title="Registered singletons")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Kind", style="bold")
    table.add_column("Value", style="dim")

    for name, value in default_registry.items():
        if isinstance(value, type):
            kind = "class"
            shown = f"{value.__module__}.{value.__qualname__}"
        elif isinstance(value, float) or value is UNDEFINED:
            kind = "value"
            shown = repr(value)
        else:
            kind = "instance"
            shown = f"<{type(value).__name__}>"
        table.add_row(escape(name), kind, escape(shown))

    console.print(table)


@app.command()
def inspect(
    file: Annotated[Path, typer.Argument(help="JSON document to inspect.")],
) -> None:
    """Validate a document, decode it and print statistics."""
    from storyframe.inspection import summarize_document

    document = _load_document(file)
    errors = check_document(document, registry=default_registry)
    if errors:
        console.print(
            f"[red]Error:[/red] {len(errors)} problem(s) in {escape(str(file))}", soft_wrap=True
        )
        for error in errors:
            console.print(f"  - {escape(error)}", soft_wrap=True)
        raise typer.Exit(1)

    try:
        root = decode(document)
    except StoryframeError as e:
        raise _fail(str(e)) from None

    summary = summarize_document(document)
    table = Table(title=f"Document: {escape(file.name)}")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="bold")
    table.add_row("Root type", escape(summary.root_type))
    table.add_row("Decoded as", escape(type(root).__name__))
    table.add_row("Entries", str(summary.total_entries))
    table.add_row("Records", str(summary.records))
    table.add_row("Sequences", str(summary.sequences))
    table.add_row("Shared links", str(summary.shared_links))
    table.add_row("Max depth", str(summary.max_depth))
    for type_name, count in summary.record_types.items():
        table.add_row(f"  record {escape(type_name)}", str(count))
    for name, count in summary.singleton_refs.items():
        table.add_row(f"  singleton {escape(name)}", str(count))

    console.print(table)


@app.command()
def clone(
    file: Annotated[Path, typer.Argument(help="JSON document to decode and re-encode.")],
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Write the result here instead of stdout."),
    ] = None,
) -> None:
    """Decode a document and encode the result again."""
    document = _load_document(file)
    try:
        cloned = encode(decode(document))
    except StoryframeError as e:
        raise _fail(str(e)) from None

    if output is None:
        console.print_json(data=cloned)
        return
    with output.open("w", encoding="utf-8") as f:
        json.dump(cloned, f, indent=2)
        f.write("\n")
    console.print(f"[green]Wrote[/green] {escape(str(output))}")


if __name__ == "__main__":
    app()
