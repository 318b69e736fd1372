"""
CLI for depchunk.

Provides command-line access to chunking, directory chunking,
extract-with-dependencies and the HTTP server.
"""

import json
import socket
from pathlib import Path
from typing import Any, Optional

import typer
import yaml
from rich.console import Console
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table

from depchunk.core.config import DepchunkConfig, load_config, setup_logging
from depchunk.core.language_registry import detect_language
from depchunk.core.models import Chunk, ChunkingResult, FileRangeRequest, LineRange
from depchunk.services import ChunkService

# Initialize Rich Console
console = Console()

app = typer.Typer(
    name="depchunk",
    help="Semantic code chunking with cross-file dependency extraction",
    add_completion=False,
)

OUTPUT_FORMATS = ("json", "yaml", "table")

_state: dict[str, Optional[Path]] = {"config_path": None}


@app.callback()
def main(
    config: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Config file (yaml or json)"
    ),
):
    """Semantic code chunking with cross-file dependency extraction."""
    _state["config_path"] = config


def get_config() -> DepchunkConfig:
    """Load the configuration selected with --config and set up logging."""
    cfg = load_config(_state["config_path"])
    setup_logging(cfg.logging)
    return cfg


def get_service(root_dir: Optional[Path] = None) -> ChunkService:
    return ChunkService(config=get_config(), root_dir=root_dir)


def parse_range_spec(spec: str) -> tuple[str, LineRange]:
    """
    Parse 'FILE:START-END' (or 'FILE:LINE') into a path and a line range.

    Raises:
        ValueError: If the spec is malformed
    """
    file_path, sep, range_text = spec.rpartition(":")
    if not sep or not file_path or not range_text:
        raise ValueError(f"Invalid range '{spec}', expected FILE:START-END")
    start_text, _, end_text = range_text.partition("-")
    try:
        start = int(start_text)
        end = int(end_text) if end_text else start
    except ValueError:
        raise ValueError(f"Invalid line numbers in '{spec}'") from None
    return file_path, LineRange(start=start, end=end)


def build_requests(specs: list[str]) -> list[FileRangeRequest]:
    """Group range specs by file, keeping the order files first appear in."""
    requests: dict[str, FileRangeRequest] = {}
    for spec in specs:
        file_path, line_range = parse_range_spec(spec)
        requests.setdefault(file_path, FileRangeRequest(file_path=file_path)).ranges.append(
            line_range
        )
    return list(requests.values())


def result_to_dict(result: ChunkingResult) -> dict[str, Any]:
    return {
        "chunks": [chunk.to_dict() for chunk in result.chunks],
        "dependency_graph": result.dependency_graph,
        "import_export_map": result.import_export_map.to_dict(),
        "stats": {
            "total_files": result.stats.total_files,
            "total_chunks": result.stats.total_chunks,
            "chunks_by_type": result.stats.chunks_by_type,
            "average_chunk_size": result.stats.average_chunk_size,
            "total_tokens": result.stats.total_tokens,
        },
    }


def _dump(data: Any, output: str) -> str:
    if output == "yaml":
        return yaml.safe_dump(data, sort_keys=False, allow_unicode=True)
    return json.dumps(data, indent=2)


def _chunk_table(chunks: list[Chunk], title: str) -> Table:
    table = Table(title=title, border_style="blue")
    table.add_column("Type", style="cyan", no_wrap=True)
    table.add_column("Name", style="green")
    table.add_column("File", style="magenta")
    table.add_column("Lines", justify="right")
    table.add_column("Tokens", justify="right")
    table.add_column("Exported", justify="center")
    for chunk in chunks:
        table.add_row(
            chunk.type,
            chunk.qualified_name,
            chunk.file_path,
            f"{chunk.start_line}-{chunk.end_line}",
            str(chunk.token_count or 0),
            "✓" if chunk.exported else "",
        )
    return table


def _emit(result: ChunkingResult, output: str, out: Optional[Path], title: str) -> None:
    if output not in OUTPUT_FORMATS:
        raise ValueError(f"Unknown output format '{output}', expected one of {', '.join(OUTPUT_FORMATS)}")
    if output == "table":
        console.print(_chunk_table(result.chunks, title))
        return
    text = _dump(result_to_dict(result), output)
    if out is not None:
        out.write_text(text, encoding="utf-8")
        console.print(f"[green]✓[/green] Wrote {len(result.chunks)} chunks to {out}")
    else:
        typer.echo(text)


@app.command()
def chunk(
    files: list[Path] = typer.Argument(..., help="Files to chunk"),
    output: str = typer.Option("json", "--output", "-o", help="Output format: json, yaml or table"),
    include_content: bool = typer.Option(
        False, "--include-content", help="Keep chunk source text in the output"
    ),
    out: Optional[Path] = typer.Option(None, "--out", help="Write output to a file"),
):
    """Chunk one or more files."""
    try:
        cfg = get_config()
        if include_content:
            cfg.chunking.include_content = True
        service = ChunkService(config=cfg)
        result = service.chunk_files([str(f) for f in files])
        _emit(result, output, out, title="Chunks")
    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command("chunk-dir")
def chunk_dir(
    directory: Path = typer.Argument(..., help="Directory to chunk"),
    include: Optional[list[str]] = typer.Option(
        None, "--include", "-i", help="Glob of files to include. Can be specified multiple times."
    ),
    exclude: Optional[list[str]] = typer.Option(
        None, "--exclude", "-e", help="Glob of files to skip. Can be specified multiple times."
    ),
    output: str = typer.Option("json", "--output", "-o", help="Output format: json, yaml or table"),
    out: Optional[Path] = typer.Option(None, "--out", help="Write output to a file"),
):
    """Chunk every matching file under a directory."""
    try:
        service = get_service()
        result = service.chunk_directory(
            str(directory), include=include or None, exclude=exclude or None
        )
        _emit(result, output, out, title=f"Chunks in {directory}")
    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def extract(
    ranges: list[str] = typer.Argument(..., help="Ranges as FILE:START-END, paths relative to --root"),
    root: Path = typer.Option(Path("."), "--root", "-r", help="Project root for resolving imports"),
    code_only: bool = typer.Option(False, "--code-only", help="Print only the assembled code"),
):
    """Extract line ranges together with everything they depend on."""
    try:
        service = get_service(root_dir=root)
        result = service.extract_with_dependencies(build_requests(ranges))

        if code_only:
            for file_path, code in result.code_blocks.items():
                typer.echo(f"// {file_path}")
                typer.echo(code)
                typer.echo("")
            return

        summary = Table.grid(padding=1)
        summary.add_column(style="bold")
        summary.add_column()
        summary.add_row("Selected Chunks:", str(len(result.selected_chunks)))
        summary.add_row("Dependent Chunks:", str(len(result.dependent_chunks)))
        summary.add_row("Files:", str(len(result.code_blocks)))
        console.print(
            Panel(
                summary,
                title="[bold green]Extraction Complete[/bold green]",
                border_style="green",
                expand=False,
            )
        )
        console.print(_chunk_table(result.all_chunks, title="Chunks"))
        for file_path, code in result.code_blocks.items():
            console.print(
                Panel(
                    Syntax(code, detect_language(file_path), line_numbers=False),
                    title=f"[cyan]{file_path}[/cyan]",
                    border_style="dim",
                )
            )
    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def stats(
    files: list[Path] = typer.Argument(..., help="Files to analyze"),
):
    """Show chunk statistics and cache usage for files."""
    try:
        service = get_service()
        result = service.chunk_files([str(f) for f in files])

        grid = Table.grid(padding=1)
        grid.add_column(style="bold")
        grid.add_column()
        grid.add_row("Total Files:", str(result.stats.total_files))
        grid.add_row("Total Chunks:", str(result.stats.total_chunks))
        grid.add_row("Total Tokens:", str(result.stats.total_tokens))
        grid.add_row("Average Chunk Size:", f"{result.stats.average_chunk_size:.1f}")
        console.print(Panel(grid, title="Chunk Statistics", border_style="blue", expand=False))

        if result.stats.chunks_by_type:
            type_table = Table(title="Chunks by Type", box=None, show_header=True)
            type_table.add_column("Type", style="cyan")
            type_table.add_column("Count", justify="right")
            for chunk_type, count in sorted(result.stats.chunks_by_type.items()):
                type_table.add_row(chunk_type, str(count))
            console.print(Panel(type_table, border_style="blue", expand=False))

        cache = service.get_cache_stats()
        cache_summary = (
            f"AST Cache: {cache['ast_cache']['size']}/{cache['ast_cache']['max_size']} "
            f"(hit rate {cache['ast_cache']['hit_rate']:.0%})\n"
            f"Parser Pool: {cache['parser_pool']['created']} created, "
            f"{cache['parser_pool']['reused']} reused"
        )
        console.print(Panel(cache_summary, title="Caches", border_style="dim", expand=False))
    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


def _is_port_available(host: str, port: int) -> bool:
    """Check if a port is available for binding."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        try:
            s.bind((host, port))
            return True
        except OSError:
            return False


def _find_available_port(host: str, start_port: int, max_attempts: int = 10) -> int:
    """Find an available port starting from start_port."""
    for offset in range(max_attempts):
        port = start_port + offset
        if _is_port_available(host, port):
            return port
    raise RuntimeError(f"No available port found in range {start_port}-{start_port + max_attempts - 1}")


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="HTTP host (default from config)"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="HTTP port (default from config)"),
):
    """Start the HTTP API server."""
    import uvicorn

    try:
        from depchunk.http_server import create_app

        cfg = get_config()
        actual_host = host if host is not None else cfg.server.host
        requested_port = port if port is not None else cfg.server.port

        actual_port = _find_available_port(actual_host, requested_port)
        if actual_port != requested_port:
            console.print(f"[yellow]Port {requested_port} is in use, using port {actual_port}[/yellow]")

        console.print(f"[bold green]Starting API server at http://{actual_host}:{actual_port}[/bold green]")
        uvicorn.run(
            create_app(cfg),
            host=actual_host,
            port=actual_port,
            reload=False,
            log_level=cfg.logging.level.lower(),
        )
    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
