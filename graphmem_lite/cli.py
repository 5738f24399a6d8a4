"""GraphMem Lite CLI with Rich output.

Provides commands for:
- Running the MCP server
- Inspecting memory statistics, entities and timelines
- Searching the graph
- Optimizing contexts

Usage:
    graphmem serve               # Run the MCP server on stdio
    graphmem stats               # Show memory statistics
    graphmem search "query"      # Search entities (read-only)
    graphmem show NAME...        # Show entities and their relations
    graphmem timeline NAME       # Show an entity's event timeline
    graphmem optimize            # Expire and rank contexts
"""

from pathlib import Path
from typing import Optional

import typer
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from graphmem_lite.config import Config
from graphmem_lite.db.manager import KnowledgeGraphManager
from graphmem_lite.errors import GraphMemError
from graphmem_lite.models import Entity
from graphmem_lite.serialization import pretty_json
from graphmem_lite.time_utils import timestamp_to_iso

app = typer.Typer(
    name="graphmem",
    help="GraphMem Lite - knowledge-graph memory for MCP agents",
    rich_markup_mode="rich",
    no_args_is_help=True,
)
console = Console()

MemoryFileOption = typer.Option(
    None,
    "--memory-file", "-f",
    help="Memory log to use (default: GRAPHMEM_LITE_MEMORY_FILE or ~/.graphmem_lite/memory.jsonl)",
)


def print_banner():
    """Print GraphMem banner."""
    banner = Text()
    banner.append("GraphMem", style="bold cyan")
    banner.append(" Lite", style="cyan")
    console.print(Panel(banner, border_style="cyan", box=box.ROUNDED))


def _manager(memory_file: Optional[Path]) -> KnowledgeGraphManager:
    config = Config(memory_file=memory_file) if memory_file else Config()
    return KnowledgeGraphManager(config)


def _fail(error: Exception) -> None:
    console.print(f"[bold red]Error:[/bold red] {error}")
    raise typer.Exit(code=1)


def _entity_table(entities: list[Entity], title: str) -> Table:
    table = Table(title=title, box=box.ROUNDED)
    table.add_column("Name", style="cyan")
    table.add_column("Type")
    table.add_column("Observations", justify="right")
    table.add_column("Tags", style="dim")
    table.add_column("Accessed", justify="right")
    for entity in entities:
        table.add_row(
            entity.name,
            entity.entity_type,
            str(len(entity.observations)),
            ", ".join(entity.tags) or "-",
            str(entity.access_count),
        )
    return table


@app.command()
def serve():
    """Run the MCP server on stdio."""
    from graphmem_lite.server import main as server_main

    server_main()


@app.command()
def stats(
    memory_file: Optional[Path] = MemoryFileOption,
    as_json: bool = typer.Option(False, "--json", help="Print raw JSON"),
):
    """Show memory statistics."""
    try:
        memory_stats = _manager(memory_file).get_memory_stats()
    except GraphMemError as e:
        _fail(e)

    if as_json:
        console.print_json(pretty_json(memory_stats))
        return

    print_banner()
    table = Table(title="Memory Statistics", box=box.ROUNDED)
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")
    for key, value in memory_stats.to_dict().items():
        if isinstance(value, float):
            value = f"{value:.3f}"
        elif isinstance(value, dict):
            value = ", ".join(f"{k}={v}" for k, v in value.items()) or "-"
        table.add_row(key, str(value))
    console.print(table)


@app.command()
def search(
    query: str = typer.Argument(..., help="Substring to search for"),
    memory_file: Optional[Path] = MemoryFileOption,
    record_access: bool = typer.Option(
        False, "--record-access", help="Count matches as accesses (updates the log)"
    ),
):
    """Search entities by name, type, observations, tags or metadata."""
    try:
        result = _manager(memory_file).search_nodes(query, record_access=record_access)
    except GraphMemError as e:
        _fail(e)

    if not result.entities:
        console.print(f"[yellow]No entities match[/yellow] {query!r}")
        return

    console.print(_entity_table(result.entities, f"Matches for {query!r}"))
    if result.relations:
        console.print(f"[dim]{len(result.relations)} strong relations, "
                      f"{len(result.patterns)} patterns, {len(result.contexts)} contexts[/dim]")


@app.command()
def show(
    names: list[str] = typer.Argument(..., help="Entity names"),
    memory_file: Optional[Path] = MemoryFileOption,
):
    """Show entities by exact name and the relations between them."""
    try:
        result = _manager(memory_file).open_nodes(names, record_access=False)
    except GraphMemError as e:
        _fail(e)

    if not result.entities:
        console.print("[yellow]No such entities[/yellow]")
        raise typer.Exit(code=1)

    for entity in result.entities:
        body = "\n".join(f"• {obs}" for obs in entity.observations) or "[dim]no observations[/dim]"
        console.print(Panel(body, title=f"{entity.name} [dim]({entity.entity_type})[/dim]", box=box.ROUNDED))

    if result.relations:
        table = Table(title="Relations", box=box.ROUNDED)
        table.add_column("From", style="cyan")
        table.add_column("Type")
        table.add_column("To", style="cyan")
        table.add_column("Strength", justify="right")
        for relation in result.relations:
            table.add_row(relation.from_entity, relation.relation_type, relation.to_entity,
                          f"{relation.strength:.2f}")
        console.print(table)


@app.command()
def timeline(
    name: str = typer.Argument(..., help="Entity name"),
    memory_file: Optional[Path] = MemoryFileOption,
):
    """Show the event timeline of an entity, newest first."""
    try:
        events = _manager(memory_file).get_entity_timeline(name)
    except GraphMemError as e:
        _fail(e)

    table = Table(title=f"Timeline: {name}", box=box.ROUNDED)
    table.add_column("When", style="dim")
    table.add_column("Event", style="bold")
    table.add_column("Details")
    for event in events:
        table.add_row(timestamp_to_iso(event["timestamp"]), event["type"], event["details"])
    console.print(table)


@app.command()
def similar(
    name: str = typer.Argument(..., help="Entity name"),
    memory_file: Optional[Path] = MemoryFileOption,
):
    """List entities similar to NAME."""
    try:
        entities = _manager(memory_file).find_similar_entities(name)
    except GraphMemError as e:
        _fail(e)

    if not entities:
        console.print(f"[yellow]Nothing similar to[/yellow] {name}")
        return
    console.print(_entity_table(entities, f"Similar to {name}"))


@app.command()
def optimize(memory_file: Optional[Path] = MemoryFileOption):
    """Expire old contexts, keep the highest-priority ones and update entity priorities."""
    try:
        summary = _manager(memory_file).optimize_memory()
    except GraphMemError as e:
        _fail(e)

    console.print(
        f"[green]Optimized:[/green] {summary['expired']} expired, "
        f"{summary['truncated']} truncated, {summary['entitiesUpdated']} entity priorities updated"
    )


@app.command()
def summary(memory_file: Optional[Path] = MemoryFileOption):
    """Print a compact description of the memory."""
    try:
        compression = _manager(memory_file).summarize_memory()
    except GraphMemError as e:
        _fail(e)

    console.print(compression.summary)
    console.print(f"[dim]keywords:[/dim] {', '.join(compression.keywords) or '-'}")
    console.print(f"[dim]hash:[/dim] {compression.semantic_hash}  "
                  f"[dim]size:[/dim] {compression.original_size} bytes")


@app.command()
def version():
    """Show GraphMem version."""
    from graphmem_lite import __version__

    console.print(f"GraphMem Lite [cyan]{__version__}[/cyan]")


def main():
    """Entry point for CLI."""
    app()


if __name__ == "__main__":
    main()
