"""
TaskFlow - Command Line Interface
Search tasks and notes in plain language, add records, rebuild embeddings
"""

import json
from datetime import datetime, timedelta, timezone
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from taskflow.core import Config, Database, Note, RecordKind, RecordStore, Task
from taskflow.core.models import Priority, to_iso
from taskflow.errors import EmbeddingError, SearchUnavailable, StoreError
from taskflow.search import (
    EmbeddingIndexer,
    OpenAIClassifierOracle,
    QueryClassifier,
    ResultFuser,
    shared_embedder,
)
from taskflow.search.fuser import SearchResult

app = typer.Typer(help="TaskFlow - natural language search over your tasks and notes")
console = Console()

KINDS = {"task": RecordKind.TASK, "note": RecordKind.NOTE}

# Lazy-loaded components (created on first use so --help stays fast)
_config: Optional[Config] = None
_store: Optional[RecordStore] = None


def get_config() -> Config:
    global _config
    if _config is None:
        _config = Config()
    return _config


def get_embedder():
    config = get_config()
    return shared_embedder(
        config.get("embedding_model", section="search"),
        config.get("embedding_dimension", section="search"),
    )


def get_store() -> RecordStore:
    """Record store over the configured database, indexing on write."""
    global _store
    if _store is None:
        _store = RecordStore(Database(get_config().get_database_path()))
        _store.attach_indexer(EmbeddingIndexer(_store, get_embedder()))
    return _store


def get_fuser() -> ResultFuser:
    config = get_config()
    oracle = OpenAIClassifierOracle(
        model=config.get("classifier_model", section="search"),
        timeout=float(config.get("classifier_timeout_seconds", section="search")),
    )
    return ResultFuser(
        store=get_store(),
        classifier=QueryClassifier(oracle),
        embedder=get_embedder(),
        semantic_limit=config.get("semantic_limit", section="search"),
        structured_limit=config.get("structured_limit", section="search"),
    )


# ============================================================================
# Helper Functions
# ============================================================================

def parse_due(text: str) -> Optional[str]:
    """
    Parse 'today', 'tomorrow', 'yesterday' or an ISO date.
    Returns the stored timestamp form or None if it cannot be parsed.
    """
    text = text.lower().strip()
    today = datetime.now(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)
    relative = {"today": 0, "tomorrow": 1, "tmr": 1, "yesterday": -1}
    if text in relative:
        return to_iso(today + timedelta(days=relative[text]))
    try:
        return to_iso(text)
    except (ValueError, OverflowError):
        return None


def render_results(outcome: SearchResult, kind: RecordKind) -> None:
    """Display search results in a table."""
    intent = outcome.intent
    console.print(f"[dim]Interpreted as {intent.type.value} search"
                  f"{' for ' + repr(intent.search_terms) if intent.search_terms else ''}"
                  f" with {len(intent.filters)} filter(s)[/dim]")
    if outcome.dropped_count:
        console.print(f"[yellow]Ignored {outcome.dropped_count} filter(s) that could not be applied[/yellow]")

    if not outcome.results:
        console.print("[dim]No matches.[/dim]")
        return

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("#", style="dim", width=5)
    table.add_column(kind.label, min_width=30)
    if kind is RecordKind.TASK:
        table.add_column("Priority", justify="center", width=8)
        table.add_column("Due", width=12)
        table.add_column("Status", width=12)
    else:
        table.add_column("Updated", width=12)
    table.add_column("Score", justify="right", width=6)

    for hit in outcome.results:
        record = hit.record
        score = f"{hit.similarity:.2f}" if hit.similarity is not None else "-"
        if kind is RecordKind.TASK:
            table.add_row(
                str(hit.id), record.title, record.priority,
                (record.due_date or "")[:10], record.status, score,
            )
        else:
            table.add_row(str(hit.id), record.title, (record.updated_at or record.created_at or "")[:10], score)

    console.print(table)


# ============================================================================
# Commands
# ============================================================================

@app.command()
def search(
    query: str = typer.Argument(..., help="Natural language query"),
    kind: str = typer.Option("task", "--kind", "-k", help="What to search: task or note"),
    as_json: bool = typer.Option(False, "--json", help="Print raw JSON instead of a table"),
):
    """
    Search tasks or notes

    Examples:
      taskflow search "high priority tasks"
      taskflow search "tasks about Apollo due in the last 5 days"
      taskflow search "kitchen renovation" --kind note
    """
    if kind not in KINDS:
        console.print(f"[red]Unknown kind: {kind} (expected task or note)[/red]")
        raise typer.Exit(2)

    try:
        outcome = get_fuser().search(query, kind=KINDS[kind])
    except SearchUnavailable as e:
        console.print(f"[red]Search unavailable: {e}[/red]")
        raise typer.Exit(1)
    except StoreError as e:
        console.print(f"[red]Search failed: {e}[/red]")
        raise typer.Exit(1)

    if as_json:
        payload = {
            "intent": outcome.intent.to_dict(),
            "results": [hit.to_dict() for hit in outcome.results],
            "dropped_filters": [str(e) for e in outcome.dropped_predicates],
        }
        console.print_json(json.dumps(payload))
        return

    render_results(outcome, KINDS[kind])


@app.command()
def add(
    title: str = typer.Argument(..., help="Task title"),
    description: Optional[str] = typer.Option(None, "--description", "-D", help="Task description"),
    due: Optional[str] = typer.Option(None, "--due", "-d", help="Due date (today, tomorrow, or ISO date)"),
    priority: Priority = typer.Option(Priority.MEDIUM, "--priority", "-p", help="Low, Medium or High"),
    tags: List[str] = typer.Option([], "--tag", "-t", help="Tag (repeatable)"),
):
    """
    Add a new task

    Examples:
      taskflow add "Call John about project"
      taskflow add "Apollo launch review" --due tomorrow --priority High -t apollo
    """
    due_date = None
    if due:
        due_date = parse_due(due)
        if due_date is None:
            console.print(f"[red]Could not parse date: {due}[/red]")
            raise typer.Exit(1)

    try:
        task = get_store().put(RecordKind.TASK, Task(
            title=title,
            description=description,
            priority=priority.value,
            due_date=due_date,
            tags=list(tags),
        ))
    except StoreError as e:
        console.print(f"[red]Error adding task: {e}[/red]")
        raise typer.Exit(1)

    console.print(f"[green]✓[/green] Added task #{task.id}: {task.title}")


@app.command()
def note(
    title: str = typer.Argument(..., help="Note title"),
    content: Optional[str] = typer.Option(None, "--content", "-c", help="Note body"),
    tags: List[str] = typer.Option([], "--tag", "-t", help="Tag (repeatable)"),
):
    """
    Add a new note

    Example:
      taskflow note "Standup" --content "Apollo slipped a week" -t apollo
    """
    try:
        record = get_store().put(RecordKind.NOTE, Note(title=title, content=content, tags=list(tags)))
    except StoreError as e:
        console.print(f"[red]Error adding note: {e}[/red]")
        raise typer.Exit(1)

    console.print(f"[green]✓[/green] Added note #{record.id}: {record.title}")


@app.command()
def reindex(
    kind: Optional[str] = typer.Option(None, "--kind", "-k", help="task or note (default: both)"),
):
    """
    Rebuild embeddings from each record's current text

    Example:
      taskflow reindex --kind note
    """
    if kind is not None and kind not in KINDS:
        console.print(f"[red]Unknown kind: {kind} (expected task or note)[/red]")
        raise typer.Exit(2)

    store = get_store()
    kinds = [KINDS[kind]] if kind else list(KINDS.values())

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Kind")
    table.add_column("Indexed", justify="right")
    table.add_column("Cleared", justify="right")
    table.add_column("Failed", justify="right")

    failed = 0
    for record_kind in kinds:
        try:
            stats = store.indexer.reindex_all(record_kind)
        except EmbeddingError as e:
            console.print(f"[red]Embedding model unavailable: {e}[/red]")
            raise typer.Exit(1)
        failed += stats["failed"]
        table.add_row(f"{record_kind.label}s", str(stats["indexed"]), str(stats["cleared"]), str(stats["failed"]))

    console.print(table)
    if failed:
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
