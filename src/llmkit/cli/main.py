"""CLI application using Typer for the llmkit demos and tools."""

import asyncio
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

from ..config.settings import settings
from ..core.errors import ConfigValidationError, GenerationError, NoViableModelError, ParseError
from ..data import SAMPLE_ESSAY
from ..demos.comparison import DEFAULT_MODELS, compare_models
from ..demos.structured import (
    SAMPLE_EMAIL_PREVIEW,
    SAMPLE_EMAIL_SUBJECT,
    SAMPLE_FORM_INPUT,
    compare_outputs,
    smart_email_triage,
    smart_form_fill,
)
from ..extraction.essay import extract_essay_insights
from ..extraction.extractor import ChunkedExtractor
from ..extraction.models import ExtractionProgress, ExtractionReport
from ..io.checkpoints import CheckpointStore
from ..llm.client import GenerationClient
from ..llm.router import ModelRouter
from ..llm.telemetry import get_default_store
from ..utils.logging import get_logger, set_log_level
from ..web.app import start_server as _start_web_server

app = typer.Typer(
    name="llmkit",
    help="LLM API utilities - model routing, chunked extraction and structured output demos",
    add_completion=False,
)

console = Console()
logger = get_logger(__name__)

ROUTER_DEMO_CASES = [
    ("Cost-optimized classification", {"task": "classification", "max_latency_ms": 2000, "priority": "cost"}),
    ("Quality-optimized reasoning", {"task": "reasoning", "max_latency_ms": 10000, "priority": "quality"}),
    ("Balanced summarization", {"task": "summarization", "max_latency_ms": 3000, "priority": "balanced"}),
    ("Fast extraction (low latency)", {"task": "extraction", "max_latency_ms": 1000, "priority": "balanced"}),
]


def _make_client(model: Optional[str] = None) -> GenerationClient:
    return GenerationClient(default_model=model, telemetry=get_default_store())


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Override LOG_LEVEL (DEBUG, INFO, ...)"),
) -> None:
    set_log_level(log_level)


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Hostname to bind the web server to."),
    port: int = typer.Option(8000, "--port", help="Port for the web server."),
    reload: bool = typer.Option(False, "--reload/--no-reload", help="Enable auto-reload (development only)."),
) -> None:
    """Serve the model router statistics endpoint."""
    console.print(f"[bold blue]Starting web server[/bold blue] at http://{host}:{port}")
    console.print(f"Stats: http://{host}:{port}/api/model-router/stats")
    _start_web_server(host=host, port=port, reload=reload)


@app.command()
def extract(
    file_path: Path = typer.Argument(SAMPLE_ESSAY, help="Document to extract from (default: bundled essay)"),
    chunk_size: int = typer.Option(settings.chunk_size, "--chunk-size", help="Approximate tokens per chunk"),
    overlap: int = typer.Option(settings.chunk_overlap, "--overlap", help="Approximate tokens of overlap"),
    resume: bool = typer.Option(True, "--resume/--no-resume", help="Resume from checkpoint"),
    stream: bool = typer.Option(False, "--stream", help="Stream JSON instead of object generation"),
    model: Optional[str] = typer.Option(None, "--model", "-m", help="Model id, e.g. openai/gpt-4o-mini"),
    checkpoint_dir: Path = typer.Option(settings.checkpoint_dir, "--checkpoint-dir", help="Checkpoint directory"),
) -> None:
    """Chunked, resumable extraction of a large document."""
    console.print("[bold blue]Starting large document extraction[/bold blue]")
    console.print(f"File: {file_path}")
    if not file_path.is_file():
        console.print(f"[red]Error: file not found: {file_path}[/red]")
        raise typer.Exit(1)

    options = dict(
        chunk_size=chunk_size,
        overlap=overlap,
        use_streaming=stream,
        model=model,
        checkpoint_store=CheckpointStore(checkpoint_dir),
    )
    try:
        report = asyncio.run(_run_extraction(_make_client(model), file_path, resume, **options))
    except (UnicodeDecodeError, OSError) as exc:
        console.print(f"[red]Error: could not read {escape(str(file_path))}: {escape(str(exc))}[/red]")
        raise typer.Exit(1)

    _print_benchmark(report)
    _print_extraction(report)
    if report.total_chunks and report.successful_chunks == 0:
        console.print("[red]Every chunk failed; nothing was extracted[/red]")
        raise typer.Exit(1)
    console.print("\n[bold green]✓ Extraction complete![/bold green]")


async def _run_extraction(
    client: GenerationClient, file_path: Path, resume: bool, **options
) -> ExtractionReport:
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("[progress.percentage]{task.completed}/{task.total}"),
        TimeElapsedColumn(),
        console=console,
    ) as progress:
        task = progress.add_task("Processing chunks...", total=None)

        def on_delta(received: int) -> None:
            progress.update(task, description=f"Streaming... {received} chars")

        def on_progress(update: ExtractionProgress) -> None:
            status = "[green]✓[/green]" if update.success else "[red]✗[/red]"
            progress.console.print(
                f"  {status} Chunk {update.chunk_index + 1}/{update.total_chunks} "
                f"({update.processing_time / 1000:.2f}s)"
            )
            progress.update(
                task,
                total=update.total_chunks,
                completed=update.done,
                description=f"{update.completed} ok, {update.failed} failed",
            )

        if options.get("use_streaming"):
            options["on_delta"] = on_delta
        extractor = ChunkedExtractor(client, **options)
        return await extractor.extract_file(file_path, resume=resume, on_progress=on_progress)


def _print_benchmark(report: ExtractionReport) -> None:
    table = Table(title="Benchmark Results")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green", justify="right")
    table.add_row("Total processing time", f"{report.elapsed_seconds:.2f}s")
    table.add_row("Average chunk time", f"{report.average_chunk_seconds:.2f}s")
    table.add_row("Successful chunks", f"{report.successful_chunks}/{report.total_chunks}")
    table.add_row("Failed chunks", str(report.failed_chunks))
    table.add_row("Success rate", f"{report.success_rate:.1f}%")
    table.add_row("Resumed", "yes" if report.resumed else "no")
    table.add_row("Companies", str(len(report.result.companies)))
    table.add_row("Business concepts", str(len(report.result.concepts.business)))
    table.add_row("Technical concepts", str(len(report.result.concepts.technical)))
    table.add_row("Quotes", str(len(report.result.quotes)))
    console.print(table)
    for failure in report.failures:
        console.print(f"[yellow]Chunk {failure.chunk_index + 1}: {escape(failure.error or '')}[/yellow]")


def _print_extraction(report: ExtractionReport) -> None:
    result = report.result
    console.print("\n[bold]Key takeaway[/bold]")
    console.print(escape(result.key_takeaway))
    if result.companies:
        console.print(f"\n[bold]Companies[/bold] ({len(result.companies)}): {', '.join(result.companies)}")
    if result.concepts.business:
        console.print(f"[bold]Business concepts[/bold]: {', '.join(result.concepts.business)}")
    if result.concepts.technical:
        console.print(f"[bold]Technical concepts[/bold]: {', '.join(result.concepts.technical)}")
    for quote in result.quotes[:5]:
        speaker = quote.speaker or "Unknown"
        console.print(f'  "{quote.quote}" - {speaker}')


@app.command()
def insights(
    file_path: Path = typer.Argument(SAMPLE_ESSAY, help="Essay to analyse (default: bundled essay)"),
    model: Optional[str] = typer.Option(None, "--model", "-m", help="Model id"),
) -> None:
    """Extract takeaway, companies, concepts and quotes in single calls."""
    if not file_path.is_file():
        console.print(f"[red]Error: file not found: {file_path}[/red]")
        raise typer.Exit(1)
    essay = file_path.read_text(encoding="utf-8")
    try:
        result = asyncio.run(extract_essay_insights(_make_client(model), essay, model=model))
    except (GenerationError, ParseError) as e:
        console.print(f"[red]Extraction failed: {escape(str(e))}[/red]")
        console.print("Check that OPENAI_API_KEY is set and the API is reachable.")
        raise typer.Exit(1)

    console.print("\n[bold]Key takeaway[/bold]")
    console.print(escape(result.key_takeaway))
    console.print(f"\n[bold]Companies[/bold]: {', '.join(result.companies) or '-'}")
    console.print(f"[bold]Business concepts[/bold]: {', '.join(result.concepts.business) or '-'}")
    console.print(f"[bold]Technical concepts[/bold]: {', '.join(result.concepts.technical) or '-'}")
    for quote in result.quotes:
        console.print(f'  "{quote.quote}" - {quote.speaker or "Unknown"}')


@app.command()
def route(
    task: str = typer.Option(..., "--task", "-t", help="classification, summarization, reasoning or extraction"),
    max_latency: float = typer.Option(..., "--max-latency", help="Latency bound in ms"),
    priority: str = typer.Option("balanced", "--priority", "-p", help="cost, quality or balanced"),
    tokens: Optional[int] = typer.Option(None, "--tokens", help="Estimated input tokens"),
    strict: bool = typer.Option(False, "--strict", help="Fail instead of relaxing the latency bound"),
) -> None:
    """Pick a model for a task and show how every candidate scored."""
    router = ModelRouter(telemetry=get_default_store(), strict_latency=strict)
    config = {"task": task, "max_latency_ms": max_latency, "priority": priority}
    if tokens is not None:
        config["estimated_tokens"] = tokens
    try:
        decision = router.route(config)
    except ConfigValidationError as e:
        console.print(f"[red]Invalid configuration: {escape(str(e))}[/red]")
        raise typer.Exit(1)
    except NoViableModelError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(1)

    if decision.fallback_used:
        console.print(f"[yellow]No model meets {max_latency:g}ms; using the fastest model[/yellow]")
    console.print(f"Selected: [bold green]{decision.model}[/bold green]")

    if decision.ranking:
        table = Table(title="Candidate Scores")
        table.add_column("Model", style="cyan")
        table.add_column("Capability", justify="right")
        table.add_column("Latency", justify="right")
        table.add_column("Cost", justify="right")
        table.add_column("Est. $", justify="right")
        table.add_column("Total", style="green", justify="right")
        for score in decision.ranking:
            table.add_row(
                score.model,
                f"{score.capability_score:.2f}",
                f"{score.latency_score:.2f}",
                f"{score.cost_score:.3f}",
                f"{score.estimated_cost:.4f}",
                f"{score.total:.4f}",
            )
        console.print(table)


@app.command("router-demo")
def router_demo() -> None:
    """Route the four canonical demo configurations."""
    console.print("[bold blue]Model Router Demo[/bold blue]")
    router = ModelRouter(telemetry=get_default_store())
    for title, config in ROUTER_DEMO_CASES:
        selected = router.select_model(config)
        console.print(f"\n[cyan]{title}[/cyan]")
        console.print(f"   Config: {config}")
        console.print(f"   Selected: [green]{selected}[/green]")
    console.print("\n[bold green]✓ Demo complete![/bold green]")


@app.command()
def compare(
    models: Optional[List[str]] = typer.Option(None, "--model", "-m", help="Model ids to compare (repeatable)"),
) -> None:
    """Run a reasoning puzzle on several models and compare latency and cost."""
    chosen = models or list(DEFAULT_MODELS)
    store = get_default_store()
    runs = asyncio.run(compare_models(_make_client(), chosen))

    table = Table(title="Model Comparison")
    table.add_column("Model", style="cyan")
    table.add_column("Status")
    table.add_column("Latency", justify="right")
    table.add_column("Tokens (in+out)", justify="right")
    table.add_column("Est. cost", justify="right")
    for run in runs:
        status = "[green]ok[/green]" if run.success else "[red]failed[/red]"
        table.add_row(
            run.model,
            status,
            f"{run.latency_ms:.0f}ms",
            f"{run.input_tokens}+{run.output_tokens}",
            f"${run.cost:.4f}",
        )
    console.print(table)

    for run in runs:
        if run.success:
            console.print(f"\n[bold]{run.model}[/bold]: {escape(run.preview)}")
        else:
            console.print(f"\n[red]{run.model}: {escape(run.error or '')}[/red]")
        stats = store.stats(run.model)
        if stats is not None:
            console.print(f"   Avg latency: {stats.avg_latency_ms:.0f}ms  Avg cost: ${stats.avg_cost:.4f}")


@app.command("structured-demo")
def structured_demo() -> None:
    """Smart form fill, email triage and plain vs structured output."""
    client = _make_client()
    try:
        event = asyncio.run(smart_form_fill(client, SAMPLE_FORM_INPUT))
        triage = asyncio.run(smart_email_triage(client, SAMPLE_EMAIL_SUBJECT, SAMPLE_EMAIL_PREVIEW))
        comparison = asyncio.run(compare_outputs(client))
    except (GenerationError, ParseError) as e:
        console.print(f"[red]Demo failed: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    console.print("\n[bold blue]Smart form filling[/bold blue]")
    console.print(f'User types: "{SAMPLE_FORM_INPUT}"')
    console.print(f"Event: {event.event_title}")
    console.print(f"Date: {event.date}")
    if event.time:
        console.print(f"Time: {event.time}")
    if event.location:
        console.print(f"Location: {event.location}")
    if event.attendees:
        console.print(f"Attendees: {', '.join(event.attendees)}")
    if event.notes:
        console.print(f"Notes: {event.notes}")

    console.print("\n[bold blue]Email triage[/bold blue]")
    console.print(f"Category: {triage.category.value}")
    console.print(f"Priority: {triage.priority.value}")
    if triage.suggested_folder:
        console.print(f"Suggested folder: {triage.suggested_folder}")
    console.print(f"Requires response: {triage.requires_response}")
    if triage.estimated_response_time:
        console.print(f"Estimated response time: {triage.estimated_response_time}")

    console.print("\n[bold blue]Plain text vs structured output[/bold blue]")
    console.print(f"Raw text output: {comparison.names_text}")
    console.print_json(data=comparison.appointment.to_wire())


if __name__ == "__main__":
    app()
