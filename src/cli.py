"""Click CLI: loads config, builds models, runs puzzle generation, writes output."""

import asyncio
import logging
import sys
from datetime import date, datetime
from pathlib import Path

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn

from config.config_loader import AppConfig, load_config
from src.collector import AnswerCollector
from src.extraction import StructuredExtractor
from src.gateway import ModelGateway
from src.healthcheck import run_health_checks
from src.inbox import archive_request, load_request, pending_requests
from src.models import Puzzle
from src.output import print_puzzle, save_puzzle
from src.providers.anthropic import AnthropicProvider
from src.providers.base import AIProvider
from src.providers.gemini import GeminiProvider
from src.providers.openai_compatible import OpenAICompatibleProvider
from src.providers.openai_provider import OpenAIProvider
from src.puzzle import PuzzleGenerator
from src.question import QuestionProposer
from src.scoring import ConsensusScorer, LLMConsolidator
from src.weekly import generate_week, puzzle_id_for_date, today_utc

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)

PROVIDER_CLASSES: dict[str, type[AIProvider]] = {
    "openai": OpenAIProvider,
    "openai_compatible": OpenAICompatibleProvider,
    "anthropic": AnthropicProvider,
    "gemini": GeminiProvider,
}


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )


def _build_all_providers(config: AppConfig) -> dict[str, AIProvider]:
    """Build every model that has an API key. Returns dict keyed by model id."""
    providers: dict[str, AIProvider] = {}
    for name in sorted(config.available_providers):
        model_cfg = config.models[name]
        provider_cls = PROVIDER_CLASSES.get(model_cfg.sdk)
        if provider_cls is None:
            logger.warning("Model '%s' uses unknown sdk '%s', skipping", name, model_cfg.sdk)
            continue
        try:
            providers[name] = provider_cls(model_cfg)
        except Exception as exc:
            logger.warning("Failed to instantiate model '%s': %s", name, exc)
    return providers


def _determine_panel(config: AppConfig, models_arg: str | None) -> list[str] | None:
    """Answering models: --models wins, then the configured panel. None means all."""
    if models_arg:
        return [m.strip() for m in models_arg.split(",") if m.strip()]
    if config.defaults.panel:
        return list(config.defaults.panel)
    return None


def build_generator(
    config: AppConfig,
    gateway: ModelGateway,
    panel: list[str] | None = None,
    question_model: str | None = None,
) -> PuzzleGenerator:
    """Wire proposer, collector and scorer around one gateway."""
    extractor = StructuredExtractor(gateway, config.prompts.repair)
    proposer = QuestionProposer(
        gateway,
        extractor,
        config.prompts.question,
        model_id=question_model or config.defaults.question_model,
    )
    collector = AnswerCollector(gateway, extractor, config.prompts.answers, model_ids=panel)
    consolidator = LLMConsolidator(
        gateway,
        extractor,
        config.prompts.consolidation,
        model_id=config.defaults.consolidation_model,
    )
    return PuzzleGenerator(proposer, collector, ConsensusScorer(consolidator))


def _check_and_filter_providers(all_providers: dict[str, AIProvider]) -> dict[str, AIProvider]:
    """Run health checks, print results, and ask what to do on failures.

    Returns the working providers. Exits if the user declines to continue
    or nothing passes.
    """
    console.print("\n[bold]Checking models...[/bold]")
    results = asyncio.run(run_health_checks(ModelGateway(all_providers)))

    failed_names: list[str] = []
    for name in sorted(results):
        ok, err = results[name]
        if ok:
            console.print(f"  [green]OK  [/green] {name}")
        else:
            short_err = err.splitlines()[0][:120] if err else "unknown error"
            console.print(f"  [red]FAIL[/red] {name}: {short_err}")
            failed_names.append(name)

    if not failed_names:
        console.print()
        return all_providers

    working = {n: p for n, p in all_providers.items() if n not in failed_names}
    if not working:
        console.print("\n[bold red]Error:[/bold red] No models passed the health check.")
        sys.exit(1)

    console.print(f"\n[yellow]{len(failed_names)} model(s) failed:[/yellow] {', '.join(failed_names)}")
    console.print(f"Working models: {', '.join(sorted(working))}")

    if not click.confirm("Continue with working models only?", default=True):
        sys.exit(0)

    console.print()
    return working


async def _run_topic(generator: PuzzleGenerator, topic: str) -> Puzzle | None:
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    ) as progress:
        progress.add_task(f"Generating puzzle for {topic!r}...", total=None)
        return await generator.assemble(topic)


async def _run_inbox(
    generator: PuzzleGenerator,
    inbox_dir: Path,
    archive_dir: Path,
    output_dir: Path,
) -> None:
    """Process every topic file in the inbox, oldest first."""
    files = pending_requests(inbox_dir)
    if not files:
        click.echo("No files in inbox.")
        return

    for file_path in files:
        try:
            request = load_request(file_path)
        except ValueError as exc:
            logger.error("Skipping %s: %s", file_path.name, exc)
            archive_request(file_path, archive_dir, failed=True)
            continue

        puzzle_id = puzzle_id_for_date(request.day or today_utc())
        puzzle = await generator.assemble(request.topic, question_model=request.question_model)
        if puzzle is None:
            logger.error("Failed: %s", file_path.name)
            archive_request(file_path, archive_dir, failed=True)
            continue

        saved = save_puzzle(puzzle, output_dir, puzzle_id)
        archived = archive_request(file_path, archive_dir)
        click.echo(f"Processed: {file_path.name} -> {saved} (archived: {archived.name})")


@click.command()
@click.argument("topic", required=False)
@click.option("--week", "use_week", is_flag=True, help="Generate one puzzle per day from the configured topics")
@click.option("--days", default=None, type=int, help="Number of days for --week (default: from config)")
@click.option("--date", "puzzle_date", default=None, type=click.DateTime(formats=["%Y-%m-%d"]),
              help="Puzzle date, or first date for --week (default: today, UTC)")
@click.option("--models", default=None, help="Comma-separated answering models, overrides the configured panel")
@click.option("--question-model", default=None, help="Model that writes the question (default: from config)")
@click.option("--output", "output_path", default=None, help="Output directory (default: from config)")
@click.option("--no-save", is_flag=True, help="Print the puzzle without writing it")
@click.option("--inbox", "use_inbox", is_flag=True, default=False, help="Process all .md topic files in the inbox")
@click.option("--inbox-dir", "inbox_dir_override", default=None, help="Override inbox folder path")
@click.option("--verbose", is_flag=True, help="Enable DEBUG-level logging")
@click.option("--skip-health-check", is_flag=True, default=False, help="Skip the API connectivity check at startup")
def main(
    topic: str | None,
    use_week: bool,
    days: int | None,
    puzzle_date: datetime | None,
    models: str | None,
    question_model: str | None,
    output_path: str | None,
    no_save: bool,
    use_inbox: bool,
    inbox_dir_override: str | None,
    verbose: bool,
    skip_health_check: bool,
) -> None:
    """Top Ten -- multi-model word-association puzzle generator.

    \b
    Examples:
      python -m src.cli "Programming Languages"
      python -m src.cli "Sci-Fi Movies" --models openai,claude --no-save
      python -m src.cli --week --date 2026-11-02
      python -m src.cli --inbox
    """
    load_dotenv()
    _setup_logging(verbose)

    try:
        config = load_config()
    except FileNotFoundError as exc:
        console.print(f"[bold red]Config error:[/bold red] {exc}")
        sys.exit(1)

    output_dir = Path(output_path) if output_path else config.defaults.output_dir
    start: date = puzzle_date.date() if puzzle_date else today_utc()

    all_providers = _build_all_providers(config)
    if not all_providers:
        console.print("[bold red]Error:[/bold red] No models available. Check API keys in .env.")
        sys.exit(1)

    if not skip_health_check:
        all_providers = _check_and_filter_providers(all_providers)

    gateway = ModelGateway(all_providers)
    generator = build_generator(config, gateway, _determine_panel(config, models), question_model)

    if use_inbox:
        inbox_dir = Path(inbox_dir_override) if inbox_dir_override else config.inbox.dir
        asyncio.run(_run_inbox(generator, inbox_dir, config.inbox.archive_dir, output_dir))
        return

    if use_week:
        saved = asyncio.run(
            generate_week(
                generator,
                config.topics,
                output_dir,
                start=start,
                days=days if days is not None else config.defaults.days,
            )
        )
        console.print(f"\n[dim]Saved {len(saved)} puzzle(s) to {output_dir}[/dim]")
        return

    if not topic:
        console.print("[bold red]Error:[/bold red] Provide a TOPIC argument, --week, or --inbox.")
        sys.exit(1)

    puzzle = asyncio.run(_run_topic(generator, topic))
    if puzzle is None:
        console.print(f"[bold red]Error:[/bold red] Puzzle generation failed for {topic!r}.")
        sys.exit(1)

    print_puzzle(puzzle)
    if not no_save:
        saved_path = save_puzzle(puzzle, output_dir, puzzle_id_for_date(start))
        console.print(f"\n[dim]Saved to: {saved_path}[/dim]")


if __name__ == "__main__":
    main()
