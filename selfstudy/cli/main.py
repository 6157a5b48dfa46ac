"""
Selfstudy CLI - terminal course player.

Commands:
    play      Run a course in the terminal
    inspect   Show a course outline
    receipt   Show the last completion payload
    reset     Discard the saved attempt
"""

import json
import sys
import time
from pathlib import Path
from typing import Optional

import typer
from loguru import logger
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

from selfstudy import __version__
from selfstudy.config import StorageBackend, get_settings
from selfstudy.content import load_course
from selfstudy.exceptions import SelfStudyError
from selfstudy.player import (
    AttemptPersistence,
    AttemptStore,
    CooperativeScheduler,
    Learner,
    PlayerController,
    SubmissionStatus,
    create_storage,
    read_last_payload,
)

from .renderer import ConsoleRenderer

app = typer.Typer(
    name="selfstudy",
    help="Self-study course player",
    no_args_is_help=True,
)

console = Console()

IN_FLIGHT = (SubmissionStatus.PENDING, SubmissionStatus.RETRY_SCHEDULED)


def _apply_overrides(endpoint: Optional[str], storage: Optional[StorageBackend]):
    settings = get_settings()
    update = {}
    if endpoint:
        update["ingest_endpoint"] = endpoint
    if storage:
        update["storage_backend"] = storage
    return settings.model_copy(update=update) if update else settings


def _ask_learner(name: Optional[str], position: Optional[str], site: Optional[str]) -> Learner:
    console.print("\n[bold]Before you start[/bold]")
    while True:
        full_name = name or Prompt.ask("Full name", console=console)
        role = position or Prompt.ask("Position", console=console)
        home_site = site or Prompt.ask("Home site", console=console)
        try:
            return Learner(full_name=full_name.strip(), position=role.strip(), home_site=home_site.strip())
        except ValueError as e:
            console.print(f"[red]{e}[/red]")
            name = position = site = None


def _wait_for_delivery(player: PlayerController, scheduler: CooperativeScheduler) -> None:
    """Run the scheduler until the payload is delivered or given up on."""
    with console.status("Sending results to the training matrix...") as status:
        while player.submitter.status in IN_FLIGHT:
            delay = scheduler.next_due()
            if delay is None:
                break
            if player.submitter.status == SubmissionStatus.RETRY_SCHEDULED:
                status.update(f"Retrying in {delay:.0f}s...")
            time.sleep(delay)
            scheduler.run_pending()


# =============================================================================
# Commands
# =============================================================================

@app.command()
def play(
    course_dir: Path = typer.Argument(..., help="Course package directory"),
    fresh: bool = typer.Option(False, "--fresh", help="Ignore any saved attempt"),
    endpoint: Optional[str] = typer.Option(None, "--endpoint", "-e", help="Ingestion endpoint URL"),
    storage: Optional[StorageBackend] = typer.Option(None, "--storage", "-s", help="Storage backend"),
    name: Optional[str] = typer.Option(None, "--name", help="Learner full name"),
    position: Optional[str] = typer.Option(None, "--position", help="Learner position"),
    site: Optional[str] = typer.Option(None, "--site", help="Learner home site"),
) -> None:
    """
    Play a course in the terminal.

    Progress is saved as you go; run the same command again to resume.
    """
    settings = _apply_overrides(endpoint, storage)
    try:
        course, modules = load_course(course_dir)
    except SelfStudyError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    scheduler = CooperativeScheduler()
    renderer = ConsoleRenderer(console)
    player = PlayerController(
        course,
        modules,
        storage=create_storage(settings),
        scheduler=scheduler,
        renderer=renderer,
        settings=settings,
    )

    console.print(f"\n[bold cyan]{course.title}[/bold cyan] v{course.version}")
    try:
        player.start(restore=not fresh)
        if player.learner is None:
            player.submit_onboarding(_ask_learner(name, position, site))
        else:
            console.print(f"Welcome back, [bold]{player.learner.full_name}[/bold].")

        while not player.completed:
            scheduler.run_pending()
            renderer.draw(player)
            renderer.draw_notices(player)

            if not player.can_proceed and renderer.needs_answer():
                action = Prompt.ask(
                    "(a)nswer  (b)ack  (s)ave  (q)uit",
                    choices=["a", "b", "s", "q"],
                    default="a",
                    console=console,
                )
            else:
                action = Prompt.ask(
                    f"(n) {player.next_label()}  (b)ack  (s)ave  (q)uit",
                    choices=["n", "b", "s", "q"],
                    default="n",
                    console=console,
                )

            if action == "a":
                response = renderer.ask()
                if response is not None and not player.respond(response):
                    console.print("[yellow]Not quite. Try again.[/yellow]")
            elif action == "n":
                if not player.go_next():
                    console.print("[yellow]Complete this page to continue.[/yellow]")
            elif action == "b":
                player.go_back()
            elif action == "s":
                player.save()
            else:
                player.save()
                renderer.draw_notices(player)
                raise typer.Exit(0)

        renderer.draw_notices(player)
        final = player.scores.final
        if final is not None:
            verdict = "[green]Passed[/green]" if final.passed else "[red]Not passed[/red]"
            console.print(Panel(
                f"Final score: {final.percent}%\n{verdict}",
                title="Course complete",
                border_style="green" if final.passed else "red",
            ))

        _wait_for_delivery(player, scheduler)
        renderer.draw_notices(player)
        if player.submitter.status == SubmissionStatus.ABANDONED:
            console.print("[red]Results could not be delivered. Run 'selfstudy receipt' to see them.[/red]")
    except SelfStudyError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    finally:
        player.close()


@app.command()
def inspect(
    course_dir: Path = typer.Argument(..., help="Course package directory"),
) -> None:
    """Show a course's modules, pages and quiz pools."""
    try:
        course, modules = load_course(course_dir)
    except SelfStudyError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    console.print(f"\n[bold cyan]{course.title}[/bold cyan] ({course.course_id} v{course.version})")
    console.print(f"Pass mark: {course.pass_mark_percent:g}%")

    table = Table()
    table.add_column("Module")
    table.add_column("Title")
    table.add_column("Pages", justify="right")
    table.add_column("Page types")
    table.add_column("Pools")

    for bundle in modules:
        types = sorted({page.type for page in bundle.pages})
        pools = ", ".join(f"{pool_id} ({len(items)})" for pool_id, items in bundle.pools.items())
        table.add_row(bundle.id, bundle.title, str(len(bundle.pages)), ", ".join(types), pools or "-")

    console.print(table)


@app.command()
def receipt(
    storage: Optional[StorageBackend] = typer.Option(None, "--storage", "-s", help="Storage backend"),
    raw: bool = typer.Option(False, "--json", help="Print the stored payload as JSON"),
) -> None:
    """Show the last completion payload that was stored."""
    settings = _apply_overrides(None, storage)
    payload = read_last_payload(create_storage(settings), settings.last_payload_storage_key)

    if payload is None:
        console.print("[yellow]No completion on record.[/yellow]")
        raise typer.Exit(1)

    if raw:
        console.print_json(json.dumps(payload))
        return

    learner = payload.get("learner", {})
    attempt = payload.get("attempt", {})
    scores = payload.get("scores", {})
    final = scores.get("final") or {}

    table = Table(show_header=False, box=None)
    table.add_column("Field", style="dim")
    table.add_column("Value", style="bold")
    table.add_row("Course", str(payload.get("course_id")))
    table.add_row("Learner", str(learner.get("full_name")))
    table.add_row("Position", str(learner.get("position")))
    table.add_row("Home site", str(learner.get("home_site")))
    table.add_row("Completed", str(attempt.get("completed_at")))
    table.add_row("Duration", f"{attempt.get('duration_sec', 0)}s")
    for module_id, percent in scores.get("modules", {}).items():
        table.add_row(f"Module {module_id}", f"{percent}%")
    if final:
        table.add_row("Final", f"{final.get('percent')}% ({'passed' if final.get('passed') else 'not passed'})")

    console.print(Panel(table, title="Completion receipt", border_style="cyan"))


@app.command()
def reset(
    storage: Optional[StorageBackend] = typer.Option(None, "--storage", "-s", help="Storage backend"),
    confirm: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Discard the saved attempt so the next play starts fresh."""
    if not confirm and not typer.confirm("Discard saved progress?", default=False):
        raise typer.Exit(0)

    settings = _apply_overrides(None, storage)
    persistence = AttemptPersistence(
        AttemptStore(),
        create_storage(settings),
        CooperativeScheduler(),
        key=settings.attempt_storage_key,
    )
    persistence.clear()
    console.print("[green]Saved progress discarded.[/green]")


@app.command()
def version() -> None:
    """Show the installed version."""
    console.print(f"selfstudy {__version__}")


def run() -> None:
    """Entry point for the selfstudy command."""
    logger.remove()
    logger.add(sys.stderr, level=get_settings().log_level, format="<level>{message}</level>")
    app()


if __name__ == "__main__":
    run()
