"""
Rich console renderer for the terminal player.

``render()`` is what the controller calls when a page or quiz question is
bound; it only remembers the page. ``draw()`` prints the current screen and
``ask()`` turns keyboard input into the response the page handler expects.
"""

from __future__ import annotations

import random
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, FloatPrompt, IntPrompt, Prompt
from rich.table import Table

from selfstudy.content.models import PageType
from selfstudy.pages.base import RendererHooks
from selfstudy.player.controller import PlayerController

# Page types the learner has to answer before Next unlocks
PROMPTED_TYPES = {
    PageType.SINGLE_CHOICE,
    PageType.MULTI_CHOICE,
    PageType.BRANCH,
    PageType.DRAG_DROP,
    PageType.REORDER,
    PageType.HANDWASH,
    PageType.HOTSPOT,
    PageType.TEMPERATURE,
    PageType.LOTTIE,
    PageType.QUIZ_REF,
}

NOTICE_STYLES = {
    "info": "cyan",
    "success": "green",
    "warning": "yellow",
    "error": "red",
}


def parse_numbers(text: str, upper: int) -> list[int] | None:
    """Parse "1, 3 4" into 0-based indices. None if anything is out of range."""
    picked = []
    for token in text.replace(",", " ").split():
        if not token.isdigit():
            return None
        number = int(token)
        if not 1 <= number <= upper:
            return None
        picked.append(number - 1)
    return picked


class ConsoleRenderer:
    """PageRenderer that draws pages with rich and reads answers from stdin."""

    def __init__(self, console: Console | None = None, rng: random.Random | None = None):
        self.console = console or Console()
        self.rng = rng or random.Random()
        self.page: Any = None
        self.hooks: RendererHooks | None = None
        self._shuffled: list[str] = []

    def render(self, page: Any, hooks: RendererHooks) -> None:
        self.page = page
        self.hooks = hooks
        steps = getattr(page, "steps", None)
        self._shuffled = self.rng.sample(list(steps), len(steps)) if steps else []

    # =========================================================================
    # Drawing
    # =========================================================================

    def draw(self, player: PlayerController) -> None:
        progress = player.progress()
        rail = "  ".join(
            f"[bold]{m.title}[/bold]" if m.is_active else (f"[green]{m.title}[/green]" if m.is_complete else f"[dim]{m.title}[/dim]")
            for m in progress.modules
        )
        self.console.rule(f"{player.course.title} - {progress.percentage}%")
        self.console.print(rail)

        if player.title:
            self.console.print(f"\n[bold cyan]{player.title}[/bold cyan]")
        if self.page is not None:
            self._draw_page(self.page)
        if player.right_panel is not None and player.right_panel.lines:
            self.console.print(Panel(
                "\n".join(player.right_panel.lines),
                title=player.right_panel.heading,
                border_style="dim",
            ))

    def _draw_page(self, page: Any) -> None:
        page_type = PageType(page.type)

        if page_type == PageType.CONTENT:
            if page.media:
                self.console.print(f"[dim]({page.media})[/dim]")
        elif page_type in (PageType.SINGLE_CHOICE, PageType.MULTI_CHOICE, PageType.BRANCH):
            self.console.print(f"\n{page.stem}")
            for i, option in enumerate(page.options, 1):
                self.console.print(f"  [cyan]{i}.[/cyan] {option}")
            if page_type == PageType.MULTI_CHOICE:
                self.console.print("[dim]Select all that apply.[/dim]")
        elif page_type == PageType.DRAG_DROP:
            if page.prompt:
                self.console.print(f"\n{page.prompt}")
        elif page_type in (PageType.REORDER, PageType.HANDWASH):
            prompt = getattr(page, "prompt", "") or "Put the steps in the right order."
            self.console.print(f"\n{prompt}")
            for i, step in enumerate(self._shuffled, 1):
                self.console.print(f"  [cyan]{i}.[/cyan] {step}")
        elif page_type == PageType.HOTSPOT:
            self.console.print(f"\n{page.prompt or 'Find every hazard.'}")
            for i, spot in enumerate(page.spots, 1):
                self.console.print(f"  [cyan]{i}.[/cyan] {spot.label or spot.id}")
        elif page_type == PageType.TEMPERATURE:
            self.console.print(
                f"\nDial range {page.min:g}-{page.max:g} C. "
                f"Safe: {page.safe_cold_max:g} C or below, {page.hot_hold_min:g} C or above."
            )
        elif page_type == PageType.COMPLETION:
            for paragraph in page.body:
                self.console.print(paragraph)
        elif page_type == PageType.QUIZ_REF:
            self.console.print(f"\nQuiz: {page.count} question(s) from {page.pool}")

    def draw_notices(self, player: PlayerController) -> None:
        for notice in player.drain_notices():
            style = NOTICE_STYLES.get(notice.level, "white")
            self.console.print(f"[{style}]{notice.message}[/{style}]")

    # =========================================================================
    # Input
    # =========================================================================

    def needs_answer(self) -> bool:
        return self.page is not None and PageType(self.page.type) in PROMPTED_TYPES

    def ask(self) -> Any:
        """Prompt for the current page's response. None means "no answer"."""
        page = self.page
        page_type = PageType(page.type)

        if page_type in (PageType.SINGLE_CHOICE, PageType.BRANCH):
            choice = IntPrompt.ask(
                "Your answer",
                choices=[str(i) for i in range(1, len(page.options) + 1)],
                console=self.console,
            )
            return choice - 1

        if page_type == PageType.MULTI_CHOICE:
            text = Prompt.ask("Option numbers (e.g. 1,3)", console=self.console)
            return parse_numbers(text, len(page.options))

        if page_type == PageType.DRAG_DROP:
            targets = sorted({pair.target for pair in page.pairs})
            table = Table(show_header=False, box=None)
            for i, target in enumerate(targets, 1):
                table.add_row(f"[cyan]{i}.[/cyan]", target)
            self.console.print(table)
            mapping = {}
            for pair in page.pairs:
                choice = IntPrompt.ask(
                    f"Where does [bold]{pair.item}[/bold] go?",
                    choices=[str(i) for i in range(1, len(targets) + 1)],
                    console=self.console,
                )
                mapping[pair.item] = targets[choice - 1]
            return mapping

        if page_type in (PageType.REORDER, PageType.HANDWASH):
            text = Prompt.ask("Order (e.g. 3,1,2)", console=self.console)
            order = parse_numbers(text, len(self._shuffled))
            if order is None:
                return None
            return [self._shuffled[i] for i in order]

        if page_type == PageType.HOTSPOT:
            text = Prompt.ask("Hazard numbers", console=self.console)
            picked = parse_numbers(text, len(page.spots))
            if picked is None:
                return None
            return [page.spots[i].id for i in picked]

        if page_type == PageType.TEMPERATURE:
            return FloatPrompt.ask("Set the dial", default=page.initial, console=self.console)

        if page_type == PageType.LOTTIE:
            return Confirm.ask("Play the animation?", default=True, console=self.console)

        if page_type == PageType.QUIZ_REF:
            return Confirm.ask("Start the quiz?", default=True, console=self.console) or None

        return None
