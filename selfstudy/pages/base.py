"""
Base protocol and types for page handlers.

A page handler knows two things about its page type: what the player shell
shows when the page is entered (title, right panel, whether Next starts
enabled) and how a widget response maps to pass/fail. Drawing the widget is
the renderer's job; the handler only turns its response into a signal.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Protocol

from selfstudy.player.attempt_store import Scores


@dataclass(frozen=True)
class RightPanel:
    """Side panel content shown next to a page."""
    lines: list[str] = field(default_factory=list)
    heading: str | None = None


@dataclass
class RendererHooks:
    """Callbacks the engine hands to the renderer for the current page."""
    set_can_proceed: Callable[[bool], None]
    set_title: Callable[[str | None], None]
    set_right_panel: Callable[[RightPanel | None], None]
    on_continue: Callable[[], None]


class PageRenderer(Protocol):
    """Protocol for external widget renderers."""

    def render(self, page: Any, hooks: RendererHooks) -> None:
        """Draw the page. Report pass/fail through ``hooks``."""
        ...


class PageHandler(Protocol):
    """Protocol for page type handlers."""

    # Call on_continue after a passing response
    continue_on_pass: bool

    def enter(self, page: Any, hooks: RendererHooks, scores: Scores) -> None:
        """Set the title, right panel and initial Next state for the page."""
        ...

    def check(self, page: Any, response: Any) -> bool:
        """Evaluate a widget response. Returns True if the page is passed."""
        ...


INTERACTION_HINT = "Complete the interaction to unlock Next."
