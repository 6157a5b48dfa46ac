"""
Page type handlers for the course player.

Each page type (content, single_choice, hotspot, etc.) has a handler with:
- enter(): title, right panel and initial Next state for the page
- check(): map a widget response to pass/fail
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from selfstudy.content.models import PageType

if TYPE_CHECKING:
    from selfstudy.player.attempt_store import Scores

    from .base import PageHandler, RendererHooks

# Handler registry - populated by @register decorator
HANDLERS: dict[PageType, "PageHandler"] = {}


def register(page_type: PageType):
    """Decorator to register a page handler."""
    def decorator(cls):
        HANDLERS[page_type] = cls()
        return cls
    return decorator


def get_handler(page_type: str | PageType) -> "PageHandler | None":
    """Get the handler for a page type."""
    if isinstance(page_type, str):
        try:
            page_type = PageType(page_type.lower())
        except ValueError:
            return None
    return HANDLERS.get(page_type)


def handler_for(page: Any) -> "PageHandler":
    """Handler for a page. Every PageType is registered, so this cannot miss."""
    return HANDLERS[PageType(page.type)]


def enter_page(page: Any, hooks: "RendererHooks", scores: "Scores") -> None:
    """Apply the page's entry signals to the hooks."""
    handler_for(page).enter(page, hooks, scores)


def respond(page: Any, response: Any, hooks: "RendererHooks") -> bool:
    """
    Feed a widget response through the page's handler.

    Sets Next from the result and, for page types that continue on a pass,
    calls on_continue.
    """
    handler = handler_for(page)
    ok = handler.check(page, response)
    hooks.set_can_proceed(ok)
    if ok and handler.continue_on_pass:
        hooks.on_continue()
    return ok


# Import handlers to trigger registration
from . import assessment
from . import choice
from . import informational
from . import interactive

__all__ = [
    "HANDLERS",
    "enter_page",
    "get_handler",
    "handler_for",
    "register",
    "respond",
]
