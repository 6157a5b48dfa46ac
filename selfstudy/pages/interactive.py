"""
Interactive widget handlers: drag_drop, reorder, hotspot, temperature, handwash.

The widgets themselves live in the renderer. Their responses are:
- drag_drop: mapping of item -> target the learner built
- reorder / handwash: the steps in the order the learner put them
- hotspot: ids of the spots the learner flagged
- temperature: the dial reading
"""

from collections.abc import Iterable, Mapping
from typing import Any

from selfstudy.content.models import (
    DragDropPage,
    HandwashPage,
    HotspotPage,
    PageType,
    ReorderPage,
    TemperaturePage,
)
from selfstudy.player.attempt_store import Scores

from . import register
from .base import INTERACTION_HINT, RendererHooks, RightPanel


def _as_list(response: Any) -> list | None:
    if not isinstance(response, Iterable) or isinstance(response, (str, bytes, Mapping)):
        return None
    return list(response)


class _WidgetHandler:
    continue_on_pass = False

    def enter(self, page: Any, hooks: RendererHooks, scores: Scores) -> None:
        hooks.set_title(None)
        hooks.set_right_panel(RightPanel(lines=[INTERACTION_HINT]))
        hooks.set_can_proceed(False)


@register(PageType.DRAG_DROP)
class DragDropHandler(_WidgetHandler):
    def check(self, page: DragDropPage, response: Any) -> bool:
        if not isinstance(response, Mapping):
            return False
        expected = {pair.item: pair.target for pair in page.pairs}
        return dict(response) == expected


@register(PageType.REORDER)
class ReorderHandler(_WidgetHandler):
    def check(self, page: ReorderPage, response: Any) -> bool:
        return _as_list(response) == list(page.steps)


@register(PageType.HOTSPOT)
class HotspotHandler(_WidgetHandler):
    def check(self, page: HotspotPage, response: Any) -> bool:
        picked = _as_list(response)
        if picked is None:
            return False
        hazards = {spot.id for spot in page.spots if spot.hazard}
        return set(picked) == hazards


@register(PageType.TEMPERATURE)
class TemperatureHandler(_WidgetHandler):
    continue_on_pass = True

    def check(self, page: TemperaturePage, response: Any) -> bool:
        try:
            value = float(response)
        except (TypeError, ValueError):
            return False
        if not page.min <= value <= page.max:
            return False
        return value <= page.safe_cold_max or value >= page.hot_hold_min


@register(PageType.HANDWASH)
class HandwashHandler(_WidgetHandler):
    continue_on_pass = True

    def check(self, page: HandwashPage, response: Any) -> bool:
        return _as_list(response) == list(page.steps)
