"""
Choice page handlers: single_choice, multi_choice, branch.

Responses are option indices (0-based). A correct answer unlocks Next and
continues straight on.
"""

from collections.abc import Iterable
from typing import Any

from selfstudy.content.models import BranchPage, MultiChoicePage, PageType, SingleChoicePage
from selfstudy.player.attempt_store import Scores
from selfstudy.player.scoring import score_multi, score_single

from . import register
from .base import INTERACTION_HINT, RendererHooks, RightPanel


def _as_index(response: Any) -> int | None:
    if isinstance(response, bool):
        return None
    try:
        return int(response)
    except (TypeError, ValueError):
        return None


class _ChoiceHandler:
    continue_on_pass = True

    def enter(self, page: Any, hooks: RendererHooks, scores: Scores) -> None:
        hooks.set_title(None)
        hooks.set_right_panel(RightPanel(lines=[INTERACTION_HINT]))
        hooks.set_can_proceed(False)


@register(PageType.SINGLE_CHOICE)
class SingleChoiceHandler(_ChoiceHandler):
    def check(self, page: SingleChoicePage, response: Any) -> bool:
        picked = _as_index(response)
        return picked is not None and score_single(picked, page.answer) == 1


@register(PageType.MULTI_CHOICE)
class MultiChoiceHandler(_ChoiceHandler):
    def check(self, page: MultiChoicePage, response: Any) -> bool:
        if not isinstance(response, Iterable) or isinstance(response, (str, bytes)):
            return False
        picked = [_as_index(r) for r in response]
        if any(p is None for p in picked):
            return False
        return score_multi(picked, page.answers) == 1


@register(PageType.BRANCH)
class BranchHandler(_ChoiceHandler):
    def enter(self, page: BranchPage, hooks: RendererHooks, scores: Scores) -> None:
        super().enter(page, hooks, scores)
        if page.title:
            hooks.set_title(page.title)

    def check(self, page: BranchPage, response: Any) -> bool:
        picked = _as_index(response)
        return picked is not None and score_single(picked, page.correct_index) == 1
