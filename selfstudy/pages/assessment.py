"""
Assessment page handlers: quiz_ref and completion.

These are the two page types the controller treats specially. A quiz_ref
page starts a quiz through on_continue; a completion page enables its
certificate action only while the completion gate is ready.
"""

from typing import Any

from selfstudy.content.models import CompletionPage, PageType, QuizRefPage
from selfstudy.player.attempt_store import Scores
from selfstudy.player.gate import GateStatus, evaluate_gate

from . import register
from .base import RendererHooks, RightPanel


@register(PageType.QUIZ_REF)
class QuizRefHandler:
    continue_on_pass = True

    def enter(self, page: QuizRefPage, hooks: RendererHooks, scores: Scores) -> None:
        hooks.set_title("Knowledge check")
        hooks.set_right_panel(RightPanel(lines=["Start the quiz to record your score."]))
        hooks.set_can_proceed(False)

    def check(self, page: QuizRefPage, response: Any) -> bool:
        """Any response means "start the quiz"."""
        return True


def requirements_panel(page: CompletionPage, status: GateStatus) -> RightPanel:
    lines = [
        f"{module_id.upper()} {'not complete' if module_id in status.missing_modules else 'ready'}"
        for module_id in status.required_modules
    ]
    overall = f"Overall score: {status.overall_percent}%"
    if status.min_overall_percent is not None:
        overall += f" (needs {status.min_overall_percent:g}% or higher)"
    lines.append(overall)
    return RightPanel(lines=lines, heading="Completion requirements")


@register(PageType.COMPLETION)
class CompletionHandler:
    continue_on_pass = False

    def enter(self, page: CompletionPage, hooks: RendererHooks, scores: Scores) -> None:
        status = evaluate_gate(page.requires, scores)
        hooks.set_title(page.title)
        hooks.set_right_panel(requirements_panel(page, status))
        hooks.set_can_proceed(status.ready)

    def check(self, page: CompletionPage, response: Any) -> bool:
        """Response is the current Scores; passes when the gate is ready."""
        if not isinstance(response, Scores):
            return False
        return evaluate_gate(page.requires, response).ready
