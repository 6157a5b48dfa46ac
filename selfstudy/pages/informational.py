"""
Informational page handlers: content, recap, lottie.

Content and recap pages are read-and-continue. A lottie animation keeps Next
disabled until the learner has played it.
"""

from typing import Any

from selfstudy.content.models import ContentPage, LottiePage, PageType, RecapPage
from selfstudy.player.attempt_store import Scores

from . import register
from .base import RendererHooks, RightPanel


@register(PageType.CONTENT)
class ContentHandler:
    continue_on_pass = False

    def enter(self, page: ContentPage, hooks: RendererHooks, scores: Scores) -> None:
        hooks.set_title(page.title)
        hooks.set_right_panel(RightPanel(lines=[page.body]) if page.body else None)
        hooks.set_can_proceed(True)

    def check(self, page: ContentPage, response: Any) -> bool:
        return True


@register(PageType.RECAP)
class RecapHandler:
    continue_on_pass = False

    def enter(self, page: RecapPage, hooks: RendererHooks, scores: Scores) -> None:
        hooks.set_title("Module recap")
        hooks.set_right_panel(RightPanel(lines=list(page.bullets), heading="Key takeaways"))
        hooks.set_can_proceed(True)

    def check(self, page: RecapPage, response: Any) -> bool:
        return True


@register(PageType.LOTTIE)
class LottieHandler:
    continue_on_pass = False

    def enter(self, page: LottiePage, hooks: RendererHooks, scores: Scores) -> None:
        hooks.set_title(page.title)
        hooks.set_right_panel(
            RightPanel(lines=[page.caption or "Play the animation, then continue."])
        )
        hooks.set_can_proceed(False)

    def check(self, page: LottiePage, response: Any) -> bool:
        """Response is truthy once the animation has been played."""
        return bool(response)
