"""
Unit tests for page handlers.

Tests the enter() signals and check() results of each handler.
"""

import pytest

from selfstudy.content.models import (
    BranchPage,
    CompletionPage,
    ContentPage,
    DragDropPage,
    HandwashPage,
    HotspotPage,
    LottiePage,
    MultiChoicePage,
    PageType,
    QuizRefPage,
    RecapPage,
    ReorderPage,
    SingleChoicePage,
    TemperaturePage,
)
from selfstudy.pages import HANDLERS, get_handler, respond
from selfstudy.pages.base import INTERACTION_HINT, RendererHooks
from selfstudy.player.attempt_store import Scores


class RecordingHooks:
    """Collects whatever a handler signals."""

    def __init__(self):
        self.can_proceed = None
        self.title = "unset"
        self.panel = "unset"
        self.continued = 0

    def hooks(self) -> RendererHooks:
        return RendererHooks(
            set_can_proceed=lambda ok: setattr(self, "can_proceed", ok),
            set_title=lambda title: setattr(self, "title", title),
            set_right_panel=lambda panel: setattr(self, "panel", panel),
            on_continue=self._continue,
        )

    def _continue(self):
        self.continued += 1


@pytest.fixture
def recorder():
    return RecordingHooks()


def enter(page, recorder, scores=None):
    get_handler(page.type).enter(page, recorder.hooks(), scores or Scores())


class TestHandlerRegistry:
    """Test the handler registry."""

    def test_every_page_type_registered(self):
        assert set(HANDLERS) == set(PageType)

    def test_get_handler_by_string(self):
        assert get_handler("single_choice") is HANDLERS[PageType.SINGLE_CHOICE]

    def test_get_handler_by_enum(self):
        assert get_handler(PageType.RECAP) is not None

    def test_get_handler_invalid_type(self):
        assert get_handler("video") is None


class TestInformational:
    """content, recap, lottie."""

    def test_content_enter(self, recorder):
        enter(ContentPage(id="p", title="Intro", body="Hello"), recorder)

        assert recorder.title == "Intro"
        assert recorder.panel.lines == ["Hello"]
        assert recorder.can_proceed is True

    def test_content_without_body_has_no_panel(self, recorder):
        enter(ContentPage(id="p", title="Intro"), recorder)
        assert recorder.panel is None

    def test_recap_enter(self, recorder):
        enter(RecapPage(id="r", bullets=["a", "b"]), recorder)

        assert recorder.title == "Module recap"
        assert recorder.panel.heading == "Key takeaways"
        assert recorder.panel.lines == ["a", "b"]
        assert recorder.can_proceed is True

    def test_lottie_blocks_until_played(self, recorder):
        page = LottiePage(id="l", src="wash.json", title="Watch")
        enter(page, recorder)

        assert recorder.can_proceed is False
        assert recorder.panel.lines == ["Play the animation, then continue."]

        assert respond(page, True, recorder.hooks()) is True
        assert recorder.can_proceed is True
        assert recorder.continued == 0


class TestChoice:
    """single_choice, multi_choice, branch."""

    @pytest.fixture
    def single(self):
        return SingleChoicePage(id="q", stem="?", options=["a", "b", "c"], answer=2)

    def test_enter_blocks(self, single, recorder):
        enter(single, recorder)

        assert recorder.title is None
        assert recorder.panel.lines == [INTERACTION_HINT]
        assert recorder.can_proceed is False

    def test_single_correct_continues(self, single, recorder):
        assert respond(single, 2, recorder.hooks()) is True
        assert recorder.can_proceed is True
        assert recorder.continued == 1

    def test_single_wrong(self, single, recorder):
        assert respond(single, 0, recorder.hooks()) is False
        assert recorder.can_proceed is False
        assert recorder.continued == 0

    @pytest.mark.parametrize("response", [None, "x", True, [2]])
    def test_single_garbage(self, single, response):
        assert get_handler(single.type).check(single, response) is False

    def test_multi(self):
        page = MultiChoicePage(id="q", stem="?", options=["a", "b", "c"], answers=[0, 2])
        handler = get_handler(page.type)

        assert handler.check(page, [2, 0]) is True
        assert handler.check(page, [0]) is False
        assert handler.check(page, "02") is False

    def test_branch_uses_correct_index(self, recorder):
        page = BranchPage(id="b", title="Spill!", stem="What now?", options=["ignore", "clean"], correct_index=1)
        enter(page, recorder)

        assert recorder.title == "Spill!"
        assert get_handler(page.type).check(page, 1) is True
        assert get_handler(page.type).check(page, 0) is False

    def test_branch_accepts_camel_case_content(self):
        page = BranchPage.model_validate(
            {"type": "branch", "id": "b", "stem": "?", "options": ["a", "b"], "correctIndex": 0}
        )
        assert page.correct_index == 0


class TestInteractive:
    """drag_drop, reorder, hotspot, temperature, handwash."""

    def test_drag_drop(self):
        page = DragDropPage.model_validate({
            "type": "drag_drop",
            "id": "d",
            "pairs": [{"item": "raw chicken", "target": "bottom shelf"}, {"item": "salad", "target": "top shelf"}],
        })
        handler = get_handler(page.type)

        assert handler.check(page, {"salad": "top shelf", "raw chicken": "bottom shelf"}) is True
        assert handler.check(page, {"salad": "bottom shelf", "raw chicken": "top shelf"}) is False
        assert handler.check(page, [("salad", "top shelf")]) is False

    def test_reorder(self):
        page = ReorderPage(id="r", steps=["wet", "soap", "rinse"])
        handler = get_handler(page.type)

        assert handler.check(page, ["wet", "soap", "rinse"]) is True
        assert handler.check(page, ("wet", "soap", "rinse")) is True
        assert handler.check(page, ["soap", "wet", "rinse"]) is False
        assert handler.check(page, "wet soap rinse") is False

    def test_reorder_does_not_continue(self, recorder):
        page = ReorderPage(id="r", steps=["a", "b"])
        respond(page, ["a", "b"], recorder.hooks())

        assert recorder.can_proceed is True
        assert recorder.continued == 0

    def test_hotspot_needs_every_hazard(self):
        page = HotspotPage.model_validate({
            "type": "hotspot",
            "id": "h",
            "spots": [
                {"id": "bin", "label": "Open bin"},
                {"id": "mouse", "label": "Droppings"},
                {"id": "sink", "label": "Clean sink", "hazard": False},
            ],
        })
        handler = get_handler(page.type)

        assert handler.check(page, ["mouse", "bin"]) is True
        assert handler.check(page, ["bin"]) is False
        assert handler.check(page, ["bin", "mouse", "sink"]) is False

    @pytest.mark.parametrize("reading,expected", [
        (3, True),
        (5, True),
        (8, False),
        (40, False),
        (63, True),
        (75, True),
        (150, False),
        ("abc", False),
    ])
    def test_temperature(self, reading, expected):
        page = TemperaturePage(id="t", min=-20, max=100, initial=20)
        assert get_handler(page.type).check(page, reading) is expected

    def test_temperature_continues_on_pass(self, recorder):
        page = TemperaturePage(id="t", min=-20, max=100, initial=20)
        respond(page, 70, recorder.hooks())

        assert recorder.continued == 1

    def test_handwash_continues_on_pass(self, recorder):
        page = HandwashPage(id="w", steps=["wet", "lather", "rinse", "dry"])

        assert respond(page, ["wet", "lather", "rinse", "dry"], recorder.hooks()) is True
        assert recorder.continued == 1


class TestAssessment:
    """quiz_ref and completion."""

    def test_quiz_ref_enter(self, recorder):
        enter(QuizRefPage(id="q", pool="m1", count=3), recorder)

        assert recorder.title == "Knowledge check"
        assert recorder.can_proceed is False

    def test_quiz_ref_response_starts_quiz(self, recorder):
        respond(QuizRefPage(id="q", pool="m1", count=3), "start", recorder.hooks())
        assert recorder.continued == 1

    @pytest.fixture
    def completion(self):
        return CompletionPage.model_validate({
            "type": "completion",
            "id": "done",
            "title": "Well done",
            "requires": {"modules": ["m1", "m2"], "minOverallPercent": 70},
        })

    def test_completion_not_ready(self, completion, recorder):
        enter(completion, recorder, Scores(modules={"m1": 80}))

        assert recorder.title == "Well done"
        assert recorder.can_proceed is False
        assert recorder.panel.heading == "Completion requirements"
        assert recorder.panel.lines == [
            "M1 ready",
            "M2 not complete",
            "Overall score: 80% (needs 70% or higher)",
        ]

    def test_completion_ready(self, completion, recorder):
        enter(completion, recorder, Scores(modules={"m1": 80, "m2": 65}))

        assert recorder.can_proceed is True
        assert recorder.panel.lines[-1] == "Overall score: 73% (needs 70% or higher)"

    def test_completion_check_takes_scores(self, completion):
        handler = get_handler(completion.type)

        assert handler.check(completion, Scores(modules={"m1": 80, "m2": 65})) is True
        assert handler.check(completion, Scores(modules={"m1": 80})) is False
        assert handler.check(completion, {"m1": 80, "m2": 65}) is False

    def test_completion_without_requirements(self, recorder):
        enter(CompletionPage(id="done", title="Done"), recorder)

        assert recorder.can_proceed is True
        assert recorder.panel.lines == ["Overall score: 0%"]
