"""
Course content models.

A course is a CourseManifest plus one ModuleBundle per module. Pages are a
closed tagged union on ``type``; course JSON may use either snake_case or
camelCase keys (``correct_index`` / ``correctIndex``).
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class PageType(str, Enum):
    """Page types a module can contain."""

    CONTENT = "content"
    SINGLE_CHOICE = "single_choice"
    MULTI_CHOICE = "multi_choice"
    DRAG_DROP = "drag_drop"
    REORDER = "reorder"
    HOTSPOT = "hotspot"
    LOTTIE = "lottie"
    BRANCH = "branch"
    TEMPERATURE = "temperature"
    HANDWASH = "handwash"
    COMPLETION = "completion"
    RECAP = "recap"
    QUIZ_REF = "quiz_ref"


class ContentModel(BaseModel):
    """Base for all read-only content models."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


# =============================================================================
# Pages
# =============================================================================


class ContentPage(ContentModel):
    type: Literal["content"] = "content"
    id: str
    title: str
    body: str = ""
    media: str | None = None


class SingleChoicePage(ContentModel):
    type: Literal["single_choice"] = "single_choice"
    id: str
    stem: str
    options: list[str]
    answer: int


class MultiChoicePage(ContentModel):
    type: Literal["multi_choice"] = "multi_choice"
    id: str
    stem: str
    options: list[str]
    answers: list[int]


class DragDropPair(ContentModel):
    item: str
    target: str


class DragDropPage(ContentModel):
    type: Literal["drag_drop"] = "drag_drop"
    id: str
    prompt: str = ""
    pairs: list[DragDropPair]


class ReorderPage(ContentModel):
    """Steps are stored in their correct order."""

    type: Literal["reorder"] = "reorder"
    id: str
    prompt: str = ""
    steps: list[str]


class Hotspot(ContentModel):
    id: str
    label: str = ""
    x: float = 0.0
    y: float = 0.0
    hazard: bool = True


class HotspotPage(ContentModel):
    type: Literal["hotspot"] = "hotspot"
    id: str
    prompt: str = ""
    image: str = ""
    spots: list[Hotspot]


class LottiePage(ContentModel):
    type: Literal["lottie"] = "lottie"
    id: str
    src: str
    title: str | None = None
    caption: str | None = None
    loop: bool = False


class BranchPage(ContentModel):
    type: Literal["branch"] = "branch"
    id: str
    title: str = ""
    stem: str
    options: list[str]
    correct_index: int


class TemperaturePage(ContentModel):
    """Dial between ``min`` and ``max``; safe below ``safe_cold_max`` or from ``hot_hold_min``."""

    type: Literal["temperature"] = "temperature"
    id: str
    min: float
    max: float
    initial: float
    safe_cold_max: float = 5.0
    hot_hold_min: float = 63.0


class HandwashPage(ContentModel):
    """Steps are stored in their correct order."""

    type: Literal["handwash"] = "handwash"
    id: str
    steps: list[str]


class CompletionRequirements(ContentModel):
    modules: list[str] = Field(default_factory=list)
    min_overall_percent: float | None = None


class CompletionActions(ContentModel):
    cta_label: str | None = None


class CompletionPage(ContentModel):
    type: Literal["completion"] = "completion"
    id: str
    title: str
    body: list[str] = Field(default_factory=list)
    media: str | None = None
    requires: CompletionRequirements | None = None
    actions: CompletionActions | None = None


class RecapPage(ContentModel):
    type: Literal["recap"] = "recap"
    id: str
    bullets: list[str] = Field(default_factory=list)


class QuizRefPage(ContentModel):
    type: Literal["quiz_ref"] = "quiz_ref"
    id: str
    pool: str
    count: int = Field(ge=0)


Page = Annotated[
    Union[
        ContentPage,
        SingleChoicePage,
        MultiChoicePage,
        DragDropPage,
        ReorderPage,
        HotspotPage,
        LottiePage,
        BranchPage,
        TemperaturePage,
        HandwashPage,
        CompletionPage,
        RecapPage,
        QuizRefPage,
    ],
    Field(discriminator="type"),
]


# =============================================================================
# Manifests
# =============================================================================


class ModuleRef(ContentModel):
    id: str
    title: str


class CourseManifest(ContentModel):
    """Top-level course description (course.json)."""

    course_id: str
    title: str
    version: str = "1.0.0"
    modules: list[ModuleRef] = Field(default_factory=list)
    pass_mark_percent: float = Field(default=70.0, ge=0, le=100)


class QuizSpec(ContentModel):
    pool: str
    count: int = Field(ge=0)
    pass_mark_percent: float | None = None


class ModuleManifest(ContentModel):
    id: str
    title: str
    pages: list[str] = Field(default_factory=list)
    quiz: QuizSpec | None = None


class ModuleBundle(ContentModel):
    """A module's manifest, ordered pages and quiz pools."""

    manifest: ModuleManifest
    pages: list[Page] = Field(default_factory=list)
    pools: dict[str, list[Page]] = Field(default_factory=dict)
    outcomes: dict[str, Any] | None = None
    blueprint: dict[str, Any] | None = None

    @property
    def id(self) -> str:
        return self.manifest.id

    @property
    def title(self) -> str:
        return self.manifest.title
