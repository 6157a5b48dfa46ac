"""
Content: course manifests, module bundles, and the page union.

Core modules:
- models: pydantic models for course JSON
- loader: on-disk course package loading
"""

from .loader import CourseLoader, load_course
from .models import (
    BranchPage,
    CompletionActions,
    CompletionPage,
    CompletionRequirements,
    ContentPage,
    CourseManifest,
    DragDropPage,
    DragDropPair,
    HandwashPage,
    Hotspot,
    HotspotPage,
    LottiePage,
    ModuleBundle,
    ModuleManifest,
    ModuleRef,
    MultiChoicePage,
    Page,
    PageType,
    QuizRefPage,
    QuizSpec,
    RecapPage,
    ReorderPage,
    SingleChoicePage,
    TemperaturePage,
)

__all__ = [
    "CourseLoader",
    "load_course",
    # Manifests
    "CourseManifest",
    "ModuleRef",
    "ModuleManifest",
    "ModuleBundle",
    "QuizSpec",
    # Pages
    "Page",
    "PageType",
    "ContentPage",
    "SingleChoicePage",
    "MultiChoicePage",
    "DragDropPage",
    "DragDropPair",
    "ReorderPage",
    "HotspotPage",
    "Hotspot",
    "LottiePage",
    "BranchPage",
    "TemperaturePage",
    "HandwashPage",
    "CompletionPage",
    "CompletionRequirements",
    "CompletionActions",
    "RecapPage",
    "QuizRefPage",
]
