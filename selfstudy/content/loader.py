"""
Course loader for on-disk course packages.

Expected layout:

    <course_dir>/
      course.json          # CourseManifest
      modules/
        m1.json            # {"manifest": ..., "pages": [...], "pools": {...},
        m2.json            #  "outcomes": ..., "blueprint": ...}

Pages are returned in the order listed by the module manifest. A manifest
with an empty page list keeps the file order.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from loguru import logger
from pydantic import ValidationError

from selfstudy.exceptions import ContentError

from .models import CourseManifest, ModuleBundle

COURSE_FILE = "course.json"
MODULES_DIR = "modules"


class CourseLoader:
    """Load a course manifest and its module bundles from a directory."""

    def __init__(self, base_path: Path | str):
        self.base_path = Path(base_path)

    def load(self) -> tuple[CourseManifest, list[ModuleBundle]]:
        """Load the manifest and every module it lists, in manifest order."""
        course = self.load_manifest()
        modules = [self.load_module(ref.id) for ref in course.modules]
        logger.info(
            "Loaded course {} with {} modules from {}",
            course.course_id,
            len(modules),
            self.base_path,
        )
        return course, modules

    def load_manifest(self) -> CourseManifest:
        data = self._read_json(self.base_path / COURSE_FILE)
        try:
            return CourseManifest.model_validate(data)
        except ValidationError as e:
            raise ContentError(f"Invalid course manifest {COURSE_FILE}: {e}") from e

    def load_module(self, module_id: str) -> ModuleBundle:
        """Load a single module bundle and order its pages."""
        path = self.base_path / MODULES_DIR / f"{module_id}.json"
        data = self._read_json(path)
        try:
            bundle = ModuleBundle.model_validate(data)
        except ValidationError as e:
            raise ContentError(f"Invalid module {module_id}: {e}") from e

        if bundle.manifest.id != module_id:
            raise ContentError(
                f"Module file {path.name} declares id {bundle.manifest.id!r}"
            )
        return _order_pages(bundle)

    def list_modules(self) -> list[str]:
        """List module ids present on disk (not necessarily in the manifest)."""
        modules_dir = self.base_path / MODULES_DIR
        if not modules_dir.exists():
            return []
        return sorted(p.stem for p in modules_dir.glob("*.json"))

    @staticmethod
    def _read_json(path: Path) -> Any:
        if not path.exists():
            raise ContentError(f"Content file not found: {path}")
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            raise ContentError(f"Invalid JSON in {path}: {e}") from e


def _order_pages(bundle: ModuleBundle) -> ModuleBundle:
    by_id: dict[str, Any] = {}
    for page in bundle.pages:
        if page.id in by_id:
            raise ContentError(
                f"Duplicate page id {page.id!r} in module {bundle.manifest.id}"
            )
        by_id[page.id] = page

    if not bundle.manifest.pages:
        return bundle

    missing = [pid for pid in bundle.manifest.pages if pid not in by_id]
    if missing:
        raise ContentError(
            f"Module {bundle.manifest.id} lists unknown pages: {', '.join(missing)}"
        )

    ordered = [by_id[pid] for pid in bundle.manifest.pages]
    return bundle.model_copy(update={"pages": ordered})


def load_course(course_dir: Path | str) -> tuple[CourseManifest, list[ModuleBundle]]:
    """Load a course package from ``course_dir``."""
    return CourseLoader(course_dir).load()
