"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import json
import sys
from pathlib import Path

import httpx
import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from selfstudy.config import Settings, StorageBackend
from selfstudy.content import CourseManifest, ModuleBundle
from selfstudy.player import (
    CooperativeScheduler,
    Learner,
    ManualClock,
    MemoryStorage,
    PayloadSubmitter,
    PlayerController,
    RetryPolicy,
)

INGEST_URL = "http://ingest.test/api/training-matrix/ingest"


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (full course runs)")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


# =============================================================================
# Course data
# =============================================================================

def single_module_course_data() -> tuple[dict, list[dict]]:
    """One module: content, a one-question quiz, recap."""
    course = {
        "courseId": "uk-l2-food-hygiene",
        "title": "Level 2 Food Hygiene",
        "modules": [{"id": "m1", "title": "Personal hygiene"}],
        "passMarkPercent": 70,
    }
    m1 = {
        "manifest": {
            "id": "m1",
            "title": "Personal hygiene",
            "pages": ["intro", "quiz", "recap"],
            "quiz": {"pool": "m1", "count": 1},
        },
        "pages": [
            {"type": "content", "id": "intro", "title": "Why hygiene matters", "body": "Clean hands save lives."},
            {"type": "quiz_ref", "id": "quiz", "pool": "m1", "count": 1},
            {"type": "recap", "id": "recap", "bullets": ["Wash hands often"]},
        ],
        "pools": {
            "m1": [
                {
                    "type": "single_choice",
                    "id": "m1-q1",
                    "stem": "Should you wash your hands after handling raw meat?",
                    "options": ["No", "Yes"],
                    "answer": 1,
                },
            ],
        },
        "outcomes": {"lo1": "Explain personal hygiene"},
        "blueprint": {"questions": 1},
    }
    return course, [m1]


def two_module_course_data() -> tuple[dict, list[dict]]:
    """Two modules with quizzes and a gated completion page at the end."""
    course = {
        "course_id": "uk-l2-food-hygiene",
        "title": "Level 2 Food Hygiene",
        "version": "2.1.0",
        "modules": [
            {"id": "m1", "title": "Personal hygiene"},
            {"id": "m2", "title": "Temperature control"},
        ],
        "pass_mark_percent": 70,
    }
    m1 = {
        "manifest": {"id": "m1", "title": "Personal hygiene", "pages": ["m1-intro", "m1-quiz"]},
        "pages": [
            {"type": "content", "id": "m1-intro", "title": "Handwashing"},
            {"type": "quiz_ref", "id": "m1-quiz", "pool": "m1", "count": 2},
        ],
        "pools": {
            "m1": [
                {"type": "single_choice", "id": "m1-q1", "stem": "Q1", "options": ["a", "b"], "answer": 1},
                {"type": "single_choice", "id": "m1-q2", "stem": "Q2", "options": ["a", "b"], "answer": 1},
            ],
        },
    }
    m2 = {
        "manifest": {"id": "m2", "title": "Temperature control", "pages": ["m2-dial", "m2-quiz", "done"]},
        "pages": [
            {"type": "temperature", "id": "m2-dial", "min": -20, "max": 100, "initial": 20},
            {"type": "quiz_ref", "id": "m2-quiz", "pool": "m2", "count": 1},
            {
                "type": "completion",
                "id": "done",
                "title": "Well done",
                "body": ["You have finished the course."],
                "requires": {"modules": ["m1", "m2"], "minOverallPercent": 70},
                "actions": {"ctaLabel": "Generate certificate"},
            },
        ],
        "pools": {
            "m2": [
                {
                    "type": "multi_choice",
                    "id": "m2-q1",
                    "stem": "Which temperatures are safe for hot holding?",
                    "options": ["63C", "40C", "75C"],
                    "answers": [0, 2],
                },
            ],
        },
    }
    return course, [m1, m2]


def build_course(course: dict, modules: list[dict]) -> tuple[CourseManifest, list[ModuleBundle]]:
    return (
        CourseManifest.model_validate(course),
        [ModuleBundle.model_validate(m) for m in modules],
    )


def write_course_dir(base: Path, course: dict, modules: list[dict]) -> Path:
    """Lay a course out on disk the way CourseLoader expects."""
    base.mkdir(parents=True, exist_ok=True)
    (base / "course.json").write_text(json.dumps(course), encoding="utf-8")
    modules_dir = base / "modules"
    modules_dir.mkdir(exist_ok=True)
    for module in modules:
        path = modules_dir / f"{module['manifest']['id']}.json"
        path.write_text(json.dumps(module), encoding="utf-8")
    return base


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def scheduler(clock):
    return CooperativeScheduler(clock)


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def settings(tmp_path):
    return Settings(
        ingest_endpoint=INGEST_URL,
        storage_backend=StorageBackend.MEMORY,
        data_dir=tmp_path / "data",
    )


@pytest.fixture
def learner():
    return Learner(full_name="Test Learner", position="Chef", home_site="Dalston")


@pytest.fixture
def single_module_course():
    return build_course(*single_module_course_data())


@pytest.fixture
def two_module_course():
    return build_course(*two_module_course_data())


@pytest.fixture
def course_data():
    """Raw two-module course dicts, fresh for each test."""
    return two_module_course_data()


@pytest.fixture
def write_course():
    return write_course_dir


@pytest.fixture
def course_dir(tmp_path):
    return write_course_dir(tmp_path / "course", *two_module_course_data())


class FakeIngest:
    """httpx.MockTransport handler recording posted payloads."""

    def __init__(self):
        self.payloads: list[dict] = []
        self.statuses: list[int] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.payloads.append(json.loads(request.content))
        status = self.statuses.pop(0) if self.statuses else 200
        return httpx.Response(status, json={"ok": status < 300})


@pytest.fixture
def ingest():
    return FakeIngest()


@pytest.fixture
def http_client(ingest):
    client = httpx.Client(transport=httpx.MockTransport(ingest))
    yield client
    client.close()


@pytest.fixture
def submitter(scheduler, storage, settings, http_client):
    return PayloadSubmitter(
        endpoint=settings.ingest_endpoint,
        scheduler=scheduler,
        storage=storage,
        last_payload_key=settings.last_payload_storage_key,
        policy=RetryPolicy(max_attempts=2, delay_seconds=10.0),
        client=http_client,
    )


@pytest.fixture
def make_player(scheduler, storage, settings, submitter):
    """Factory for a controller wired to in-memory storage and a fake endpoint."""
    players = []

    def _make(course, modules, **kwargs):
        kwargs.setdefault("storage", storage)
        kwargs.setdefault("scheduler", scheduler)
        kwargs.setdefault("settings", settings)
        kwargs.setdefault("submitter", submitter)
        player = PlayerController(course, modules, **kwargs)
        players.append(player)
        return player

    yield _make
    for player in players:
        player.close()
