"""
Unit tests for AttemptStore and the attempt snapshot types.
"""

import pytest

from selfstudy.player.attempt_store import (
    AttemptState,
    AttemptStore,
    FinalScore,
    Learner,
    Scores,
)


class TestLearner:
    """Tests for Learner validation."""

    def test_valid(self, learner):
        assert learner.full_name == "Test Learner"

    @pytest.mark.parametrize("field", ["full_name", "position", "home_site"])
    def test_empty_field_rejected(self, field):
        values = {"full_name": "A", "position": "B", "home_site": "C", field: "  "}
        with pytest.raises(ValueError):
            Learner(**values)

    def test_dict_round_trip(self, learner):
        assert Learner.from_dict(learner.to_dict()) == learner


class TestAttemptState:
    """Tests for snapshot serialization."""

    def test_to_dict(self, learner):
        state = AttemptState(learner=learner, module_index=1, page_index=2, scores=Scores(modules={"m1": 80}))

        assert state.to_dict() == {
            "learner": {"full_name": "Test Learner", "position": "Chef", "home_site": "Dalston"},
            "module_index": 1,
            "page_index": 2,
            "scores": {"modules": {"m1": 80}},
        }

    def test_final_score_serialized(self):
        state = AttemptState(scores=Scores(modules={"m1": 80}, final=FinalScore(80, True)))

        assert state.to_dict()["scores"]["final"] == {"percent": 80, "passed": True}

    def test_from_dict_defaults(self):
        state = AttemptState.from_dict({})

        assert state.learner is None
        assert state.module_index == 0
        assert state.page_index == 0
        assert state.scores == Scores()

    def test_from_dict_rejects_non_object(self):
        with pytest.raises(TypeError):
            AttemptState.from_dict(["not", "a", "dict"])

    def test_from_dict_rejects_negative_indices(self):
        with pytest.raises(ValueError):
            AttemptState.from_dict({"module_index": -1})


class TestAttemptStore:
    """Tests for store actions and subscriptions."""

    @pytest.fixture
    def store(self):
        return AttemptStore()

    def test_initial_state(self, store):
        assert store.learner is None
        assert store.scores.modules == {}

    def test_set_learner_notifies(self, store, learner):
        seen = []
        store.subscribe(seen.append)

        store.set_learner(learner)

        assert store.learner == learner
        assert len(seen) == 1
        assert seen[0].learner == learner

    def test_to_page(self, store):
        store.to_page(1, 3)
        assert (store.state.module_index, store.state.page_index) == (1, 3)

    def test_to_page_rejects_negative(self, store):
        with pytest.raises(ValueError):
            store.to_page(0, -1)

    def test_set_module_score_keeps_others(self, store):
        store.set_module_score("m1", 80)
        store.set_module_score("m2", 60)
        store.set_module_score("m1", 90)

        assert store.scores.modules == {"m1": 90, "m2": 60}

    def test_set_final_score(self, store):
        store.set_final_score(69, 70)
        assert store.scores.final == FinalScore(percent=69, passed=False)

        store.set_final_score(70, 70)
        assert store.scores.final.passed is True

    def test_state_is_replaced_not_mutated(self, store):
        before = store.state
        store.set_module_score("m1", 50)
        assert before.scores.modules == {}

    def test_unsubscribe(self, store, learner):
        seen = []
        unsubscribe = store.subscribe(seen.append)
        unsubscribe()
        unsubscribe()

        store.set_learner(learner)

        assert seen == []

    def test_hydrate_does_not_notify(self, store, learner):
        seen = []
        store.subscribe(seen.append)

        store.hydrate(AttemptState(learner=learner, module_index=1))

        assert store.state.module_index == 1
        assert seen == []

    def test_reset(self, store, learner):
        store.set_learner(learner)
        store.set_module_score("m1", 100)

        store.reset()

        assert store.state == AttemptState()
