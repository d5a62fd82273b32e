"""Topic stability test suite."""
from __future__ import annotations

from huddle.services.topic_stability import PendingTopic, StableTopic, TopicStabilizer, vote
from huddle.tests.base import TestSuite


class TopicStabilitySuite(TestSuite):
    """Two-vote debounce for the displayed topic."""

    suite_id = "topic-stability"
    name = "Topic Stability"
    description = "A new topic needs two consecutive confident votes before it shows"

    def _register_tests(self):
        self.add_test("TS-001", "Single confident vote does not commit", self._test_single_vote)
        self.add_test("TS-002", "Two consecutive votes commit", self._test_two_votes)
        self.add_test("TS-003", "Low confidence leaves pending alone", self._test_low_confidence)
        self.add_test("TS-004", "Current topic vote leaves pending alone", self._test_current_topic_vote)
        self.add_test("TS-005", "Different candidate restarts the count", self._test_switch_candidate)
        self.add_test("TS-006", "Confidence threshold is inclusive", self._test_threshold_boundary)
        self.add_test("TS-007", "Stabilizer exposes state fields", self._test_stabilizer_fields)
        self.add_test("TS-008", "Non-finite confidence never qualifies", self._test_non_finite)

    def _test_single_vote(self, ctx: dict) -> bool:
        state, committed = vote(StableTopic("Budget"), "Hiring", 0.9)
        assert committed is None
        assert state == PendingTopic("Budget", "Hiring", 1)
        assert state.topic == "Budget"
        return True

    def _test_two_votes(self, ctx: dict) -> bool:
        state, _ = vote(StableTopic(""), "Roadmap", 0.7)
        state, committed = vote(state, "Roadmap", 0.8)
        assert committed == "Roadmap"
        assert state == StableTopic("Roadmap")
        return True

    def _test_low_confidence(self, ctx: dict) -> bool:
        state, _ = vote(StableTopic("Budget"), "Hiring", 0.9)
        pending = state
        state, committed = vote(state, "Office move", 0.3)
        assert committed is None and state == pending
        state, committed = vote(state, "Hiring", 0.2)
        assert committed is None and state == pending
        state, committed = vote(state, "Hiring", 0.9)
        assert committed == "Hiring"
        return True

    def _test_current_topic_vote(self, ctx: dict) -> bool:
        state, _ = vote(StableTopic("Budget"), "Hiring", 0.9)
        state, committed = vote(state, "Budget", 0.95)
        assert committed is None
        assert state == PendingTopic("Budget", "Hiring", 1)
        state, committed = vote(state, "Hiring", 0.9)
        assert committed == "Hiring"
        return True

    def _test_switch_candidate(self, ctx: dict) -> bool:
        state = StableTopic("Budget")
        for topic in ("Hiring", "Travel", "Hiring"):
            state, committed = vote(state, topic, 0.9)
            assert committed is None, f"unexpected commit of {topic}"
        assert state == PendingTopic("Budget", "Hiring", 1)
        return True

    def _test_threshold_boundary(self, ctx: dict) -> bool:
        state, _ = vote(StableTopic(), "Edge", 0.60)
        assert isinstance(state, PendingTopic)
        state, _ = vote(StableTopic(), "Edge", 0.59)
        assert state == StableTopic()
        state, _ = vote(StableTopic(), "Edge", 0.75, shift_confidence=0.8)
        assert state == StableTopic()
        return True

    def _test_stabilizer_fields(self, ctx: dict) -> bool:
        stabilizer = TopicStabilizer()
        assert stabilizer.to_dict() == {"current_topic": "", "pending_topic": None, "pending_count": 0}
        assert stabilizer.observe("Launch", 0.9) is None
        assert stabilizer.pending_topic == "Launch" and stabilizer.pending_count == 1
        assert stabilizer.observe("Launch", 0.9) == "Launch"
        assert stabilizer.current_topic == "Launch"
        assert stabilizer.pending_topic is None and stabilizer.pending_count == 0
        return True

    def _test_non_finite(self, ctx: dict) -> bool:
        nan = float("nan")
        pending, _ = vote(StableTopic("Budget"), "Hiring", 0.9)
        for confidence in (nan, float("-inf")):
            state, committed = vote(StableTopic("Budget"), "Hiring", confidence)
            assert committed is None and state == StableTopic("Budget")
            state, committed = vote(pending, "Hiring", confidence)
            assert committed is None and state == pending
        state, committed = vote(pending, "Hiring", 0.99, shift_confidence=nan)
        assert committed is None and state == pending
        return True
