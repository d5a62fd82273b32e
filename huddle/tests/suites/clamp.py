"""Content clamp test suite."""
from __future__ import annotations

from huddle.services.clamp import clamp_list, clamp_summary_object, clamp_text
from huddle.tests.base import TestSuite


class ClampSuite(TestSuite):
    """Size limits on AI-generated summary content."""

    suite_id = "clamp"
    name = "Content Clamp"
    description = "Text and list truncation plus the fixed summary shape"

    def _register_tests(self):
        self.add_test("CL-001", "Short text unchanged", self._test_short_text)
        self.add_test("CL-002", "Long text cut with ellipsis", self._test_long_text)
        self.add_test("CL-003", "Output never exceeds limit + 3", self._test_length_bound)
        self.add_test("CL-004", "List drops empties and caps count", self._test_list)
        self.add_test("CL-005", "Summary object defaults", self._test_summary_defaults)
        self.add_test("CL-006", "Summary object limits", self._test_summary_limits)

    def _test_short_text(self, ctx: dict) -> bool:
        assert clamp_text("hello", 10) == "hello"
        assert clamp_text(clamp_text("hello", 10), 10) == "hello"
        assert clamp_text("", 10) == ""
        assert clamp_text(None, 10) == ""
        return True

    def _test_long_text(self, ctx: dict) -> bool:
        assert clamp_text("hello world", 6) == "hello..."
        assert clamp_text("abcdefghij", 4) == "abcd..."
        return True

    def _test_length_bound(self, ctx: dict) -> bool:
        text = "lorem ipsum dolor sit amet " * 20
        for limit in (1, 5, 17, 60, 200, 1000):
            out = clamp_text(text, limit)
            assert len(out) <= limit + 3, f"limit {limit} produced {len(out)} chars"
        return True

    def _test_list(self, ctx: dict) -> bool:
        assert clamp_list(["  a  ", "", "   ", None, "b", "c"], 2) == ["a", "b"]
        assert clamp_list(["x" * 200], 5, 10) == ["x" * 10 + "..."]
        assert clamp_list("not a list", 3) == []
        assert clamp_list(None, 3) == []
        assert len(clamp_list([str(i) for i in range(50)], 5)) == 5
        assert clamp_list([1, 2], 5) == ["1", "2"]
        return True

    def _test_summary_defaults(self, ctx: dict) -> bool:
        expected = {
            "topic": "",
            "subtopic": "",
            "status": "Deciding",
            "rolling_summary": "",
            "decisions": [],
            "next_steps": [],
            "confidence": 0.5,
        }
        assert clamp_summary_object(None) == expected
        assert clamp_summary_object("garbage") == expected
        assert clamp_summary_object({"confidence": "high", "decisions": "one"}) == expected
        assert clamp_summary_object({"confidence": True})["confidence"] == 0.5
        assert clamp_summary_object({"confidence": 0})["confidence"] == 0
        for bad in (float("nan"), float("inf"), float("-inf")):
            assert clamp_summary_object({"confidence": bad})["confidence"] == 0.5
        return True

    def _test_summary_limits(self, ctx: dict) -> bool:
        raw = {
            "topic": "t" * 100,
            "subtopic": "s" * 100,
            "status": "Agreed",
            "rolling_summary": "r" * 500,
            "decisions": [f"decision {i} " + "d" * 200 for i in range(8)],
            "next_steps": ["call vendor", "", "send notes"],
            "confidence": 0.82,
            "extra": "ignored",
        }
        out = clamp_summary_object(raw)
        assert set(out) == {
            "topic", "subtopic", "status", "rolling_summary", "decisions", "next_steps", "confidence"
        }
        assert out["topic"] == "t" * 60 + "..."
        assert out["subtopic"] == "s" * 80 + "..."
        assert out["status"] == "Agreed"
        assert out["rolling_summary"] == "r" * 200 + "..."
        assert len(out["decisions"]) == 5
        assert all(len(d) <= 143 for d in out["decisions"])
        assert out["next_steps"] == ["call vendor", "send notes"]
        assert out["confidence"] == 0.82
        return True
