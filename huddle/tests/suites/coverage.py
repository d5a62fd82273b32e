"""Transcript coverage test suite."""
from __future__ import annotations

from huddle.services.coverage import (
    EMPTY_ROOM_CONFIDENCE,
    blend_confidence,
    combined_similarity,
    coverage_confidence,
    normalize_text,
)
from huddle.services.segmenter import Segment
from huddle.tests.base import TestSuite

NOW = 1_000_000


def _seg(n: int, text: str, t_end_ms: int = NOW) -> Segment:
    return Segment(id=f"s{n}", speaker=f"S{n}", text=text, t_start_ms=t_end_ms, t_end_ms=t_end_ms)


class CoverageSuite(TestSuite):
    """Recent-talk score blended into topic confidence."""

    suite_id = "coverage"
    name = "Transcript Coverage"
    description = "Coverage and duplicate penalty over the last two minutes of segments"

    def _register_tests(self):
        self.add_test("CV-001", "Silent room scores the floor", self._test_empty)
        self.add_test("CV-002", "Distinct substantive lines score high", self._test_full_coverage)
        self.add_test("CV-003", "Short fragments lower coverage", self._test_short_fragments)
        self.add_test("CV-004", "Repeated lines are penalized", self._test_duplicates)
        self.add_test("CV-005", "Only the window counts", self._test_window)
        self.add_test("CV-006", "Blend weights and bounds", self._test_blend)
        self.add_test("CV-007", "Text normalization and similarity", self._test_similarity)

    def _test_empty(self, ctx: dict) -> bool:
        assert coverage_confidence([], NOW) == EMPTY_ROOM_CONFIDENCE
        return True

    def _test_full_coverage(self, ctx: dict) -> bool:
        segments = [
            _seg(1, "we should settle the budget before friday"),
            _seg(2, "hiring still needs an owner this week"),
            _seg(3, "marketing wants the launch date moved"),
        ]
        assert abs(coverage_confidence(segments, NOW) - 0.9) < 1e-9
        return True

    def _test_short_fragments(self, ctx: dict) -> bool:
        assert abs(coverage_confidence([_seg(1, "ok"), _seg(2, "uh huh")], NOW) - 0.15) < 1e-9
        half = [_seg(1, "yes"), _seg(2, "the vendor contract renews in march")]
        assert abs(coverage_confidence(half, NOW) - 0.525) < 1e-9
        return True

    def _test_duplicates(self, ctx: dict) -> bool:
        line = "can everyone hear me on this call"
        segments = [_seg(1, line), _seg(2, line.upper() + "!"), _seg(3, line)]
        assert abs(coverage_confidence(segments, NOW) - 0.55) < 1e-9
        return True

    def _test_window(self, ctx: dict) -> bool:
        old = _seg(1, "ok", t_end_ms=NOW - 120_001)
        edge = _seg(2, "the roadmap review is on thursday", t_end_ms=NOW - 120_000)
        assert abs(coverage_confidence([old, edge], NOW) - 0.9) < 1e-9
        assert coverage_confidence([old], NOW) == EMPTY_ROOM_CONFIDENCE
        return True

    def _test_blend(self, ctx: dict) -> bool:
        assert abs(blend_confidence(0.9, 0.8) - 0.86) < 1e-9
        assert abs(blend_confidence(0.1, 1.0) - 0.46) < 1e-9
        assert blend_confidence(1.0, 5.0) == 1.0
        assert blend_confidence(0.0, -2.0) == 0.0
        return True

    def _test_similarity(self, ctx: dict) -> bool:
        assert normalize_text("  Don’t  STOP, now!! ") == "don't stop now"
        assert abs(combined_similarity("Same words here", "same words here.") - 1.0) < 1e-9
        assert combined_similarity("", "anything") == 0.0
        assert combined_similarity("budget review friday", "hiring plan owners") < 0.92
        return True
