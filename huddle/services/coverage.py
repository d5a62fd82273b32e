"""Transcript coverage score used to weight reported topic confidence.

A room with little recent speech, or with near-identical lines in a row,
scores low.
"""

from __future__ import annotations

import re
from typing import Any, Sequence

from rapidfuzz.distance import JaroWinkler

from huddle.services.segmenter import Segment

COVERAGE_WINDOW_MS = 120_000
MIN_TEXT_CHARS = 8
DUPLICATE_SIMILARITY = 0.92
EMPTY_ROOM_CONFIDENCE = 0.1
COVERAGE_WEIGHT = 0.6

_APOSTROPHES_RE = re.compile(r"[’']")
_NON_WORD_RE = re.compile(r"[^a-z0-9\s']")
_SPACES_RE = re.compile(r"\s+")


def clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


def normalize_text(text: Any) -> str:
    """Lower-case, strip punctuation and collapse whitespace."""
    s = _APOSTROPHES_RE.sub("'", str(text or "").lower())
    s = _NON_WORD_RE.sub(" ", s)
    return _SPACES_RE.sub(" ", s).strip()


def jaccard_similarity(a: str, b: str) -> float:
    tokens_a = set(normalize_text(a).split())
    tokens_b = set(normalize_text(b).split())
    if not tokens_a or not tokens_b:
        return 0.0
    return len(tokens_a & tokens_b) / len(tokens_a | tokens_b)


def combined_similarity(a: str, b: str) -> float:
    """Weighted mix of character-level Jaro-Winkler and token Jaccard."""
    norm_a, norm_b = normalize_text(a), normalize_text(b)
    if not norm_a or not norm_b:
        return 0.0
    return 0.65 * JaroWinkler.similarity(norm_a, norm_b) + 0.35 * jaccard_similarity(norm_a, norm_b)


def coverage_confidence(
    segments: Sequence[Segment],
    ts_ms: int,
    window_ms: int = COVERAGE_WINDOW_MS,
) -> float:
    """
    Score how much usable talk the room had in the window ending at ``ts_ms``.

    Segments that ended inside the window count. The score rises with the
    share of segments carrying at least a few characters of text and drops
    with the rate of near-duplicate neighbours among them.

    Returns:
        Confidence in [0, 1]; EMPTY_ROOM_CONFIDENCE when nothing was said
    """
    window_start = ts_ms - window_ms
    recent = [s for s in segments if s.t_end_ms >= window_start]
    if not recent:
        return EMPTY_ROOM_CONFIDENCE

    with_text = [s for s in recent if len(normalize_text(s.text)) >= MIN_TEXT_CHARS]
    coverage = len(with_text) / len(recent)

    duplicate_pairs = sum(
        1
        for prev, cur in zip(with_text, with_text[1:])
        if combined_similarity(prev.text, cur.text) >= DUPLICATE_SIMILARITY
    )
    duplicate_rate = duplicate_pairs / (len(with_text) - 1) if len(with_text) > 1 else 0.0
    return clamp01(0.15 + 0.75 * coverage - 0.35 * duplicate_rate)


def blend_confidence(coverage: float, reported: float) -> float:
    """60% transcript coverage, 40% model-reported confidence."""
    return clamp01(COVERAGE_WEIGHT * coverage + (1 - COVERAGE_WEIGHT) * clamp01(reported))
