"""Fold speaker-labelled utterances into display segments."""

from __future__ import annotations

import logging
import re
import time
import uuid
from dataclasses import dataclass, replace
from typing import Any, Optional

_logger = logging.getLogger("huddle.segmenter")

_WHITESPACE_RE = re.compile(r"\s+")
_OPENERS = ("(", "[", "{", "“", "‘")
_DASHES = ("-", "–", "—")
_CLOSERS = (".", ",", "!", "?", ";", ":", ")", "]", "}")


@dataclass(frozen=True)
class SegmenterThresholds:
    pause_boundary_ms: int = 2000
    merge_gap_ms: int = 1200
    max_chars: int = 280
    max_words: int = 35
    max_duration_ms: int = 12000


DEFAULT_THRESHOLDS = SegmenterThresholds()


@dataclass(frozen=True)
class Segment:
    id: str
    speaker: str
    text: str
    t_start_ms: int
    t_end_ms: int
    source_client_id: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "speaker": self.speaker,
            "text": self.text,
            "t_start_ms": self.t_start_ms,
            "t_end_ms": self.t_end_ms,
            "source_client_id": self.source_client_id,
        }


@dataclass(frozen=True)
class Utterance:
    speaker: str
    text: str
    t_end_ms: int
    t_start_ms: Optional[int] = None
    source_client_id: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any], now_ms: Optional[int] = None) -> "Utterance":
        """Build an utterance from a loosely typed payload.

        Missing speaker becomes "Unknown"; a missing or non-numeric end
        timestamp becomes the current time.
        """
        t_end_ms = _as_ms(data.get("t_end_ms"))
        if t_end_ms is None:
            t_end_ms = now_ms if now_ms is not None else int(time.time() * 1000)
        return cls(
            speaker=str(data.get("speaker") or "Unknown"),
            text=str(data.get("text") or ""),
            t_end_ms=t_end_ms,
            t_start_ms=_as_ms(data.get("t_start_ms")),
            source_client_id=str(data["source_client_id"]) if data.get("source_client_id") else None,
        )


@dataclass(frozen=True)
class SegmentEvent:
    action: str  # "created" | "updated"
    segment: Segment

    def to_dict(self) -> dict:
        return {"action": self.action, "segment": self.segment.to_dict()}


def _as_ms(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if number != number or number in (float("inf"), float("-inf")):
        return None
    return int(number)


def clean_text(text: Optional[str]) -> str:
    """Collapse runs of whitespace to one space and trim."""
    return _WHITESPACE_RE.sub(" ", str(text or "")).strip()


def count_words(text: str) -> int:
    return len(text.split())


def needs_space_join(prev_text: str, next_text: str) -> bool:
    """
    Decide whether a space goes between two merged fragments.

    No space after a trailing dash, opening bracket/quote or whitespace, and
    none before leading closing punctuation.
    """
    if not prev_text:
        return False
    last = prev_text[-1]
    if last in _DASHES or last in _OPENERS or last.isspace():
        return False
    if next_text.startswith(_CLOSERS):
        return False
    return True


def join_text(prev_text: str, next_text: str) -> str:
    sep = " " if needs_space_join(prev_text, next_text) else ""
    return f"{prev_text}{sep}{next_text}"


def find_last_index(segments: list[Segment], speaker: str) -> int:
    """Index of the most recent segment for ``speaker``, or -1."""
    for idx in range(len(segments) - 1, -1, -1):
        if segments[idx].speaker == speaker:
            return idx
    return -1


def new_segment_id() -> str:
    return uuid.uuid4().hex[:16]


def should_start_new(
    last: Segment,
    text: str,
    t_end_ms: int,
    thresholds: SegmenterThresholds = DEFAULT_THRESHOLDS,
) -> Optional[str]:
    """
    Return the reason a new segment is needed, or None when ``text`` can merge.

    Checks run in a fixed order and stop at the first hit. The pause boundary
    is tested before the merge gap so that either threshold can be tuned on
    its own.
    """
    gap = t_end_ms - last.t_end_ms
    if gap >= thresholds.pause_boundary_ms:
        return "pause_boundary"
    if gap >= thresholds.merge_gap_ms:
        return "merge_gap"

    combined = join_text(last.text, text)
    if len(combined) > thresholds.max_chars:
        return "max_chars"
    if count_words(combined) > thresholds.max_words:
        return "max_words"

    started = last.t_start_ms if last.t_start_ms is not None else last.t_end_ms
    if t_end_ms - started > thresholds.max_duration_ms:
        return "max_duration"
    return None


def apply_utterance(
    segments: list[Segment],
    utterance: Utterance,
    thresholds: Optional[SegmenterThresholds] = None,
    *,
    last_index: Optional[int] = None,
) -> tuple[list[Segment], Optional[SegmentEvent]]:
    """
    Fold one utterance into a room's segment list.

    The input list is never modified. A merge returns a new list with the
    matched segment replaced by an updated copy; a new segment is appended
    at the tail. Indices of existing entries never change.

    Args:
        segments: Current segments for the room, oldest first
        utterance: Incoming speaker-labelled fragment
        thresholds: Merge limits (defaults when None)
        last_index: Known index of the speaker's latest segment, skips the
            backward scan when it still points at that speaker

    Returns:
        Tuple of (segments, event). Event is None and the list is returned
        as-is when the utterance text is empty after cleaning.
    """
    thresholds = thresholds or DEFAULT_THRESHOLDS
    text = clean_text(utterance.text)
    if not text:
        return segments, None

    speaker = utterance.speaker
    t_end_ms = utterance.t_end_ms

    if (
        last_index is not None
        and 0 <= last_index < len(segments)
        and segments[last_index].speaker == speaker
    ):
        idx = last_index
    else:
        idx = find_last_index(segments, speaker)

    reason = "first_for_speaker" if idx == -1 else should_start_new(
        segments[idx], text, t_end_ms, thresholds
    )

    if reason is not None:
        segment = Segment(
            id=new_segment_id(),
            speaker=speaker,
            text=text,
            t_start_ms=utterance.t_start_ms if utterance.t_start_ms is not None else t_end_ms,
            t_end_ms=t_end_ms,
            source_client_id=utterance.source_client_id,
        )
        _logger.debug("segment created id=%s speaker=%s reason=%s", segment.id, speaker, reason)
        return [*segments, segment], SegmentEvent("created", segment)

    last = segments[idx]
    updated = replace(last, text=join_text(last.text, text), t_end_ms=t_end_ms)
    out = list(segments)
    out[idx] = updated
    _logger.debug("segment updated id=%s speaker=%s chars=%d", updated.id, speaker, len(updated.text))
    return out, SegmentEvent("updated", updated)
