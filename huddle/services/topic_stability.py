"""Debounce noisy topic labels before they replace the displayed topic."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Union

_logger = logging.getLogger("huddle.topic")

DEFAULT_SHIFT_CONFIDENCE = 0.60
REQUIRED_VOTES = 2


@dataclass(frozen=True)
class StableTopic:
    topic: str = ""


@dataclass(frozen=True)
class PendingTopic:
    topic: str
    candidate: str
    count: int


TopicState = Union[StableTopic, PendingTopic]


def vote(
    state: TopicState,
    topic: str,
    confidence: float,
    shift_confidence: float = DEFAULT_SHIFT_CONFIDENCE,
) -> tuple[TopicState, Optional[str]]:
    """
    Apply one topic observation.

    Low-confidence observations and repeats of the committed topic leave the
    state untouched, including any pending candidate. A new candidate needs
    two consecutive qualifying votes before it is committed.

    Returns:
        Tuple of (new state, committed topic or None)
    """
    if not (confidence >= shift_confidence) or topic == state.topic:
        return state, None

    if isinstance(state, PendingTopic) and state.candidate == topic:
        count = state.count + 1
        if count >= REQUIRED_VOTES:
            return StableTopic(topic), topic
        return PendingTopic(state.topic, topic, count), None

    return PendingTopic(state.topic, topic, 1), None


class TopicStabilizer:
    """Per-room holder for the topic state machine.

    Not thread-safe on its own; the owning room serializes calls.
    """

    def __init__(self, shift_confidence: float = DEFAULT_SHIFT_CONFIDENCE) -> None:
        self.shift_confidence = shift_confidence
        self.state: TopicState = StableTopic()

    @property
    def current_topic(self) -> str:
        return self.state.topic

    @property
    def pending_topic(self) -> Optional[str]:
        return self.state.candidate if isinstance(self.state, PendingTopic) else None

    @property
    def pending_count(self) -> int:
        return self.state.count if isinstance(self.state, PendingTopic) else 0

    def observe(self, topic: str, confidence: float) -> Optional[str]:
        """Vote for ``topic``; returns it only when this vote commits it."""
        previous = self.state.topic
        self.state, committed = vote(self.state, topic, confidence, self.shift_confidence)
        if committed is not None:
            _logger.debug("topic committed %r -> %r", previous, committed)
        return committed

    def to_dict(self) -> dict:
        return {
            "current_topic": self.current_topic,
            "pending_topic": self.pending_topic,
            "pending_count": self.pending_count,
        }
