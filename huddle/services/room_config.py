from __future__ import annotations

import logging
import math
import os
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Mapping, Optional

from huddle.services.paging import DEFAULT_LIMIT, MAX_LIMIT
from huddle.services.segmenter import SegmenterThresholds
from huddle.services.topic_stability import DEFAULT_SHIFT_CONFIDENCE

_logger = logging.getLogger("huddle.config")

# Accepted spellings for each setting: config.json / override key -> field name.
_SEGMENTER_KEYS = {
    "pause_boundary_ms": "pause_boundary_ms",
    "merge_gap_ms": "merge_gap_ms",
    "max_chars": "max_chars",
    "max_words": "max_words",
    "max_duration_ms": "max_duration_ms",
}
_ROOM_KEYS = {
    "topic_shift_confidence": "topic_shift_confidence",
    "topic_shift_confidence_threshold": "topic_shift_confidence",
    "topic_history_max": "topic_history_max",
    "room_ttl_ms": "room_ttl_ms",
    "default_page_limit": "default_page_limit",
    "max_page_limit": "max_page_limit",
}
_ENV_VARS = (
    "PAUSE_BOUNDARY_MS",
    "MERGE_GAP_MS",
    "MAX_CHARS",
    "MAX_WORDS",
    "MAX_DURATION_MS",
    "TOPIC_SHIFT_CONFIDENCE_THRESHOLD",
    "TOPIC_HISTORY_MAX",
    "ROOM_TTL_MS",
)


@dataclass(frozen=True)
class RoomConfig:
    """Thresholds and limits for one room.

    Loaded once at boot from config.json and the environment; a room can
    override any of them when it is created.
    """
    segmenter: SegmenterThresholds = field(default_factory=SegmenterThresholds)
    topic_shift_confidence: float = DEFAULT_SHIFT_CONFIDENCE
    topic_history_max: int = 200
    room_ttl_ms: int = 7_200_000
    default_page_limit: int = DEFAULT_LIMIT
    max_page_limit: int = MAX_LIMIT

    def with_overrides(self, overrides: Optional[Mapping[str, Any]]) -> "RoomConfig":
        if not overrides:
            return self
        items = list(overrides.items())
        nested = overrides.get("segmenter")
        if isinstance(nested, Mapping):
            items = list(nested.items()) + items

        seg_changes: dict[str, Any] = {}
        room_changes: dict[str, Any] = {}
        for raw_key, raw_value in items:
            key = str(raw_key).lower()
            if key in _SEGMENTER_KEYS:
                value = _coerce(raw_value, int, raw_key)
                if value is not None:
                    seg_changes[_SEGMENTER_KEYS[key]] = value
            elif key in _ROOM_KEYS:
                name = _ROOM_KEYS[key]
                caster = float if name == "topic_shift_confidence" else int
                value = _coerce(raw_value, caster, raw_key)
                if value is not None:
                    room_changes[name] = value
        segmenter = replace(self.segmenter, **seg_changes) if seg_changes else self.segmenter
        return replace(self, segmenter=segmenter, **self._page_limits(room_changes))

    def _page_limits(self, changes: dict[str, Any]) -> dict[str, Any]:
        # Page sizes stay within [1, MAX_LIMIT] and default <= max whatever the source.
        maximum = changes.get("max_page_limit", self.max_page_limit)
        if maximum < 1:
            _logger.warning("Ignoring room config max_page_limit=%r (below 1)", maximum)
            maximum = self.max_page_limit
        maximum = min(maximum, MAX_LIMIT)
        default = changes.get("default_page_limit", self.default_page_limit)
        if default < 1:
            _logger.warning("Ignoring room config default_page_limit=%r (below 1)", default)
            default = self.default_page_limit
        return {**changes, "max_page_limit": maximum, "default_page_limit": min(default, maximum)}

    def to_dict(self) -> dict:
        return {
            "pause_boundary_ms": self.segmenter.pause_boundary_ms,
            "merge_gap_ms": self.segmenter.merge_gap_ms,
            "max_chars": self.segmenter.max_chars,
            "max_words": self.segmenter.max_words,
            "max_duration_ms": self.segmenter.max_duration_ms,
            "topic_shift_confidence": self.topic_shift_confidence,
            "topic_history_max": self.topic_history_max,
            "room_ttl_ms": self.room_ttl_ms,
            "default_page_limit": self.default_page_limit,
            "max_page_limit": self.max_page_limit,
        }


def _coerce(value: Any, caster: Callable[[Any], Any], key: Any) -> Optional[Any]:
    if isinstance(value, bool):
        _logger.warning("Ignoring room config %s=%r (not a number)", key, value)
        return None
    try:
        number = float(value)
        if not math.isfinite(number):
            raise ValueError(value)
        return caster(number)
    except (TypeError, ValueError, OverflowError):
        _logger.warning("Ignoring room config %s=%r (not a number)", key, value)
        return None


def parse_room_config(
    config_dict: Optional[dict] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> RoomConfig:
    """Build the boot-time room config.

    Precedence, lowest first: defaults, the "rooms" section of config.json,
    environment variables.

    Example config.json section:
        {"rooms": {"merge_gap_ms": 1500, "segmenter": {"max_words": 40}}}
    """
    environ = os.environ if environ is None else environ
    config = RoomConfig().with_overrides((config_dict or {}).get("rooms") or {})
    env_overrides = {name: environ[name] for name in _ENV_VARS if environ.get(name, "").strip()}
    if env_overrides:
        _logger.info("Room config env overrides: %s", sorted(env_overrides))
    return config.with_overrides(env_overrides)
