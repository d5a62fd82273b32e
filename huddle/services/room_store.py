from __future__ import annotations

import json
import logging
import secrets
import threading
import time
from datetime import datetime, timezone
from typing import Any, Optional, Union

from huddle.services.clamp import clamp_summary_object
from huddle.services.coverage import blend_confidence, coverage_confidence
from huddle.services.paging import page_segments
from huddle.services.room_config import RoomConfig
from huddle.services.segmenter import Segment, SegmentEvent, Utterance, apply_utterance
from huddle.services.topic_stability import TopicStabilizer

TOPIC_BUCKET_MS = 90_000  # 1.5 min topic timeline buckets
_PLACEHOLDER_TOPICS = ("Waiting for conversation", "General discussion")


def now_ms() -> int:
    return int(time.time() * 1000)


class RoomStoreError(RuntimeError):
    pass


class RoomNotFound(KeyError):
    pass


def default_room_summary() -> dict:
    return {
        "topic": "",
        "subtopic": "",
        "status": "Deciding",
        "rolling_summary": "",
        "decisions": [],
        "next_steps": [],
        "confidence": 0.5,
        "last_updated_ms": 0,
    }


class Room:
    """One live session: its segment log, topic state and summary.

    Writes (utterances, summaries) are serialized on the room's lock. The
    segment list is replaced, never mutated, so readers work off whatever
    reference they picked up.
    """

    def __init__(
        self,
        code: str,
        config: RoomConfig,
        publish: Optional[Any] = None,
        created_at_ms: Optional[int] = None,
    ) -> None:
        self.code = code
        self.config = config
        self.created_at_ms = created_at_ms if created_at_ms is not None else now_ms()
        self.updated_at_ms = self.created_at_ms
        self._lock = threading.RLock()
        self._publish = publish
        self._segments: list[Segment] = []
        self._last_by_speaker: dict[str, int] = {}
        self._topic = TopicStabilizer(config.topic_shift_confidence)
        self.summary = default_room_summary()
        self.topic_history: list[dict] = []
        self.topic_timeline: list[dict] = []
        self._topic_bucket_start_ms = self.created_at_ms
        self._logger = logging.getLogger("huddle.rooms")

    # ── Segments ───────────────────────────────────────────────────────

    @property
    def segments(self) -> list[Segment]:
        return self._segments

    def add_utterance(self, utterance: Union[Utterance, dict]) -> Optional[SegmentEvent]:
        if isinstance(utterance, dict):
            utterance = Utterance.from_dict(utterance)
        with self._lock:
            segments, event = apply_utterance(
                self._segments,
                utterance,
                self.config.segmenter,
                last_index=self._last_by_speaker.get(utterance.speaker),
            )
            if event is None:
                return None
            if event.action == "created":
                self._last_by_speaker[event.segment.speaker] = len(segments) - 1
            self._segments = segments
            self.updated_at_ms = now_ms()
            self._emit(f"segment_{event.action}", {"segment": event.segment.to_dict()})
        return event

    def page_segments(
        self,
        cursor: Any = None,
        limit: Any = None,
        snapshot: Optional[list[Segment]] = None,
    ) -> tuple[list[Segment], Optional[int]]:
        return page_segments(
            self._segments if snapshot is None else snapshot,
            cursor,
            self.config.default_page_limit if limit is None else limit,
            default_limit=self.config.default_page_limit,
            max_limit=self.config.max_page_limit,
        )

    # ── Topic / summary ────────────────────────────────────────────────

    @property
    def topic(self) -> TopicStabilizer:
        return self._topic

    def apply_summary(self, raw: Any, source: str = "summary_job", ts_ms: Optional[int] = None) -> dict:
        """Clamp an AI summary payload and fold its topic through the stabilizer.

        The reported confidence is blended with the room's own transcript
        coverage over the last two minutes before it votes; the blend is what
        gets stored.

        Returns:
            Dict with the stored summary and the topic shift (or None)
        """
        ts_ms = ts_ms if ts_ms is not None else now_ms()
        clamped = clamp_summary_object(raw)
        with self._lock:
            previous = dict(self.summary)
            candidate = clamped["topic"] or self._topic.current_topic
            coverage = coverage_confidence(self._segments, ts_ms)
            confidence = blend_confidence(coverage, clamped["confidence"])
            committed = self._topic.observe(candidate, confidence)
            final_topic = self._topic.current_topic

            if final_topic and final_topic not in _PLACEHOLDER_TOPICS:
                self._update_topic_timeline(ts_ms, final_topic)

            self.summary = {
                **clamped,
                "topic": final_topic,
                "confidence": confidence,
                "last_updated_ms": ts_ms,
            }
            self.updated_at_ms = ts_ms

            shift = None
            if committed is not None:
                shift = {
                    "ts_ms": ts_ms,
                    "from_topic": previous["topic"],
                    "to_topic": committed,
                    "confidence": confidence,
                    "from_subtopic": previous["subtopic"],
                    "to_subtopic": self.summary["subtopic"],
                    "from_status": previous["status"],
                    "to_status": self.summary["status"],
                    "source": source,
                }
                self._record_topic_change(shift)
                self._emit("topic_committed", {"topic_shift": shift})
            summary = dict(self.summary)
        return {"summary": summary, "topic_shift": shift}

    def _record_topic_change(self, entry: dict) -> None:
        self.topic_history.append(entry)
        overflow = len(self.topic_history) - self.config.topic_history_max
        if overflow > 0:
            del self.topic_history[:overflow]
        self._logger.info("[%s] TOPIC_CHANGE %s", self.code, json.dumps(entry, ensure_ascii=False))

    def _update_topic_timeline(self, ts_ms: int, topic: str) -> None:
        if not self.topic_timeline or ts_ms - self._topic_bucket_start_ms >= TOPIC_BUCKET_MS:
            self._topic_bucket_start_ms = ts_ms
            self.topic_timeline.append(
                {"start_ms": ts_ms, "end_ms": ts_ms, "topic": "", "updated_at_ms": ts_ms}
            )
        bucket = self.topic_timeline[-1]
        bucket["end_ms"] = max(bucket["end_ms"], ts_ms)
        bucket["topic"] = topic
        bucket["updated_at_ms"] = now_ms()

    def get_topic_history(self) -> list[dict]:
        with self._lock:
            return [dict(entry) for entry in self.topic_history]

    def get_topic_timeline(self) -> list[dict]:
        with self._lock:
            return [dict(bucket) for bucket in self.topic_timeline]

    # ── Helpers ────────────────────────────────────────────────────────

    def _emit(self, event_type: str, data: dict) -> None:
        if self._publish is not None:
            self._publish(event_type, self.code, data)

    def to_dict(self) -> dict:
        with self._lock:
            return {
                "code": self.code,
                "created_at_ms": self.created_at_ms,
                "updated_at_ms": self.updated_at_ms,
                "segment_count": len(self._segments),
                "summary": dict(self.summary),
                "topic_stability": self._topic.to_dict(),
                "config": self.config.to_dict(),
            }


class RoomStore:
    """Registry of live rooms plus the event feed observers follow."""

    def __init__(self, config: Optional[RoomConfig] = None) -> None:
        self.config = config or RoomConfig()
        self._lock = threading.RLock()
        self._rooms: dict[str, Room] = {}
        self._events_lock = threading.RLock()
        self._events: list[dict] = []
        self._events_base = 0  # absolute index of self._events[0]
        self._events_condition = threading.Condition(self._events_lock)
        self._logger = logging.getLogger("huddle.rooms")

    def _generate_code(self) -> str:
        for _ in range(10):
            code = secrets.token_hex(3).upper()
            if code not in self._rooms:
                return code
        raise RoomStoreError("Failed to generate unique room code")

    def create_room(self, overrides: Optional[dict] = None, code: Optional[str] = None) -> Room:
        config = self.config.with_overrides(overrides)
        with self._lock:
            if code is None:
                code = self._generate_code()
            elif code in self._rooms:
                raise RoomStoreError(f"Room already exists: {code}")
            room = Room(code, config, publish=self.publish_event)
            self._rooms[code] = room
        self._logger.info("Room created: %s", code)
        self.publish_event("room_created", code)
        return room

    def get_room(self, code: str) -> Optional[Room]:
        with self._lock:
            return self._rooms.get(code)

    def require_room(self, code: str) -> Room:
        room = self.get_room(code)
        if room is None:
            raise RoomNotFound(code)
        return room

    def list_rooms(self) -> list[dict]:
        with self._lock:
            rooms = list(self._rooms.values())
        return sorted((room.to_dict() for room in rooms), key=lambda r: r["created_at_ms"], reverse=True)

    def delete_room(self, code: str) -> bool:
        with self._lock:
            room = self._rooms.pop(code, None)
        if room is None:
            return False
        self._logger.info("Room deleted: %s", code)
        self.publish_event("room_deleted", code)
        return True

    def sweep_expired(self, at_ms: Optional[int] = None) -> list[str]:
        """Drop rooms idle for longer than their TTL; returns the dropped codes."""
        at_ms = at_ms if at_ms is not None else now_ms()
        with self._lock:
            expired = [
                code
                for code, room in self._rooms.items()
                if at_ms - room.updated_at_ms > room.config.room_ttl_ms
            ]
            for code in expired:
                del self._rooms[code]
        for code in expired:
            self._logger.info("Cleaning up expired room: %s", code)
            self.publish_event("room_expired", code)
        return expired

    # ── Events ─────────────────────────────────────────────────────────

    def publish_event(self, event_type: str, room_code: Optional[str], data: Optional[dict] = None) -> None:
        with self._events_condition:
            payload = {
                "type": event_type,
                "room_code": room_code,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }
            if data:
                payload["data"] = data
            self._events.append(payload)
            if len(self._events) > 200:
                self._events_base += len(self._events) - 100
                self._events = self._events[-100:]
            self._events_condition.notify_all()

    def _slice_from(self, cursor: int) -> tuple[list[dict], int]:
        start = max(0, cursor - self._events_base)
        return self._events[start:], self._events_base + len(self._events)

    def get_events_since(self, cursor: int) -> tuple[list[dict], int]:
        with self._events_condition:
            return self._slice_from(cursor)

    def wait_for_events(self, cursor: int, timeout: float = 5.0) -> tuple[list[dict], int]:
        """Block until new events are available or timeout expires.

        Args:
            cursor: Absolute position in the event feed (survives trimming)
            timeout: Max seconds to wait (for heartbeat/keepalive)

        Returns:
            Tuple of (new events since cursor, new cursor position)
        """
        with self._events_condition:
            if cursor < self._events_base + len(self._events):
                return self._slice_from(cursor)
            self._events_condition.wait(timeout=timeout)
            return self._slice_from(cursor)
