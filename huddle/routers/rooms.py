import json
import logging
import re
import time
from typing import Any, Optional

from fastapi import APIRouter, Body, HTTPException, Query
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from huddle.services.room_store import Room, RoomNotFound, RoomStore, RoomStoreError
from huddle.services.segmenter import Utterance

_CODE_RE = re.compile(r"^[0-9A-F]{6}$")


class CreateRoomRequest(BaseModel):
    overrides: dict[str, Any] = Field(default_factory=dict, description="Per-room threshold overrides")


class UtteranceRequest(BaseModel):
    speaker: Optional[str] = None
    text: str = ""
    t_end_ms: Optional[float] = None
    t_start_ms: Optional[float] = None
    source_client_id: Optional[str] = None


def create_rooms_router(room_store: RoomStore) -> APIRouter:
    router = APIRouter()
    logger = logging.getLogger("huddle.api.rooms")

    def _room(code: str) -> Room:
        normalized = (code or "").strip().upper()
        if not _CODE_RE.match(normalized):
            raise HTTPException(status_code=400, detail="Invalid room code")
        try:
            return room_store.require_room(normalized)
        except RoomNotFound as exc:
            raise HTTPException(status_code=404, detail="Room not found") from exc

    @router.post("/api/rooms")
    def create_room(payload: Optional[CreateRoomRequest] = None) -> dict:
        overrides = payload.overrides if payload else {}
        try:
            room = room_store.create_room(overrides)
        except RoomStoreError as exc:
            logger.warning("Room creation failed: %s", exc)
            raise HTTPException(status_code=503, detail=str(exc)) from exc
        return room.to_dict()

    @router.get("/api/rooms")
    def list_rooms() -> list[dict]:
        return room_store.list_rooms()

    @router.get("/api/rooms/events")
    def room_events() -> StreamingResponse:
        logger.info("Room events SSE connected")

        def event_stream():
            _, cursor = room_store.get_events_since(0)
            while True:
                events, cursor = room_store.wait_for_events(cursor, timeout=5.0)
                for event in events:
                    yield f"data: {json.dumps(event)}\n\n"
                if not events:
                    yield "data: {\"type\":\"heartbeat\"}\n\n"

        return StreamingResponse(event_stream(), media_type="text/event-stream")

    @router.get("/api/rooms/{code}")
    def get_room(code: str) -> dict:
        return _room(code).to_dict()

    @router.delete("/api/rooms/{code}")
    def delete_room(code: str) -> dict:
        room = _room(code)
        room_store.delete_room(room.code)
        return {"status": "deleted", "code": room.code}

    @router.post("/api/rooms/{code}/utterances")
    def add_utterance(code: str, payload: UtteranceRequest) -> dict:
        room = _room(code)
        utterance = Utterance.from_dict(
            {
                "speaker": payload.speaker,
                "text": payload.text,
                "t_end_ms": payload.t_end_ms,
                "t_start_ms": payload.t_start_ms,
                "source_client_id": payload.source_client_id,
            }
        )
        start_time = time.perf_counter()
        try:
            event = room.add_utterance(utterance)
        except Exception as exc:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.exception("[%s] add_utterance error in %.2f ms: %s", room.code, duration_ms, exc)
            raise HTTPException(status_code=500, detail="Internal Server Error") from exc
        return {"event": event.to_dict() if event else None}

    @router.get("/api/rooms/{code}/segments")
    def page_segments(
        code: str,
        cursor: Optional[str] = Query(None, description="Exclusive end index from a previous page"),
        limit: Optional[str] = Query(None, description="Page size (1-300)"),
    ) -> dict:
        room = _room(code)
        segments = room.segments
        items, next_cursor = room.page_segments(cursor, limit, snapshot=segments)
        return {
            "segments": [segment.to_dict() for segment in items],
            "next_cursor": next_cursor,
            "total": len(segments),
        }

    @router.post("/api/rooms/{code}/summary")
    def apply_summary(code: str, payload: dict[str, Any] = Body(...)) -> dict:
        room = _room(code)
        logger.debug("[%s] summary received: keys=%s", room.code, sorted(payload.keys()))
        try:
            return room.apply_summary(payload, source="api")
        except Exception as exc:
            logger.exception("[%s] apply_summary error: %s", room.code, exc)
            raise HTTPException(status_code=500, detail="Internal Server Error") from exc

    @router.get("/api/rooms/{code}/topic-history")
    def topic_history(code: str) -> dict:
        room = _room(code)
        return {
            "room_code": room.code,
            "max": room.config.topic_history_max,
            "history": room.get_topic_history(),
        }

    @router.get("/api/rooms/{code}/topic-timeline")
    def topic_timeline(code: str) -> dict:
        room = _room(code)
        return {"room_code": room.code, "timeline": room.get_topic_timeline()}

    return router
