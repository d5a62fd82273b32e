"""Size limits for AI-generated text before it is stored or broadcast."""

from __future__ import annotations

import math
from typing import Any

ELLIPSIS = "..."


def clamp_text(text: Any, max_chars: int) -> str:
    """Cut ``text`` to ``max_chars`` and mark the cut with an ellipsis.

    The result can be up to three characters longer than ``max_chars``.
    """
    if not text:
        return ""
    s = str(text)
    if not max_chars or len(s) <= max_chars:
        return s
    return s[: max(0, max_chars)].rstrip() + ELLIPSIS


def clamp_list(items: Any, max_items: int, max_item_chars: int = 120) -> list[str]:
    if not isinstance(items, (list, tuple)):
        return []
    out: list[str] = []
    for item in items:
        if len(out) >= max_items:
            break
        value = clamp_text(str(item if item is not None else "").strip(), max_item_chars)
        if value:
            out.append(value)
    return out


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return isinstance(value, int) or math.isfinite(value)


def clamp_summary_object(raw: Any) -> dict:
    """
    Normalize a summary payload into a fixed shape with bounded fields.

    Missing or malformed fields fall back to defaults instead of None.
    """
    obj = raw if isinstance(raw, dict) else {}
    return {
        "topic": clamp_text(obj.get("topic") or "", 60),
        "subtopic": clamp_text(obj.get("subtopic") or "", 80),
        "status": obj.get("status") or "Deciding",
        "rolling_summary": clamp_text(obj.get("rolling_summary") or "", 200),
        "decisions": clamp_list(obj.get("decisions") or [], 5, 140),
        "next_steps": clamp_list(obj.get("next_steps") or [], 5, 140),
        "confidence": obj["confidence"] if _is_number(obj.get("confidence")) else 0.5,
    }
