"""Map Vapi log and call payloads onto :class:`CanonicalCallRecord`.

Vapi returns two shapes for the same call. Entries from ``GET /logs`` nest the
interesting parts under ``requestBody`` and ``responseBody``; entries from
``GET /call`` and webhook deliveries are flat. Field lookups go through
``FIELD_ALIASES`` for both shapes: the first path that yields a non-null value
wins, in the order listed.

Normalization never raises. A value that is missing or has the wrong type
degrades to ``None`` and is reported in ``NormalizationResult.missing_fields``.
"""

import logging
import math
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, Optional, Sequence, Tuple

from callsync.schemas import CanonicalCallRecord, NormalizationResult, PayloadVariant

logger = logging.getLogger(__name__)

Path = Tuple[str, ...]

FIELD_ALIASES: dict[str, Sequence[Path]] = {
    "id": (("callId",), ("id",)),
    "assistant_id": (("assistantId",), ("parentId",)),
    "type": (("type",),),
    "status": (("status",),),
    "ended_reason": (("endedReason",),),
    "start_time": (
        ("startedAt",),
        ("startTime",),
        ("requestStartedAt",),
        ("createdAt",),
        ("requestBody", "startedAt"),
    ),
    "end_time": (
        ("endedAt",),
        ("endTime",),
        ("requestFinishedAt",),
        ("responseBody", "endedAt"),
    ),
    "from_number": (
        ("customer", "number"),
        ("from",),
        ("requestBody", "customer", "number"),
    ),
    "to_number": (
        ("to",),
        ("requestBody", "to"),
        ("phoneNumber", "number"),
    ),
    "recording_url": (
        ("recordingUrl",),
        ("responseBody", "recordingUrl"),
        ("media", "recordingUrl"),
    ),
    "transcript": (
        ("transcript",),
        ("responseBody", "transcript"),
        ("analysis", "transcript"),
    ),
}

OPTIONAL_FIELDS = (
    "type",
    "status",
    "ended_reason",
    "from_number",
    "to_number",
    "start_time",
    "end_time",
    "duration_seconds",
    "recording_url",
    "transcript",
)

LOG_MARKERS = ("requestBody", "responseBody", "callId", "requestStartedAt")


def dig(payload: Any, path: Path) -> Any:
    value = payload
    for key in path:
        if not isinstance(value, Mapping):
            return None
        value = value.get(key)
    return value


def first_present(payload: Any, paths: Sequence[Path]) -> Any:
    for path in paths:
        value = dig(payload, path)
        if value is not None:
            return value
    return None


def detect_variant(payload: Any) -> PayloadVariant:
    if isinstance(payload, Mapping) and any(marker in payload for marker in LOG_MARKERS):
        return PayloadVariant.LOG
    return PayloadVariant.CALL


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 string, epoch milliseconds or datetime into UTC."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)):
        if not math.isfinite(value):
            return None
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str):
        cleaned = value.strip()
        if not cleaned:
            return None
        try:
            parsed = datetime.fromisoformat(cleaned.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    try:
        return parsed.astimezone(timezone.utc)
    except (OverflowError, ValueError):
        # offsets can push the first/last representable day out of range
        return None


def _text(value: Any) -> Optional[str]:
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return None


def _identifier(payload: Any) -> Optional[str]:
    # falsy ids (empty string, 0) are skipped, not just None
    for path in FIELD_ALIASES["id"]:
        value = _text(dig(payload, path))
        if value:
            return value
    return None


def derive_duration(
    explicit: Any, start: Optional[datetime], end: Optional[datetime]
) -> Optional[int]:
    if isinstance(explicit, (int, float)) and not isinstance(explicit, bool):
        if not math.isfinite(explicit):
            return None
        return max(0, math.floor(explicit))
    if start is not None and end is not None:
        return max(0, math.floor((end - start).total_seconds()))
    return None


def normalize_payload(payload: Any, assistant_id_fallback: str) -> NormalizationResult:
    source = payload if isinstance(payload, Mapping) else {}
    variant = detect_variant(source)

    def text_field(name: str) -> Optional[str]:
        return _text(first_present(source, FIELD_ALIASES[name]))

    start_time = parse_timestamp(first_present(source, FIELD_ALIASES["start_time"]))
    end_time = parse_timestamp(first_present(source, FIELD_ALIASES["end_time"]))

    values = {
        "id": _identifier(source),
        "assistant_id": text_field("assistant_id") or assistant_id_fallback or "",
        "type": text_field("type"),
        "status": text_field("status"),
        "ended_reason": text_field("ended_reason"),
        "from_number": text_field("from_number"),
        "to_number": text_field("to_number"),
        "start_time": start_time,
        "end_time": end_time,
        "call_date": start_time,
        "duration_seconds": derive_duration(source.get("durationSeconds"), start_time, end_time),
        "recording_url": text_field("recording_url"),
        "transcript": text_field("transcript"),
        "raw": dict(source),
    }
    missing = [name for name in OPTIONAL_FIELDS if values[name] is None]
    if values["id"] is None:
        missing.insert(0, "id")
    if missing:
        logger.debug("Call %s (%s) missing fields: %s", values["id"], variant.value, missing)
    return NormalizationResult(
        record=CanonicalCallRecord(**values),
        variant=variant,
        missing_fields=missing,
    )
