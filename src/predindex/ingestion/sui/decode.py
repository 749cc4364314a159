"""Sui JSON-RPC payloads -> ObjectSnapshot / ChainEvent / EventPage."""

from __future__ import annotations

from typing import Any

from predindex.errors import MalformedSnapshot
from predindex.models import ChainEvent, EventKind, EventPage, ObjectSnapshot
from predindex.pricing import parse_stakes

_HEX = set("0123456789abcdef")


def normalize_object_id(s: str | None) -> str:
    """Canonicalize a Sui object id: 0x + 64 lowercase hex, left-padded. Non-hex input is returned trimmed."""
    s = (s or "").strip().lower()
    if not s:
        return s
    body = s[2:] if s.startswith("0x") else s
    if not body or len(body) > 64 or not set(body) <= _HEX:
        return s
    return "0x" + body.rjust(64, "0")


def _int_or_none(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return bool(value)


def _option_u64(value: Any) -> int | None:
    """Move Option<u64>: null, a bare (string) number, or {"vec": [...]}."""
    if isinstance(value, dict):
        vec = value.get("vec")
        if isinstance(vec, list) and vec:
            return _int_or_none(vec[0])
        return None
    return _int_or_none(value)


def decode_object(object_id: str, result: dict[str, Any]) -> ObjectSnapshot:
    """Decode a sui_getObject result (showContent) into an ObjectSnapshot."""
    if not isinstance(result, dict):
        raise MalformedSnapshot(f"object {object_id}: unexpected result type")
    if result.get("error"):
        raise MalformedSnapshot(f"object {object_id}: {result['error']}")
    data = result.get("data") or {}
    content = data.get("content") if isinstance(data, dict) else None
    fields = content.get("fields") if isinstance(content, dict) else None
    if not isinstance(fields, dict):
        raise MalformedSnapshot(f"object {object_id}: no move object fields")
    raw_stakes = fields.get("total_stakes")
    stakes = parse_stakes(raw_stakes) if isinstance(raw_stakes, list) else []
    resolved = _bool(fields.get("resolved", False))
    winner = _option_u64(fields.get("winner")) if resolved else None
    return ObjectSnapshot(
        object_id=normalize_object_id(data.get("objectId") or object_id),
        total_stakes=stakes,
        resolved=resolved,
        winner=winner,
    )


def _event_kind(event_type: str) -> EventKind:
    if event_type.endswith("::MarketCreated"):
        return EventKind.MARKET_CREATED
    if event_type.endswith("::BetPlaced"):
        return EventKind.BET_PLACED
    return EventKind.OTHER


def decode_event(raw: dict[str, Any]) -> ChainEvent:
    """Decode one suix_queryEvents entry. Unknown event types decode as EventKind.OTHER."""
    event_type = str(raw.get("type") or "")
    kind = _event_kind(event_type)
    parsed = raw.get("parsedJson")
    if not isinstance(parsed, dict):
        parsed = {}
    market_id: str | None = None
    options_count: int | None = None
    pool_amounts: list[int] | None = None
    if kind is EventKind.MARKET_CREATED:
        market_id = normalize_object_id(parsed.get("id")) or None
        options_count = _int_or_none(parsed.get("options_count"))
    elif kind is EventKind.BET_PLACED:
        market_id = normalize_object_id(parsed.get("market_id")) or None
        amounts = parsed.get("pool_amounts")
        pool_amounts = parse_stakes(amounts) if isinstance(amounts, list) else None
    cursor = raw.get("id") if isinstance(raw.get("id"), dict) else None
    return ChainEvent(
        kind=kind,
        event_type=event_type,
        market_id=market_id,
        options_count=options_count,
        pool_amounts=pool_amounts,
        timestamp_ms=_int_or_none(raw.get("timestampMs")),
        cursor=cursor,
    )


def decode_event_page(result: dict[str, Any]) -> EventPage:
    """Decode a suix_queryEvents page: {data, nextCursor, hasNextPage}."""
    if not isinstance(result, dict):
        raise MalformedSnapshot("event page: unexpected result type")
    data = result.get("data") or []
    events = [decode_event(e) for e in data if isinstance(e, dict)]
    next_cursor = result.get("nextCursor")
    return EventPage(
        events=events,
        next_cursor=next_cursor if isinstance(next_cursor, dict) else None,
        has_more=bool(result.get("hasNextPage", False)),
    )
