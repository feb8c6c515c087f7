"""Versioned JSON payloads for records kept in the key-value store."""
import json
from datetime import UTC, datetime
from typing import Any, Optional

SCHEMA_VERSION = 1


def to_iso(value: Optional[datetime]) -> Optional[str]:
    """Serialize an aware datetime, keeping None."""
    return value.isoformat() if value else None


def as_utc(value: datetime) -> datetime:
    """Attach UTC to a naive datetime; aware values are returned unchanged."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def resolve_now(now: Optional[datetime] = None) -> datetime:
    """The given time as an aware datetime, or the current UTC time."""
    return as_utc(now) if now is not None else datetime.now(UTC)


def from_iso(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO timestamp; naive values are taken to be UTC."""
    if not value:
        return None
    return as_utc(datetime.fromisoformat(value))


def dump_payload(body: dict[str, Any]) -> str:
    """Wrap a record body with the schema version and encode it."""
    return json.dumps({"version": SCHEMA_VERSION, **body}, ensure_ascii=False)


def load_payload(raw: str) -> dict[str, Any]:
    """Decode a payload written by dump_payload.

    Raises:
        ValueError: The payload is not JSON, not an object, or has an
            unsupported version.
    """
    data = json.loads(raw)
    if not isinstance(data, dict):
        raise ValueError("Payload is not a JSON object")
    version = data.get("version")
    if version != SCHEMA_VERSION:
        raise ValueError(f"Unsupported payload version: {version!r}")
    return data
