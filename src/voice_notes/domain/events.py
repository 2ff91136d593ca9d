import json
import logging
from dataclasses import dataclass, field
from time import time

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DomainEvent:
    timestamp: float = field(default_factory=time, compare=False)


@dataclass(frozen=True)
class Begin(DomainEvent):
    session_id: str = ""
    expires_at: float | None = None


@dataclass(frozen=True)
class Turn(DomainEvent):
    text: str = ""
    is_final: bool = False


@dataclass(frozen=True)
class Termination(DomainEvent):
    audio_duration_seconds: float | None = None
    session_duration_seconds: float | None = None


@dataclass(frozen=True)
class ChannelClosed(DomainEvent):
    code: int | None = None
    reason: str = ""


@dataclass(frozen=True)
class ChannelError(DomainEvent):
    error: BaseException | None = None


@dataclass(frozen=True)
class AudioSourceError(DomainEvent):
    error: BaseException | None = None


@dataclass(frozen=True)
class ShutdownRequested(DomainEvent):
    reason: str = ""


@dataclass(frozen=True)
class Fault(DomainEvent):
    error: BaseException | None = None


TranscriptionEvent = Begin | Turn | Termination
SessionEvent = TranscriptionEvent | ChannelClosed | ChannelError | AudioSourceError | ShutdownRequested | Fault


class MalformedEventError(ValueError):
    pass


def _optional_number(data: dict, key: str) -> float | None:
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MalformedEventError(f"{key} must be a number, got {value!r}")
    return value


def _decode_begin(data: dict) -> Begin:
    session_id = data.get("id", "")
    if not isinstance(session_id, str):
        raise MalformedEventError(f"id must be a string, got {session_id!r}")
    return Begin(session_id=session_id, expires_at=_optional_number(data, "expires_at"))


def _decode_turn(data: dict) -> Turn:
    text = data.get("transcript") or ""
    if not isinstance(text, str):
        raise MalformedEventError(f"transcript must be a string, got {text!r}")
    return Turn(text=text, is_final=bool(data.get("turn_is_formatted", False)))


def _decode_termination(data: dict) -> Termination:
    return Termination(
        audio_duration_seconds=_optional_number(data, "audio_duration_seconds"),
        session_duration_seconds=_optional_number(data, "session_duration_seconds"),
    )


_DECODERS = {
    "Begin": _decode_begin,
    "Turn": _decode_turn,
    "Termination": _decode_termination,
}


def decode_event(message: str | bytes) -> TranscriptionEvent | None:
    try:
        data = json.loads(message)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise MalformedEventError(f"invalid JSON: {exc}") from exc
    except RecursionError as exc:
        raise MalformedEventError("JSON nested too deeply") from exc

    if not isinstance(data, dict):
        raise MalformedEventError(f"expected a JSON object, got {type(data).__name__}")

    message_type = data.get("type")
    decoder = _DECODERS.get(message_type) if isinstance(message_type, str) else None
    if decoder is None:
        return None
    return decoder(data)


def parse_event(message: str | bytes) -> TranscriptionEvent | None:
    try:
        event = decode_event(message)
    except MalformedEventError as exc:
        logger.warning("Dropping malformed message (%s): %r", exc, message[:200])
        return None

    if event is None:
        logger.debug("Ignoring message with unknown type: %r", message)
    return event
