from enum import Enum, auto


class SessionState(Enum):
    IDLE = auto()
    CONNECTING = auto()
    STREAMING = auto()
    FINALIZING = auto()
    CLOSED = auto()


VALID_TRANSITIONS: dict[SessionState, set[SessionState]] = {
    SessionState.IDLE: {SessionState.CONNECTING, SessionState.FINALIZING},
    SessionState.CONNECTING: {SessionState.STREAMING, SessionState.FINALIZING},
    SessionState.STREAMING: {SessionState.FINALIZING},
    SessionState.FINALIZING: {SessionState.CLOSED},
    SessionState.CLOSED: set(),
}


class InvalidTransitionError(Exception):
    pass


def validate_transition(current: SessionState, target: SessionState) -> None:
    if target not in VALID_TRANSITIONS.get(current, set()):
        raise InvalidTransitionError(f"Cannot transition from {current.name} to {target.name}")
