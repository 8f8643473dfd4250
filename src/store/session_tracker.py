"""Session lifecycle tracking for multi-step operations.

Sessions are stored in the session namespace under their own id. Callers
move a session forward by passing the reserved ``status`` key in update
data; terminal states accept no further transitions.
"""

from __future__ import annotations

from typing import Any, Mapping, cast
from uuid import uuid4

from core.errors import SessionNotFoundError, TempoSessionError
from core.logging_config import get_logger
from core.types import Session, SessionState
from store.record_payload import to_json_safe
from store.record_store import RecordStore

_LOGGER = get_logger(__name__)

STATUS_KEY = "status"
ALLOWED_STATE_TRANSITIONS: dict[SessionState, tuple[SessionState, ...]] = {
    "active": ("completed", "failed"),
    "completed": (),
    "failed": (),
}


def validate_transition(current: SessionState, next_state: str) -> SessionState:
    """Validate one lifecycle transition against allowed state machine edges."""
    allowed_states = ALLOWED_STATE_TRANSITIONS[current]
    if next_state not in allowed_states:
        raise TempoSessionError(
            f"Invalid session state transition {current!r} -> {next_state!r}. "
            f"Allowed: {', '.join(allowed_states) or 'none'}."
        )
    return cast(SessionState, next_state)


class SessionTracker:
    """Create, update, and read operation sessions."""

    def __init__(self, store: RecordStore) -> None:
        self._store = store

    def create_session(
        self,
        session_type: str,
        initial_data: Mapping[str, Any] | None = None,
    ) -> str:
        """Create an active session.

        Args:
            session_type: Free-form operation label.
            initial_data: Optional starting data.

        Returns:
            New session id.
        """
        session_id = f"session-{uuid4().hex}"
        timestamp = self._store.clock.now().isoformat()
        session = Session(
            session_id=session_id,
            session_type=session_type,
            state="active",
            data=to_json_safe(dict(initial_data or {})),
            created_at=timestamp,
            last_updated_at=timestamp,
        )
        self._store.put(
            "session",
            session_id,
            session,
            {"session_type": session_type},
        )
        _LOGGER.info("session_created", session_id=session_id, session_type=session_type)
        return session_id

    def get_session(self, session_id: str) -> Session | None:
        """Return a live session, or None when missing or expired."""
        record = self._store.get("session", session_id)
        if record is None:
            return None
        return _session_from_payload(record.payload, session_id)

    def update_session(self, session_id: str, partial_data: Mapping[str, Any]) -> Session:
        """Merge data into a session and optionally move its state.

        Args:
            session_id: Target session id.
            partial_data: Keys shallow-merged into session data. A ``status``
                key requests a state transition.

        Returns:
            Updated session.

        Raises:
            SessionNotFoundError: If the session does not exist or expired.
            TempoSessionError: If the requested transition is not allowed.
        """
        record = self._store.get("session", session_id)
        if record is None:
            raise SessionNotFoundError(
                f"Session '{session_id}' not found. It may have expired; "
                "create a new session to continue."
            )
        session = _session_from_payload(record.payload, session_id)
        updates = dict(partial_data)
        next_state = session.state
        if STATUS_KEY in updates:
            next_state = validate_transition(session.state, str(updates[STATUS_KEY]))
        updated = Session(
            session_id=session.session_id,
            session_type=session.session_type,
            state=next_state,
            data={**dict(session.data), **to_json_safe(updates)},
            created_at=session.created_at,
            last_updated_at=self._store.clock.now().isoformat(),
        )
        self._store.rewrite(record, updated)
        if next_state != session.state:
            _LOGGER.info(
                "session_transitioned",
                session_id=session_id,
                from_state=session.state,
                to_state=next_state,
            )
        return updated

    def complete_session(self, session_id: str, results: Any) -> Session:
        """Mark a session completed and attach its results."""
        return self.update_session(session_id, {STATUS_KEY: "completed", "results": results})

    def fail_session(self, session_id: str, error_detail: str) -> Session:
        """Mark a session failed and attach the error detail."""
        return self.update_session(session_id, {STATUS_KEY: "failed", "error": error_detail})


def _session_from_payload(payload: object, session_id: str) -> Session:
    if not isinstance(payload, dict):
        raise TempoSessionError(
            f"Invalid session payload for '{session_id}': expected object. "
            "Delete the corrupted session record."
        )
    state = payload.get("state")
    if state not in ALLOWED_STATE_TRANSITIONS:
        raise TempoSessionError(
            f"Invalid session payload for '{session_id}': unknown state {state!r}."
        )
    data = payload.get("data") or {}
    return Session(
        session_id=str(payload.get("session_id", session_id)),
        session_type=str(payload.get("session_type", "")),
        state=cast(SessionState, state),
        data=dict(data) if isinstance(data, dict) else {},
        created_at=str(payload.get("created_at", "")),
        last_updated_at=str(payload.get("last_updated_at", "")),
    )
