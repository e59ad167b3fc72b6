# context.py
# Session-keyed, validated, in-memory store for shared conversation state.
#
# Every write is validated as a whole batch before anything is applied, so a
# rejected write never leaves a session half-updated. Each session owns its
# own lock; the store lock only guards the session table.

import copy
import logging
import re
import threading
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

from swarm_relay.errors import ContextValidationError
from swarm_relay.models import Message

KEY_PATTERN = re.compile(r"^[A-Za-z0-9_]+$")
MAX_STRING_LENGTH = 10_000
MAX_BATCH_SIZE = 100


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def _validate_value(key: str, value: Any, path: str) -> None:
    if isinstance(value, str):
        if len(value) > MAX_STRING_LENGTH:
            raise ContextValidationError(
                f"Context string value too long for key: {key} ({path}: {len(value)} characters)"
            )
        return

    # bool is a subclass of int, both are allowed scalars.
    if isinstance(value, (int, float)):
        return

    if isinstance(value, Mapping):
        for nested_key, nested_value in value.items():
            if not isinstance(nested_key, str):
                raise ContextValidationError(
                    f"Invalid context value type for key: {key} (non-string mapping key at {path})"
                )
            _validate_value(key, nested_value, f"{path}.{nested_key}")
        return

    if isinstance(value, (list, tuple)):
        for index, item in enumerate(value):
            _validate_value(key, item, f"{path}[{index}]")
        return

    raise ContextValidationError(
        f"Invalid context value type for key: {key} ({path} is {type(value).__name__})"
    )


def validate_updates(updates: Mapping[str, Any]) -> None:
    """Raise ContextValidationError if any entry of the batch breaks a store rule."""
    if not isinstance(updates, Mapping):
        raise ContextValidationError(f"Context updates must be a mapping, got {type(updates).__name__}")

    if len(updates) > MAX_BATCH_SIZE:
        raise ContextValidationError(f"Context update too large: {len(updates)} entries")

    for key, value in updates.items():
        if not isinstance(key, str) or not KEY_PATTERN.match(key):
            raise ContextValidationError(f"Invalid context key format: {key!r}")
        _validate_value(key, value, key)


def _freeze(value: Any) -> Any:
    """Detach a validated value from caller-owned containers."""
    if isinstance(value, Mapping):
        return {k: _freeze(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_freeze(item) for item in value]
    return value


# ---------------------------------------------------------------------------
# ExecutionContext
# ---------------------------------------------------------------------------


class ExecutionContext:
    """
    State of one conversation session.

    `variables` is a read-only view of the variables as of the call; writes go
    through ContextStore.update.
    `history` only ever grows.
    """

    def __init__(self, session_id: str, variables: dict[str, Any] | None = None) -> None:
        self.session_id = session_id
        self._variables: dict[str, Any] = dict(variables or {})
        self._history: list[Message] = []
        self._lock = threading.Lock()

    @property
    def variables(self) -> Mapping[str, Any]:
        return MappingProxyType(self._variables)

    @property
    def history(self) -> tuple[Message, ...]:
        with self._lock:
            return tuple(self._history)

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            return copy.deepcopy(self._variables)

    def append(self, *messages: Message) -> None:
        with self._lock:
            self._history.extend(messages)

    # Writes publish a new dict and never mutate a published one, so a view
    # handed out by `variables` can be iterated while other threads update.
    def _apply(self, updates: Mapping[str, Any]) -> None:
        with self._lock:
            merged = dict(self._variables)
            for key, value in updates.items():
                merged[key] = _freeze(value)
            self._variables = merged

    def _clear(self) -> None:
        with self._lock:
            self._variables = {}

    def __repr__(self) -> str:
        return (
            f"ExecutionContext(session_id={self.session_id!r}, "
            f"variables={len(self._variables)}, history={len(self._history)})"
        )


# ---------------------------------------------------------------------------
# ContextStore
# ---------------------------------------------------------------------------


class ContextStore:
    """
    Memory-resident store of ExecutionContexts keyed by an opaque session id.

    Example:
        store = ContextStore()
        ctx = store.initialize("session-1", {"user_name": "Ada"})
        store.update("session-1", {"temperature_unit": "celsius"})
        store.get("session-1").variables["temperature_unit"]
    """

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger(__name__)
        self._sessions: dict[str, ExecutionContext] = {}
        self._lock = threading.Lock()

    def initialize(self, session_id: str, initial_variables: Mapping[str, Any] | None = None) -> ExecutionContext:
        """Create (or replace) the session with validated initial variables."""
        initial = initial_variables if initial_variables is not None else {}
        validate_updates(initial)

        context = ExecutionContext(session_id)
        context._apply(initial)
        with self._lock:
            replaced = session_id in self._sessions
            self._sessions[session_id] = context

        self._logger.debug(
            "Initialized context for session %s with %d variables%s",
            session_id,
            len(initial),
            " (replaced existing session)" if replaced else "",
        )
        return context

    def get(self, session_id: str) -> ExecutionContext:
        with self._lock:
            context = self._sessions.get(session_id)
        if context is None:
            raise ContextValidationError(f"Context not found for session {session_id}")
        return context

    def update(self, session_id: str, updates: Mapping[str, Any]) -> None:
        """Validate then apply a batch; last write wins per key."""
        context = self.get(session_id)
        validate_updates(updates)
        context._apply(updates)
        self._logger.debug("Updated context for session %s with %d variables", session_id, len(updates))

    def append_history(self, session_id: str, *messages: Message) -> None:
        self.get(session_id).append(*messages)

    def clear(self, session_id: str) -> None:
        """Empty the session's variables; its history is kept."""
        with self._lock:
            context = self._sessions.get(session_id)
        if context is not None:
            context._clear()
            self._logger.debug("Cleared context for session %s", session_id)

    def remove(self, session_id: str) -> None:
        with self._lock:
            removed = self._sessions.pop(session_id, None)
        if removed is not None:
            self._logger.debug("Removed context for session %s", session_id)

    def sessions(self) -> list[str]:
        with self._lock:
            return list(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        with self._lock:
            return session_id in self._sessions
