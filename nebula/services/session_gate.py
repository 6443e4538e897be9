"""
Session Dedup Gate

Decides whether a browsing session should be counted as a visit.

The browser tab generates a random session id and keeps it for the lifetime
of the tab; the server remembers which of those ids have already been counted.
The flag lives only in process memory and is never written to the database.

Design Decisions:
- Counting logic depends on the SessionState capability (get/set a boolean,
  plus claim/release of an in-progress attempt), not on where the flag is
  stored
- A session is claimed before any await, so concurrent requests from the
  same tab (double-mounted effects, quick reloads) count it at most once
- The flag is set only after the counter increment succeeded; a failed
  attempt releases the claim so the next page load retries. Duplicate counts
  after a partial failure are accepted in exchange for never losing a visit
  behind a transient outage
"""

import threading
from abc import ABC, abstractmethod
from collections import OrderedDict

PENDING = "pending"
COUNTED = "counted"


class SessionState(ABC):
    """Ephemeral per-session boolean: "this session has already been counted"."""

    _claimed = False

    @abstractmethod
    def get(self) -> bool:
        pass

    @abstractmethod
    def set(self, value: bool) -> None:
        pass

    def claim(self) -> bool:
        """
        Reserve the right to count this session.

        Returns False if the session is already counted or another attempt
        holds the claim. Must not await between the check and the claim.
        """
        if self._claimed or self.get():
            return False
        self._claimed = True
        return True

    def release(self) -> None:
        """Give up a claim without counting."""
        self._claimed = False


class MemorySessionStore:
    """
    Bounded in-memory map of session id -> pending/counted.

    When full, the least recently touched session is forgotten, which at
    worst allows that session to be counted again.
    """

    def __init__(self, max_size: int = 100_000):
        self.max_size = max_size
        self._flags: "OrderedDict[str, str]" = OrderedDict()
        self._lock = threading.Lock()

    def get(self, session_id: str) -> bool:
        with self._lock:
            value = self._flags.get(session_id)
            if value is not None:
                self._flags.move_to_end(session_id)
            return value == COUNTED

    def set(self, session_id: str, value: bool) -> None:
        with self._lock:
            if value:
                self._store(session_id, COUNTED)
            else:
                self._flags.pop(session_id, None)

    def claim(self, session_id: str) -> bool:
        """Atomically mark the session pending; False if it is pending or counted."""
        with self._lock:
            if session_id in self._flags:
                self._flags.move_to_end(session_id)
                return False
            self._store(session_id, PENDING)
            return True

    def release(self, session_id: str) -> None:
        """Drop a pending claim; counted sessions stay counted."""
        with self._lock:
            if self._flags.get(session_id) == PENDING:
                del self._flags[session_id]

    def _store(self, session_id: str, value: str) -> None:
        self._flags[session_id] = value
        self._flags.move_to_end(session_id)
        while len(self._flags) > self.max_size:
            self._flags.popitem(last=False)

    def __len__(self) -> int:
        return len(self._flags)

    def state_for(self, session_id: str) -> "MemorySessionState":
        """Get the SessionState view of one session."""
        return MemorySessionState(self, session_id)


class MemorySessionState(SessionState):
    """SessionState backed by a MemorySessionStore entry."""

    def __init__(self, store: MemorySessionStore, session_id: str):
        self.store = store
        self.session_id = session_id

    def get(self) -> bool:
        return self.store.get(self.session_id)

    def set(self, value: bool) -> None:
        self.store.set(self.session_id, value)

    def claim(self) -> bool:
        return self.store.claim(self.session_id)

    def release(self) -> None:
        self.store.release(self.session_id)


class SessionDedupGate:
    """Per-session idempotency check around counting a visit."""

    def __init__(self, state: SessionState):
        self.state = state

    def should_count(self) -> bool:
        """True until the session has been marked as counted."""
        return not self.state.get()

    def try_claim(self) -> bool:
        """Check and reserve in one step; only the winner goes on to count."""
        return self.state.claim()

    def release(self) -> None:
        self.state.release()

    def mark_counted(self) -> None:
        self.state.set(True)
        self.state.release()
