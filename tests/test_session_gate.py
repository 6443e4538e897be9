"""Tests for the per-session dedup gate and its in-memory store."""

from nebula.services.session_gate import MemorySessionStore, SessionDedupGate, SessionState


class DictSessionState(SessionState):
    """Minimal SessionState, showing the gate only needs get/set (claim/release have defaults)."""

    def __init__(self):
        self.value = False

    def get(self) -> bool:
        return self.value

    def set(self, value: bool) -> None:
        self.value = value


class TestSessionDedupGate:

    def test_new_session_should_count(self):
        gate = SessionDedupGate(DictSessionState())

        assert gate.should_count() is True

    def test_false_after_mark_counted(self):
        gate = SessionDedupGate(DictSessionState())
        assert gate.should_count() is True

        gate.mark_counted()

        assert gate.should_count() is False
        assert gate.should_count() is False

    def test_unmarked_session_keeps_retrying(self):
        # A failed attempt never calls mark_counted, so the next load retries
        gate = SessionDedupGate(DictSessionState())

        assert gate.should_count() is True
        assert gate.should_count() is True

    def test_only_one_claim_wins_until_released(self):
        gate = SessionDedupGate(DictSessionState())

        assert gate.try_claim() is True
        assert gate.try_claim() is False

        gate.release()

        assert gate.try_claim() is True

    def test_counted_session_cannot_be_claimed(self):
        gate = SessionDedupGate(DictSessionState())
        assert gate.try_claim() is True

        gate.mark_counted()

        assert gate.try_claim() is False
        assert gate.should_count() is False


class TestMemorySessionStore:

    def test_sessions_are_independent(self):
        store = MemorySessionStore()
        SessionDedupGate(store.state_for("tab-aaaaaaaa")).mark_counted()

        assert SessionDedupGate(store.state_for("tab-aaaaaaaa")).should_count() is False
        assert SessionDedupGate(store.state_for("tab-bbbbbbbb")).should_count() is True

    def test_oldest_session_evicted_when_full(self):
        store = MemorySessionStore(max_size=2)
        store.set("first", True)
        store.set("second", True)
        store.get("first")  # touch, so "second" becomes the oldest
        store.set("third", True)

        assert len(store) == 2
        assert store.get("first") is True
        assert store.get("second") is False
        assert store.get("third") is True

    def test_claim_is_shared_across_views_of_one_session(self):
        store = MemorySessionStore()

        assert store.state_for("tab-aaaaaaaa").claim() is True
        assert store.state_for("tab-aaaaaaaa").claim() is False
        assert store.state_for("tab-bbbbbbbb").claim() is True
        # Pending is not counted
        assert store.get("tab-aaaaaaaa") is False

    def test_release_frees_a_pending_claim_only(self):
        store = MemorySessionStore()
        store.claim("pending-tab")
        store.claim("counted-tab")
        store.set("counted-tab", True)

        store.release("pending-tab")
        store.release("counted-tab")

        assert store.claim("pending-tab") is True
        assert store.get("counted-tab") is True
        assert store.claim("counted-tab") is False
