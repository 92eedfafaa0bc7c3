"""Tests for HistoryStore."""

from chatbot.store import HistoryStore, Role, Turn


class TestHistoryStore:
    def setup_method(self):
        self.store = HistoryStore()

    def test_unseen_conversation_is_empty(self):
        assert self.store.get("never-seen") == []
        assert "never-seen" not in self.store

    def test_append_keeps_order(self):
        self.store.append("a", Role.USER, "one")
        self.store.append("a", Role.ASSISTANT, "two")
        self.store.append("a", Role.USER, "three")

        assert self.store.get("a") == [
            Turn(Role.USER, "one"),
            Turn(Role.ASSISTANT, "two"),
            Turn(Role.USER, "three"),
        ]

    def test_accepts_role_strings(self):
        self.store.append("a", "assistant", "hi")
        assert self.store.get("a")[0].role is Role.ASSISTANT

    def test_conversations_are_isolated(self):
        self.store.append("a", Role.USER, "for a")
        self.store.append("b", Role.USER, "for b")

        assert [t.text for t in self.store.get("a")] == ["for a"]
        assert [t.text for t in self.store.get("b")] == ["for b"]

    def test_get_returns_copy(self):
        self.store.append("a", Role.USER, "hello")
        history = self.store.get("a")
        history.append(Turn(Role.ASSISTANT, "injected"))
        history.clear()

        assert self.store.get("a") == [Turn(Role.USER, "hello")]

    def test_clear_removes_conversation(self):
        for i in range(4):
            self.store.append("a", Role.USER if i % 2 == 0 else Role.ASSISTANT, f"turn {i}")

        self.store.clear("a")

        assert self.store.get("a") == []
        assert "a" not in self.store
        assert len(self.store) == 0

        self.store.append("a", Role.USER, "fresh")
        assert self.store.get("a") == [Turn(Role.USER, "fresh")]

    def test_clear_is_idempotent(self):
        self.store.clear("missing")
        self.store.clear("missing")
        assert len(self.store) == 0

    def test_read_does_not_create_entry(self):
        self.store.get("ghost")
        assert len(self.store) == 0
