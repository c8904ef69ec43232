"""Tests for the placeholder connection."""

from sails_client.placeholder import PlaceholderConnection

from .conftest import FakeConnection


def _live():
    return FakeConnection("ws://x", {})


class TestPlaceholderConnection:
    def test_on_is_chainable(self):
        p = PlaceholderConnection()
        assert p.on("a", print).on("b", print) is p

    def test_not_usable(self):
        p = PlaceholderConnection()
        assert p.is_usable() is False
        assert p.identifier is None
        assert not hasattr(p, "emit")

    def test_promote_replays_bindings_in_order(self):
        def h1(*a):
            pass

        def h2(*a):
            pass

        def h3(*a):
            pass

        p = PlaceholderConnection()
        p.on("user", h1).on("message", h2).on("user", h3)
        live = _live()
        assert p.promote(live) is live
        assert live.listeners["user"] == [h1, h3]
        assert live.listeners["message"] == [h2]

    def test_promote_marks_promoted(self):
        p = PlaceholderConnection()
        assert p.promoted is False
        p.promote(_live())
        assert p.promoted is True

    def test_bindings_after_promotion_are_lost(self, caplog):
        p = PlaceholderConnection()
        live = _live()
        p.promote(live)
        with caplog.at_level("WARNING", logger="sails_client"):
            assert p.on("late", print) is p
        assert "late" not in live.listeners
        assert "late" in caplog.text
