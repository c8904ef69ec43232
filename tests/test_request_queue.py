"""Tests for the per-connection request queue."""

from sails_client.request_queue import RequestQueue
from sails_client.types import PendingRequest, RequestMethod


def _req(url):
    return PendingRequest(method=RequestMethod.GET, url=url)


class TestRequestQueue:
    def test_empty_drain(self):
        q = RequestQueue()
        assert q.drain("nope") == []
        assert q.drain(None) == []

    def test_fifo(self):
        q = RequestQueue()
        reqs = [_req(f"/r{i}") for i in range(20)]
        for r in reqs:
            q.enqueue("a", r)
        assert q.drain("a") == reqs

    def test_drain_removes_everything(self):
        q = RequestQueue()
        q.enqueue("a", _req("/1"))
        q.drain("a")
        assert q.drain("a") == []
        assert q.size("a") == 0
        assert len(q) == 0

    def test_queues_are_independent(self):
        q = RequestQueue()
        a1, b1, a2 = _req("/a1"), _req("/b1"), _req("/a2")
        q.enqueue("a", a1)
        q.enqueue("b", b1)
        q.enqueue("a", a2)
        assert q.size("a") == 2
        assert q.size("b") == 1
        assert len(q) == 3
        assert q.drain("a") == [a1, a2]
        assert q.drain("b") == [b1]

    def test_none_key(self):
        q = RequestQueue()
        r = _req("/x")
        q.enqueue(None, r)
        assert q.size() == 1
        assert q.identifiers() == [None]
        assert q.drain(None) == [r]

    def test_stats(self):
        q = RequestQueue()
        q.enqueue("a", _req("/1"))
        q.enqueue(None, _req("/2"))
        stats = q.get_stats()
        assert stats["size"] == 2
        assert stats["queues"] == {"a": 1, "None": 1}
