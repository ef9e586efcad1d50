import asyncio

import pytest

from quizbot.events import EventBroadcaster, SessionEvent


def test_event_wire_form():
    e = SessionEvent(kind="info", session_id="5", message="hello")
    d = e.to_dict()
    assert d["type"] == "info"
    assert d["message"] == "hello"
    assert d["sessionId"] == "5"
    assert "timestamp" in d

    p = SessionEvent(kind="progress", session_id="5", payload={"current": 1, "total": 2})
    d = p.to_dict()
    assert d["current"] == 1 and d["total"] == 2
    assert "message" not in d


def test_unknown_kind_rejected():
    with pytest.raises(ValueError):
        SessionEvent(kind="debug")


def test_publish_fans_out_to_current_observers_only():
    bc = EventBroadcaster()
    first = bc.subscribe()
    second = bc.subscribe()
    assert bc.publish(SessionEvent(kind="info", message="one")) == 2

    late = bc.subscribe()
    bc.unsubscribe(second)
    assert bc.publish(SessionEvent(kind="info", message="two")) == 2

    assert [first.get_nowait().message for _ in range(2)] == ["one", "two"]
    assert second.get_nowait().message == "one"
    assert second.empty()
    # no backlog for late observers
    assert late.get_nowait().message == "two"
    assert late.empty()


def test_full_queue_drops_without_error():
    bc = EventBroadcaster(queue_size=1)
    q = bc.subscribe()
    assert bc.publish(SessionEvent(kind="info", message="a")) == 1
    assert bc.publish(SessionEvent(kind="info", message="b")) == 0
    assert q.get_nowait().message == "a"


def test_publish_without_observers():
    assert EventBroadcaster().publish(SessionEvent(kind="warning", message="nobody")) == 0


def test_unsubscribe_unknown_queue_is_noop():
    bc = EventBroadcaster()
    bc.unsubscribe(asyncio.Queue())
    assert bc.observer_count == 0
