from api.schemas import CodeUpdate
from realtime.router import BroadcastRouter, Delivery, frame


class RecordingConnection:
    def __init__(self, connection_id):
        self.connection_id = connection_id
        self.sent = []

    def send(self, message):
        self.sent.append(message)

    def events(self):
        return [message["event"] for message in self.sent]


class BrokenConnection(RecordingConnection):
    def send(self, message):
        raise ConnectionError("peer went away")


def _router(*ids):
    router = BroadcastRouter()
    conns = [RecordingConnection(cid) for cid in ids]
    for conn in conns:
        router.register(conn)
    return router, conns


def test_sender_excluded_events_skip_origin():
    router, (a, b, c) = _router("a", "b", "c")
    delivered = router.publish("code-update", {"code": "x"}, origin=a)
    assert delivered == 2
    assert a.sent == []
    assert b.events() == ["code-update"]
    assert c.events() == ["code-update"]


def test_all_inclusive_events_reach_origin():
    router, (a, b) = _router("a", "b")
    assert router.publish("timer-update", {"x": 1}, origin=a) == 2
    assert a.events() == b.events() == ["timer-update"]


def test_unknown_events_default_to_everyone():
    router, (a,) = _router("a")
    assert router.policy("brand-new") is Delivery.ALL
    assert router.publish("brand-new", None, origin=a) == 1


def test_reply_targets_one_connection():
    router, (a, b) = _router("a", "b")
    router.reply(a, "session-data", {"id": "s1"})
    assert a.sent == [{"event": "session-data", "data": {"id": "s1"}}]
    assert b.sent == []


def test_failed_delivery_drops_connection_and_continues():
    router, (a, b) = _router("a", "b")
    broken = BrokenConnection("broken")
    router.register(broken)
    assert router.publish("sessions-list", [], origin=a) == 2
    assert len(router) == 2
    assert b.events() == ["sessions-list"]


def test_unregister_is_idempotent():
    router, (a,) = _router("a")
    router.unregister(a)
    router.unregister(a)
    assert router.publish("sessions-list", []) == 0


def test_frame_serializes_models_by_alias():
    message = frame("code-update", CodeUpdate(session_id="s1", code="x", variant="v"))
    assert message == {"event": "code-update", "data": {"sessionId": "s1", "code": "x", "variant": "v"}}
    listed = frame("sessions-list", [CodeUpdate(session_id="s2", code="", variant="v")])
    assert listed["data"][0]["sessionId"] == "s2"
