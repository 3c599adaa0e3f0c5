import string
import threading

from rsshkit.observer import Message, Observer


class Ping(Message):
    def json(self):
        return b"{}"

    def summary(self):
        return "ping"


def test_register_returns_hex_id():
    obs = Observer(Ping())
    client_id = obs.register(lambda m: None)
    assert len(client_id) == 20
    assert set(client_id) <= set(string.hexdigits.lower())
    assert obs.type_name == "Ping"


def test_notify_reaches_all_targets():
    obs = Observer(Ping())
    received = []
    events = [threading.Event(), threading.Event()]

    def make(ev):
        def target(msg):
            received.append(msg.summary())
            ev.set()
        return target

    for ev in events:
        obs.register(make(ev))
    obs.notify(Ping())
    assert all(ev.wait(5) for ev in events)
    assert received == ["ping", "ping"]


def test_deregister_stops_delivery():
    obs = Observer(Ping())
    removed = threading.Event()
    kept = threading.Event()
    removed_id = obs.register(lambda m: removed.set())
    obs.register(lambda m: kept.set())
    obs.deregister(removed_id)
    obs.notify(Ping())
    assert kept.wait(5)
    assert not removed.wait(0.2)