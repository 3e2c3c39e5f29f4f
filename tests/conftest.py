"""Shared fakes for the channel and socket collaborators."""

import pytest


class FakeChannel:
    """In-memory stand-in for PresenceChannel that records outbound calls."""

    def __init__(self, subscribed=True):
        self.is_subscribed = subscribed
        self.handlers = {}
        self.tracked = []
        self.sent = []
        self.on_status = None

    def on(self, event, handler):
        self.handlers.setdefault(event, []).append(handler)
        return self

    def subscribe(self, on_status=None):
        self.on_status = on_status
        return self

    def confirm(self):
        self.is_subscribed = True
        if self.on_status:
            self.on_status('SUBSCRIBED')

    def emit(self, event, arg):
        for handler in self.handlers.get(event, ()):
            handler(arg)

    def track(self, state):
        self.tracked.append(state)

    def send(self, event, payload):
        self.sent.append((event, payload))


class FakeSocket:
    """Socket double with the SimulatedSocket/UDP surface used by the code."""

    def __init__(self):
        self.sent = []    # (data, addr)
        self.inbox = []   # (data, addr) returned by update()
        self.closed = False

    def sendto(self, data, addr):
        self.sent.append((data, addr))

    def update(self):
        packets, self.inbox = self.inbox, []
        return packets

    def close(self):
        self.closed = True


@pytest.fixture
def channel():
    return FakeChannel()


@pytest.fixture
def fake_socket():
    return FakeSocket()


@pytest.fixture
def record():
    def make(entity_id, x=None, y=None):
        r = {'id': entity_id}
        if x is not None:
            r['position'] = {'x': x, 'y': y}
        return r
    return make
