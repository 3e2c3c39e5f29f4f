import pytest

import network
from server import MEMBER_TIMEOUT, PresenceRelay

A = ('10.0.0.1', 1000)
B = ('10.0.0.2', 2000)


class RecordingSocket:
    def __init__(self):
        self.out = []

    def sendto(self, data, addr):
        self.out.append((addr, network.unpack_message(data)))

    def to(self, addr):
        return [msg for a, msg in self.out if a == addr]


@pytest.fixture
def sock():
    return RecordingSocket()


@pytest.fixture
def relay(sock):
    return PresenceRelay(sock=sock)


def track(relay, addr, entity_id, x, y, now=0.0):
    record = {'id': entity_id, 'position': {'x': x, 'y': y}}
    relay.process_packet(network.MSG_TRACK, network.pack_record(record), addr, now)
    return record


def subscribe(relay, addr, now=0.0):
    relay.process_packet(network.MSG_SUBSCRIBE, b'', addr, now)


def test_subscribe_acknowledges_and_syncs(relay, sock):
    subscribe(relay, A)
    assert [t for t, _ in sock.to(A)] == [network.MSG_SUBSCRIBED, network.MSG_SYNC]


def test_first_track_announces_join_to_others(relay, sock):
    subscribe(relay, A)
    subscribe(relay, B)
    sock.out.clear()

    record = track(relay, A, 'a', 1.0, 2.0)

    b_types = [t for t, _ in sock.to(B)]
    assert b_types == [network.MSG_JOIN, network.MSG_SYNC]
    assert network.unpack_records(sock.to(B)[0][1])[0] == [record]
    assert [t for t, _ in sock.to(A)] == [network.MSG_SYNC]

    sock.out.clear()
    track(relay, A, 'a', 5.0, 5.0)
    assert [t for t, _ in sock.to(B)] == [network.MSG_SYNC]


def test_sync_lists_tracked_members(relay, sock):
    subscribe(relay, A)
    subscribe(relay, B)
    a = track(relay, A, 'a', 1.0, 1.0)
    b = track(relay, B, 'b', 2.0, 2.0)
    records, _ = network.unpack_records(sock.to(A)[-1][1])
    assert records == [a, b]


def test_broadcast_is_not_echoed(relay, sock):
    subscribe(relay, A)
    subscribe(relay, B)
    sock.out.clear()

    payload = network.pack_broadcast('move', {'id': 'a', 'position': {'x': 1.0, 'y': 1.0}})
    relay.process_packet(network.MSG_BROADCAST, payload, A)
    assert sock.to(A) == []
    assert sock.to(B) == [(network.MSG_BROADCAST, payload)]


def test_unsubscribed_sender_is_told_to_subscribe(relay, sock):
    track(relay, A, 'a', 1.0, 1.0)
    assert sock.to(A) == [(network.MSG_UNSUBSCRIBED, b'')]
    assert relay.members == {}


def test_close_sends_leave(relay, sock):
    subscribe(relay, A)
    subscribe(relay, B)
    a = track(relay, A, 'a', 1.0, 1.0)
    sock.out.clear()

    relay.process_packet(network.MSG_CLOSE, b'', A)
    assert A not in relay.members
    assert [t for t, _ in sock.to(B)] == [network.MSG_LEAVE, network.MSG_SYNC]
    assert network.unpack_records(sock.to(B)[0][1])[0] == [a]


def test_idle_members_are_swept(relay, sock):
    subscribe(relay, A, now=0.0)
    subscribe(relay, B, now=0.0)
    track(relay, A, 'a', 1.0, 1.0, now=0.0)
    relay.process_packet(network.MSG_PING, b'12345678', B, MEMBER_TIMEOUT)
    sock.out.clear()

    relay.sweep(MEMBER_TIMEOUT + 1)
    assert set(relay.members) == {B}
    assert sock.to(B)[0][0] == network.MSG_LEAVE


def test_evicted_member_can_rejoin(relay, sock):
    subscribe(relay, A, now=0.0)
    subscribe(relay, B, now=0.0)
    a = track(relay, A, 'a', 1.0, 1.0, now=0.0)
    relay.process_packet(network.MSG_PING, b'12345678', B, MEMBER_TIMEOUT)
    relay.sweep(MEMBER_TIMEOUT + 1)
    assert set(relay.members) == {B}
    sock.out.clear()

    relay.process_packet(network.MSG_PING, b'12345678', A, MEMBER_TIMEOUT + 2)
    track(relay, A, 'a', 1.0, 1.0, now=MEMBER_TIMEOUT + 2)
    assert [t for t, _ in sock.to(A)] == [network.MSG_UNSUBSCRIBED, network.MSG_UNSUBSCRIBED]
    assert sock.to(B) == []

    subscribe(relay, A, now=MEMBER_TIMEOUT + 3)
    track(relay, A, 'a', 1.0, 1.0, now=MEMBER_TIMEOUT + 3)
    assert set(relay.members) == {A, B}
    assert [t for t, _ in sock.to(B)] == [network.MSG_JOIN, network.MSG_SYNC]
    assert network.unpack_records(sock.to(B)[0][1])[0] == [a]


def test_close_from_unknown_address_is_ignored(relay, sock):
    relay.process_packet(network.MSG_CLOSE, b'', A)
    assert sock.out == []
