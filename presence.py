import logging
import struct
import time

import network

logger = logging.getLogger(__name__)

SUBSCRIBED = 'SUBSCRIBED'
TIMED_OUT = 'TIMED_OUT'
CHANNEL_ERROR = 'CHANNEL_ERROR'
CLOSED = 'CLOSED'

PING_INTERVAL = 1.0      # seconds
SUBSCRIBE_TIMEOUT = 2.0  # seconds to wait for SUBSCRIBED before asking again


class PresenceChannel:
    """Client side of the presence relay.

    Mirrors a hosted realtime channel: subscribe() joins, track() refreshes
    this client's presence record, send() fires an ephemeral broadcast and
    the relay pushes back sync/join/leave/broadcast events. Nothing is
    delivered until pump() is called, so every handler runs on the caller's
    thread.

    The channel rejoins on its own. An unanswered SUBSCRIBE is repeated
    every SUBSCRIBE_TIMEOUT seconds (status TIMED_OUT), and a relay that
    has dropped this client answers with UNSUBSCRIBED (status
    CHANNEL_ERROR) which triggers a fresh SUBSCRIBE.
    """

    def __init__(self, sock, server_addr):
        self.sock = sock
        self.server_addr = server_addr
        self.handlers = {}  # event -> [callable]
        self.state = {}     # presence key -> [records]
        self.on_status = None
        self.is_subscribed = False
        self.subscribe_sent = None  # time of the pending SUBSCRIBE, None when not joining
        self.rtt = 0.0
        self.last_ping = 0.0

    def on(self, event, handler):
        """Register a handler for 'sync', 'join', 'leave' or 'broadcast:<event>'."""
        self.handlers.setdefault(event, []).append(handler)
        return self

    def subscribe(self, on_status=None, now=None):
        self.on_status = on_status
        self.send_subscribe(time.time() if now is None else now)
        return self

    def send_subscribe(self, now):
        self.subscribe_sent = now
        self.send_packet(network.pack_message(network.MSG_SUBSCRIBE))

    def presence_state(self):
        return {key: list(records) for key, records in self.state.items()}

    def track(self, state):
        if not self.is_subscribed:
            logger.debug("track() before subscription, dropped")
            return
        self.send_packet(network.pack_message(network.MSG_TRACK, network.pack_record(state)))

    def send(self, event, payload):
        if not self.is_subscribed:
            logger.debug("send(%s) before subscription, dropped", event)
            return
        data = network.pack_broadcast(event, payload)
        self.send_packet(network.pack_message(network.MSG_BROADCAST, data))

    def send_packet(self, data):
        self.sock.sendto(data, self.server_addr)

    def pump(self, now=None):
        """Flush outgoing packets and dispatch every received event."""
        now = time.time() if now is None else now
        if self.is_subscribed and now - self.last_ping > PING_INTERVAL:
            self.send_packet(network.pack_message(network.MSG_PING, struct.pack('!d', now)))
            self.last_ping = now
        elif not self.is_subscribed and self.subscribe_sent is not None \
                and now - self.subscribe_sent > SUBSCRIBE_TIMEOUT:
            logger.info("No answer from presence relay, subscribing again")
            self._status(TIMED_OUT)
            self.send_subscribe(now)

        for data, addr in self.sock.update():
            self.process_packet(data, now)

    def process_packet(self, data, now=None):
        msg_type, payload = network.unpack_message(data)
        if msg_type is None:
            logger.debug("Dropping unframed packet (%d bytes)", len(data))
            return
        try:
            event, arg = self.decode(msg_type, payload)
        except network.DECODE_ERRORS as e:
            logger.debug("Dropping malformed message %d: %s", msg_type, e)
            return
        self.dispatch(event, arg, time.time() if now is None else now)

    def decode(self, msg_type, payload):
        """Turn a relay message into (event, argument); event is None for unknown ids."""
        if msg_type == network.MSG_SUBSCRIBED:
            return SUBSCRIBED, None
        if msg_type == network.MSG_UNSUBSCRIBED:
            return CHANNEL_ERROR, None
        if msg_type == network.MSG_SYNC:
            return 'sync', network.unpack_records(payload)[0]
        if msg_type == network.MSG_JOIN:
            return 'join', network.unpack_records(payload)[0]
        if msg_type == network.MSG_LEAVE:
            return 'leave', network.unpack_records(payload)[0]
        if msg_type == network.MSG_BROADCAST:
            event, record = network.unpack_broadcast(payload)
            return 'broadcast:' + event, record
        if msg_type == network.MSG_PONG:
            return 'pong', struct.unpack_from('!d', payload, 0)[0]  # relay echoes our timestamp
        return None, None

    def dispatch(self, event, arg, now):
        if event == SUBSCRIBED:
            if not self.is_subscribed:
                logger.info("Subscribed to presence relay at %s:%s", *self.server_addr)
            self.is_subscribed = True
            self.subscribe_sent = None
            self._status(SUBSCRIBED)

        elif event == CHANNEL_ERROR:
            if self.subscribe_sent is not None:
                return  # already rejoining
            logger.info("Presence relay dropped this client, subscribing again")
            self.is_subscribed = False
            self._status(CHANNEL_ERROR)
            self.send_subscribe(now)

        elif event == 'sync':
            state = {}
            for record in arg:
                state.setdefault(record['id'], []).append(record)
            self.state = state
            self._emit('sync', self.presence_state())

        elif event == 'pong':
            self.rtt = time.time() - arg

        elif event is not None:
            self._emit(event, arg)

    def _emit(self, event, arg):
        for handler in self.handlers.get(event, ()):
            handler(arg)

    def _status(self, status):
        if self.on_status:
            self.on_status(status)

    def close(self):
        if self.is_subscribed:
            self.send_packet(network.pack_message(network.MSG_CLOSE))
            self.sock.update()  # flush what is already due
        self.is_subscribed = False
        self.subscribe_sent = None
        self._status(CLOSED)
        self.sock.close()
