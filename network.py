import random
import struct
import time

# Framing constants
HEADER_SIZE = 8
MSG_TYPE_SIZE = 3

# Message class IDs
MSG_SUBSCRIBE = 1
MSG_SUBSCRIBED = 2
MSG_PONG = 3
MSG_SYNC = 4
MSG_TRACK = 5
MSG_PING = 6
MSG_CLOSE = 7
MSG_JOIN = 8
MSG_LEAVE = 9
MSG_BROADCAST = 10
MSG_UNSUBSCRIBED = 11  # relay does not know the sender, subscribe again

# Payload errors a malformed packet can raise while decoding
DECODE_ERRORS = (struct.error, ValueError, UnicodeDecodeError, IndexError)


def pack_message(msg_type, payload=b''):
    body = f"{msg_type:03}".encode('ascii') + payload
    header = f"{len(body):08}".encode('ascii')
    return header + body


def unpack_message(data):
    if len(data) < HEADER_SIZE + MSG_TYPE_SIZE:
        return None, None
    try:
        body_size = int(data[:HEADER_SIZE].decode('ascii'))
        body = data[HEADER_SIZE:HEADER_SIZE + body_size]
        msg_type = int(body[:MSG_TYPE_SIZE].decode('ascii'))
        payload = body[MSG_TYPE_SIZE:]
        return msg_type, payload
    except (ValueError, UnicodeDecodeError):
        return None, None


def _pack_str(s):
    raw = s.encode('utf-8')
    return struct.pack('!H', len(raw)) + raw


def _unpack_str(payload, off):
    (n,) = struct.unpack_from('!H', payload, off)
    off += 2
    raw = bytes(payload[off:off + n])
    if len(raw) != n:
        raise ValueError("truncated string")
    return raw.decode('utf-8'), off + n


def pack_record(record):
    """Presence record: id(str) | has_position(uint8) | x(float) | y(float)"""
    position = record.get('position')
    if position is None:
        return _pack_str(str(record['id'])) + struct.pack('!Bff', 0, 0.0, 0.0)
    return _pack_str(str(record['id'])) + struct.pack('!Bff', 1, position['x'], position['y'])


def unpack_record(payload, off=0):
    record_id, off = _unpack_str(payload, off)
    has_position, x, y = struct.unpack_from('!Bff', payload, off)
    off += struct.calcsize('!Bff')
    record = {'id': record_id}
    if has_position:
        record['position'] = {'x': x, 'y': y}
    return record, off


def pack_records(records):
    payload = bytearray(struct.pack('!I', len(records)))
    for record in records:
        payload.extend(pack_record(record))
    return bytes(payload)


def unpack_records(payload, off=0):
    (count,) = struct.unpack_from('!I', payload, off)
    off += 4
    records = []
    for _ in range(count):
        record, off = unpack_record(payload, off)
        records.append(record)
    return records, off


def pack_broadcast(event, record):
    return _pack_str(event) + pack_record(record)


def unpack_broadcast(payload):
    event, off = _unpack_str(payload, 0)
    record, _ = unpack_record(payload, off)
    return event, record


class SimulatedSocket:
    def __init__(self, sock, latency=0.0, jitter=0.0):
        self.sock = sock
        self.latency = latency
        self.jitter = jitter
        self.queue = [] # (time, type, data, addr)

    def sendto(self, data, addr):
        delay = max(0, random.gauss(self.latency, self.jitter))
        self.queue.append((time.time() + delay, 'send', data, addr))

    def update(self):
        """
        Reads from real socket, queues incoming with delay.
        Processes queue: sends ready 'send' packets, returns ready 'recv' packets.
        Returns list of (data, addr) for received packets.
        """
        now = time.time()

        # 1. Read from real socket and queue
        try:
            while True:
                data, addr = self.sock.recvfrom(65536)
                delay = max(0, random.gauss(self.latency, self.jitter))
                self.queue.append((now + delay, 'recv', data, addr))
        except (BlockingIOError, ConnectionResetError):
            pass

        # 2. Process queue
        ready_packets = []
        remaining = []

        for t, type_, data, addr in self.queue:
            if now >= t:
                if type_ == 'send':
                    try:
                        self.sock.sendto(data, addr)
                    except OSError:
                        pass
                elif type_ == 'recv':
                    ready_packets.append((data, addr))
            else:
                remaining.append((t, type_, data, addr))

        self.queue = remaining
        return ready_packets

    def close(self):
        self.sock.close()
