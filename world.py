import logging
import math
import time

logger = logging.getLogger(__name__)

ORIGIN = (0.0, 0.0)


def now_ms():
    return time.monotonic() * 1000.0


def lerp(start, end, t):
    return start + (end - start) * t


def move_towards(current, target, max_delta):
    """Step current toward target by at most max_delta, snapping on arrival."""
    delta = target - current
    if abs(delta) <= max_delta:
        return target
    return current + math.copysign(max_delta, delta)


def normalize(x, y):
    length = math.hypot(x, y)
    if length == 0:
        return ORIGIN
    return (x / length, y / length)


def squared_distance(a, b):
    dx = a[0] - b[0]
    dy = a[1] - b[1]
    return dx * dx + dy * dy


def parse_position(raw):
    """Coerce a presence/broadcast position into an (x, y) tuple.

    Missing or malformed positions fall back to the origin.
    """
    if raw is None:
        return ORIGIN
    try:
        if isinstance(raw, dict):
            return (float(raw['x']), float(raw['y']))
        x, y = raw
        return (float(x), float(y))
    except (KeyError, TypeError, ValueError):
        logger.debug("Malformed position %r, using origin", raw)
        return ORIGIN


def parse_record(record):
    """Return (id, position) for a presence record, or (None, ORIGIN) without an id."""
    if not isinstance(record, dict) or record.get('id') is None:
        logger.debug("Presence record without id: %r", record)
        return None, ORIGIN
    return str(record['id']), parse_position(record.get('position'))


class RemoteEntity:
    def __init__(self, entity_id, position, now=None):
        self.id = entity_id
        self.authoritative = position
        self.drawn = position  # drawn starts where the network says we are
        self.last_update_time = now
        self.since_update = 0.0  # seconds of tick time since the last authoritative change

    def set_authoritative(self, position, now=None):
        if position != self.authoritative:
            self.since_update = 0.0
        self.authoritative = position
        self.last_update_time = now

    def __repr__(self):
        return f"RemoteEntity({self.id!r}, authoritative={self.authoritative}, drawn={self.drawn})"


class RenderEntity:
    __slots__ = ('id', 'is_local', 'position')

    def __init__(self, entity_id, is_local, position):
        self.id = entity_id
        self.is_local = is_local
        self.position = position

    @property
    def x(self):
        return self.position[0]

    @property
    def y(self):
        return self.position[1]

    def __eq__(self, other):
        if not isinstance(other, RenderEntity):
            return NotImplemented
        return (self.id, self.is_local, self.position) == (other.id, other.is_local, other.position)

    def __repr__(self):
        return f"RenderEntity({self.id!r}, is_local={self.is_local}, position={self.position})"
