import logging

from world import ORIGIN, squared_distance

logger = logging.getLogger(__name__)


class GestureListener:
    """Receives classified gestures. Coordinates are canvas space."""

    def on_quick_press(self, x, y):
        pass

    def on_long_press(self, x, y):
        pass


class PointerSession:
    def __init__(self, position, now):
        self.start = position
        self.end = position
        self.is_down = True
        self.is_moving = False
        self.down_timestamp = now


class GestureRecognizer:
    """Single-pointer tap / hold / drag classifier.

    Hold detection is poll based: pointer-down arms a deadline and tick()
    fires the LongPress once it has passed, so timing only depends on the
    timestamps the caller passes in.
    """

    def __init__(self, listener=None, max_joystick_range=100, press_radius=10,
                 long_press_delay_ms=500, quick_press_threshold_ms=200):
        self.listener = listener or GestureListener()
        self.max_joystick_range = max_joystick_range
        self.press_radius = press_radius
        self.long_press_delay_ms = long_press_delay_ms
        self.quick_press_threshold_ms = quick_press_threshold_ms

        self.session = None
        self.long_press_due = None

    @classmethod
    def from_config(cls, config, listener=None):
        return cls(
            listener,
            max_joystick_range=config.max_joystick_range,
            press_radius=config.press_radius,
            long_press_delay_ms=config.long_press_delay_ms,
            quick_press_threshold_ms=config.quick_press_threshold_ms,
        )

    @property
    def is_down(self):
        return self.session is not None

    @property
    def is_moving(self):
        return self.session is not None and self.session.is_moving

    def on_pointer_down(self, position, now):
        if self.session is not None:
            logger.debug("Pointer down while a session is active, replacing it")
        self.session = PointerSession(position, now)
        self.long_press_due = now + self.long_press_delay_ms

    def on_pointer_move(self, position):
        s = self.session
        if s is None:
            return
        s.end = position

        # drag takes precedence over hold
        if squared_distance(s.end, s.start) > self.press_radius * self.press_radius:
            s.is_moving = True
            self.long_press_due = None

    def on_pointer_up(self, now):
        s = self.session
        if s is None:
            return
        self.long_press_due = None
        self.session = None

        if not s.is_moving and (now - s.down_timestamp) < self.quick_press_threshold_ms:
            logger.debug("Quick press at %s", s.start)
            self.listener.on_quick_press(s.start[0], s.start[1])

    def on_pointer_cancel(self):
        if self.session is None:
            return
        self.long_press_due = None
        self.session = None

    def tick(self, now):
        s = self.session
        if self.long_press_due is None or s is None:
            return
        if now >= self.long_press_due and not s.is_moving:
            self.long_press_due = None  # once per session
            logger.debug("Long press at %s", s.start)
            self.listener.on_long_press(s.start[0], s.start[1])

    def joystick_vector(self):
        s = self.session
        if s is None:
            return ORIGIN

        x = (s.end[0] - s.start[0]) / self.max_joystick_range
        y = (s.end[1] - s.start[1]) / self.max_joystick_range

        mag = (x * x + y * y) ** 0.5
        if mag > 1:
            x /= mag
            y /= mag
        return (x, y)
