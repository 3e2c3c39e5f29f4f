# Gesture
MAX_JOYSTICK_RANGE = 100      # canvas pixels of drag for a full-strength vector
PRESS_RADIUS = 10             # canvas pixels a press may wander before it is a drag
LONG_PRESS_DELAY_MS = 500
QUICK_PRESS_THRESHOLD_MS = 200

# Local motion
INPUT_RESPONSIVENESS = 3
LOCAL_SPEED = 200             # units per second at full joystick
CAMERA_FOLLOW_SPEED = 3
MAX_DELTA_TIME_SECONDS = 0.1

# Network
PUBLISH_INTERVAL_MS = 200
REMOTE_SYNC_WINDOW_SECONDS = 0.2

# Gesture actions
SELF_PRESS_RADIUS = 30
TARGET_PICK_RADIUS = 30
IMPULSE_FORCE = 800

# Canvas
CANVAS_WIDTH, CANVAS_HEIGHT = 666, 666
SPRITE_SIZE = 25
GRID_SIZE = 50

DEFAULTS = {
    'max_joystick_range': MAX_JOYSTICK_RANGE,
    'press_radius': PRESS_RADIUS,
    'long_press_delay_ms': LONG_PRESS_DELAY_MS,
    'quick_press_threshold_ms': QUICK_PRESS_THRESHOLD_MS,
    'input_responsiveness': INPUT_RESPONSIVENESS,
    'local_speed': LOCAL_SPEED,
    'camera_follow_speed': CAMERA_FOLLOW_SPEED,
    'max_delta_time_seconds': MAX_DELTA_TIME_SECONDS,
    'publish_interval_ms': PUBLISH_INTERVAL_MS,
    'remote_sync_window_seconds': REMOTE_SYNC_WINDOW_SECONDS,
    'self_press_radius': SELF_PRESS_RADIUS,
    'target_pick_radius': TARGET_PICK_RADIUS,
    'impulse_force': IMPULSE_FORCE,
    'canvas_width': CANVAS_WIDTH,
    'canvas_height': CANVAS_HEIGHT,
    'sprite_size': SPRITE_SIZE,
    'grid_size': GRID_SIZE,
}


class Config:
    """Named tunables shared by the client components.

    Every value defaults to the module constant of the same name; pass
    keyword overrides to change individual tunables.
    """

    def __init__(self, **overrides):
        unknown = set(overrides) - set(DEFAULTS)
        if unknown:
            raise TypeError(f"Unknown config option(s): {', '.join(sorted(unknown))}")
        for name, value in DEFAULTS.items():
            setattr(self, name, overrides.get(name, value))

    def __repr__(self):
        fields = ', '.join(f"{name}={getattr(self, name)!r}" for name in DEFAULTS)
        return f"Config({fields})"
