from player import LocalPlayer
from world import ORIGIN, lerp, normalize


class LocalMotionController:
    def __init__(self, player: LocalPlayer, responsiveness=3, speed=200, max_delta_time=0.1):
        self.player = player
        self.responsiveness = responsiveness
        self.speed = speed
        self.max_delta_time = max_delta_time

    @classmethod
    def from_config(cls, player, config):
        return cls(
            player,
            responsiveness=config.input_responsiveness,
            speed=config.local_speed,
            max_delta_time=config.max_delta_time_seconds,
        )

    def clamp_dt(self, dt):
        return max(0.0, min(dt, self.max_delta_time))

    def step(self, joystick, dt: float):
        """Advance the local player by dt seconds. Returns True if it moved."""
        p = self.player
        dt = self.clamp_dt(dt)
        t = self.responsiveness * dt

        # smooth input toward the live drag vector
        sx = lerp(p.smoothed_input[0], joystick[0], t)
        sy = lerp(p.smoothed_input[1], joystick[1], t)
        p.smoothed_input = (sx, sy)

        # impulse falls off at the same rate
        ix = lerp(p.impulse_velocity[0], 0.0, t)
        iy = lerp(p.impulse_velocity[1], 0.0, t)
        p.impulse_velocity = (ix, iy)

        move_x = ix + sx * self.speed
        move_y = iy + sy * self.speed

        x, y = p.position
        moved = False
        if move_x != 0:
            x += move_x * dt
            moved = True
        if move_y != 0:
            y += move_y * dt
            moved = True
        p.position = (x, y)
        p.moved = moved
        return moved

    def apply_impulse(self, direction, magnitude):
        nx, ny = normalize(*direction)
        if (nx, ny) == ORIGIN:
            self.player.impulse_velocity = ORIGIN
            return
        self.player.impulse_velocity = (nx * magnitude, ny * magnitude)
