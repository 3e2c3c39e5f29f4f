import logging
import uuid

from config import Config
from gesture import GestureListener, GestureRecognizer
from motion import LocalMotionController
from player import Camera, LocalPlayer
from presence import SUBSCRIBED
from reconciler import RemoteStateReconciler
from sync import MOVE_EVENT, NetworkSyncPolicy
from world import RenderEntity, now_ms, squared_distance

logger = logging.getLogger(__name__)


def by_y(entity):
    return entity.position[1]


class Game(GestureListener):
    """Owns all client-side movement state and drives it one frame at a time.

    Pointer events go to `gesture`, channel events to `remotes`, and
    tick(now_ms) runs recognizer -> local motion -> publish -> remote
    smoothing -> camera, returning the entities to draw.
    """

    def __init__(self, channel, config=None, local_id=None, clock=now_ms):
        self.config = config or Config()
        self.clock = clock
        self.local_id = local_id or str(uuid.uuid4())
        self.channel = channel

        c = self.config
        self.player = LocalPlayer(self.local_id)
        self.camera = Camera(c.canvas_width, c.canvas_height, c.camera_follow_speed)
        self.gesture = GestureRecognizer.from_config(c, listener=self)
        self.motion = LocalMotionController.from_config(self.player, c)
        self.publisher = NetworkSyncPolicy(channel, self.local_id, c.publish_interval_ms)
        self.remotes = RemoteStateReconciler(self.local_id, c.remote_sync_window_seconds)

        self.selected_id = None
        self.last_tick = None

    def connect(self):
        """Wire channel events into the reconciler and subscribe."""
        self.channel.on('sync', self.on_sync)
        self.channel.on('join', self.on_join)
        self.channel.on('leave', self.remotes.on_leave)
        self.channel.on('broadcast:' + MOVE_EVENT, self.on_move)
        self.channel.subscribe(self.on_status)

    def on_status(self, status):
        logger.info("Channel status: %s", status)
        if status == SUBSCRIBED:
            # announce ourselves straight away, movement or not
            self.channel.track(self.player.state())

    # Channel events, stamped with the time they were received

    def on_sync(self, snapshot):
        self.remotes.on_sync(snapshot, self.clock())

    def on_join(self, records):
        self.remotes.on_join(records, self.clock())

    def on_move(self, payload):
        self.remotes.on_broadcast(payload, self.clock())

    def tick(self, now, sort_key=by_y):
        if self.last_tick is None:
            dt = 0.0
        else:
            dt = self.motion.clamp_dt((now - self.last_tick) / 1000.0)
        self.last_tick = now

        self.gesture.tick(now)
        moved = self.motion.step(self.gesture.joystick_vector(), dt)
        self.publisher.maybe_publish(self.player.position, moved, now)
        self.remotes.tick(dt)
        self.camera.follow(self.player.position, dt)
        return self.render_entities(sort_key)

    def render_entities(self, sort_key=by_y):
        entities = [RenderEntity(e.id, False, e.drawn) for e in self.remotes.entities()]
        entities.append(RenderEntity(self.local_id, True, self.player.position))
        if sort_key is not None:
            entities.sort(key=sort_key)
        return entities

    # Gesture actions

    def on_long_press(self, x, y):
        world = self.camera.screen_to_world(x, y)
        radius = self.config.self_press_radius
        if squared_distance(self.player.position, world) <= radius * radius:
            logger.info("Long press on the local player")
            return

        dx = world[0] - self.player.position[0]
        dy = world[1] - self.player.position[1]
        logger.info("Long press away from the local player, pushing toward (%.1f, %.1f)", *world)
        self.motion.apply_impulse((dx, dy), self.config.impulse_force)

    def on_quick_press(self, x, y):
        world = self.camera.screen_to_world(x, y)
        closest = self.remotes.closest(world, self.config.target_pick_radius)
        if closest is None:
            logger.info("Quick press: no player within range")
            self.selected_id = None
            return
        logger.info("Quick press: closest player is %s at (%.1f, %.1f)", closest.id, *closest.drawn)
        self.selected_id = closest.id
