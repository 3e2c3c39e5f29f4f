import logging

logger = logging.getLogger(__name__)

MOVE_EVENT = 'move'


class NetworkSyncPolicy:
    """Throttled publication of the local position.

    Each publish refreshes the presence record (survives reconnects) and
    sends an ephemeral move broadcast. Both carry the full position, so a
    skipped publish is simply superseded by the next one.
    """

    def __init__(self, channel, local_id, publish_interval_ms=200):
        self.channel = channel
        self.local_id = local_id
        self.publish_interval_ms = publish_interval_ms
        self.last_publish_time = None

    def due(self, now):
        if self.last_publish_time is None:
            return True
        return now - self.last_publish_time > self.publish_interval_ms

    def maybe_publish(self, position, moved, now):
        if not moved or not self.due(now):
            return False
        if not self.channel.is_subscribed:
            logger.debug("Channel not subscribed yet, skipping publish")
            return False

        state = {'id': self.local_id, 'position': {'x': position[0], 'y': position[1]}}
        self.channel.track(state)
        self.channel.send(MOVE_EVENT, state)
        self.last_publish_time = now
        return True
