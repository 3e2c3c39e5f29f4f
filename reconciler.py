import logging

from world import RemoteEntity, move_towards, parse_record, squared_distance

logger = logging.getLogger(__name__)

EPSILON = 1e-9


class RemoteStateReconciler:
    """Authoritative and drawn positions of every remote participant.

    Channel events are applied in the order they are received. There are
    no sequence numbers: a broadcast that was sent before a sync snapshot
    but delivered after it overwrites the snapshot's position until the
    next update, and a broadcast delivered after a leave re-adds the
    participant as an implicit join.

    Drawn positions move linearly: each axis covers the gap left to its
    target in the time left of the sync window, counted from the latest
    authoritative change. The first tick after an update therefore runs at
    gap / sync_window, and the target is reached exactly when the window
    ends, however the window is split into ticks. Motion stops at each
    target instead of easing out behind it.
    """

    def __init__(self, local_id, sync_window=0.2):
        self.local_id = local_id
        self.sync_window = sync_window
        self.remotes = {}  # id -> RemoteEntity

    def __contains__(self, entity_id):
        return entity_id in self.remotes

    def __len__(self):
        return len(self.remotes)

    def get(self, entity_id):
        return self.remotes.get(entity_id)

    def _records(self, records):
        for record in records or ():
            entity_id, position = parse_record(record)
            if entity_id is None or entity_id == self.local_id:
                continue
            yield entity_id, position

    def on_sync(self, snapshot, now=None):
        """Rebuild membership from a full presence snapshot {key: [records]}."""
        remotes = {}
        for presences in (snapshot or {}).values():
            for entity_id, position in self._records(presences):
                existing = self.remotes.get(entity_id)
                if existing is not None:
                    # cached data is never regressed by the snapshot
                    remotes[entity_id] = existing
                elif entity_id not in remotes:
                    remotes[entity_id] = RemoteEntity(entity_id, position, now)
        dropped = set(self.remotes) - set(remotes)
        if dropped:
            logger.debug("Sync dropped %s", sorted(dropped))
        self.remotes = remotes

    def on_join(self, records, now=None):
        for entity_id, position in self._records(records):
            if entity_id not in self.remotes:
                logger.debug("Joined: %s at %s", entity_id, position)
                self.remotes[entity_id] = RemoteEntity(entity_id, position, now)

    def on_leave(self, records):
        for entity_id, _ in self._records(records):
            if self.remotes.pop(entity_id, None) is not None:
                logger.debug("Left: %s", entity_id)

    def on_broadcast(self, payload, now=None):
        for entity_id, position in self._records([payload]):
            entity = self.remotes.get(entity_id)
            if entity is None:
                self.remotes[entity_id] = RemoteEntity(entity_id, position, now)
            else:
                entity.set_authoritative(position, now)

    def tick(self, dt: float):
        if dt <= 0:
            return
        for entity in self.remotes.values():
            entity.since_update += dt
            # window left before this entity must reach its target
            remaining = self.sync_window - entity.since_update + dt
            if remaining <= dt + EPSILON:
                entity.drawn = entity.authoritative
                continue
            ax, ay = entity.authoritative
            dx, dy = entity.drawn
            speed_x = abs(ax - dx) / remaining
            speed_y = abs(ay - dy) / remaining
            entity.drawn = (move_towards(dx, ax, speed_x * dt), move_towards(dy, ay, speed_y * dt))

    def entities(self):
        return list(self.remotes.values())

    def drawn_positions(self):
        return {entity_id: e.drawn for entity_id, e in self.remotes.items()}

    def closest(self, point, max_range):
        """Closest remote entity (by drawn position) within max_range of point."""
        best = None
        best_dist = max_range * max_range
        for entity in self.remotes.values():
            d = squared_distance(entity.drawn, point)
            if d < best_dist or (best is None and d == best_dist):
                best = entity
                best_dist = d
        return best
