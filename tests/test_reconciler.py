import pytest

from reconciler import RemoteStateReconciler


@pytest.fixture
def remotes():
    return RemoteStateReconciler('me', sync_window=0.2)


def move(entity_id, x, y):
    return {'id': entity_id, 'position': {'x': x, 'y': y}}


class TestMembership:

    def test_sync_creates_entities_with_drawn_at_authoritative(self, remotes):
        remotes.on_sync({'a': [move('a', 10, 20)], 'b': [{'id': 'b'}]})

        assert remotes.get('a').authoritative == (10.0, 20.0)
        assert remotes.get('a').drawn == (10.0, 20.0)
        assert remotes.get('b').authoritative == (0.0, 0.0)

    def test_sync_keeps_cached_position(self, remotes):
        remotes.on_broadcast(move('a', 50, 60))
        remotes.on_sync({'a': [{'id': 'a'}]})
        assert remotes.get('a').authoritative == (50.0, 60.0)

        remotes.on_sync({'a': [move('a', 1, 1)]})
        assert remotes.get('a').authoritative == (50.0, 60.0)

    def test_sync_removes_absent_ids(self, remotes):
        remotes.on_join([move('a', 1, 1)])
        remotes.on_sync({'b': [move('b', 2, 2)]})
        assert 'a' not in remotes
        assert 'b' in remotes

    def test_local_id_is_never_tracked(self, remotes):
        remotes.on_sync({'me': [move('me', 1, 1)]})
        remotes.on_join([move('me', 1, 1)])
        remotes.on_broadcast(move('me', 5, 5))
        assert len(remotes) == 0

    def test_join_does_not_clobber_tracked_entity(self, remotes):
        remotes.on_broadcast(move('a', 100, 100))
        remotes.on_join([move('a', 0, 0)])
        assert remotes.get('a').authoritative == (100.0, 100.0)

    def test_join_without_position_defaults_to_origin(self, remotes):
        remotes.on_join([{'id': 'a', 'position': {'x': 'bad'}}])
        assert remotes.get('a').authoritative == (0.0, 0.0)

    def test_records_without_id_are_ignored(self, remotes):
        remotes.on_join([{'position': {'x': 1, 'y': 1}}, None])
        assert len(remotes) == 0

    def test_leave_removes_and_unknown_leave_is_noop(self, remotes):
        remotes.on_join([move('a', 1, 1)])
        remotes.on_leave([move('a', 1, 1), move('ghost', 0, 0)])
        assert len(remotes) == 0

    def test_leave_after_broadcast_wins(self, remotes):
        remotes.on_join([move('a', 0, 0)])
        remotes.on_broadcast(move('a', 30, 30))
        remotes.on_leave([{'id': 'a'}])
        remotes.tick(0.016)
        assert 'a' not in remotes

    def test_broadcast_for_unknown_id_is_implicit_join(self, remotes):
        remotes.on_broadcast(move('a', 7, 8))
        assert remotes.get('a').drawn == (7.0, 8.0)

    def test_broadcast_overwrites_authoritative_only(self, remotes):
        remotes.on_join([move('a', 0, 0)])
        remotes.on_broadcast(move('a', 40, -40))
        entity = remotes.get('a')
        assert entity.authoritative == (40.0, -40.0)
        assert entity.drawn == (0.0, 0.0)


class TestSmoothing:

    def test_jump_converges_exactly_over_window_in_one_tick(self, remotes):
        remotes.on_join([move('a', 0, 0)])
        remotes.on_broadcast(move('a', 100, 0))
        remotes.tick(0.2)
        assert remotes.get('a').drawn == (100.0, 0.0)

    def test_jump_converges_exactly_over_window_in_small_ticks(self, remotes):
        remotes.on_join([move('a', 0, 0)])
        remotes.on_broadcast(move('a', 100, 0))

        xs = []
        for _ in range(12):
            remotes.tick(1 / 60)
            xs.append(remotes.get('a').drawn[0])

        assert xs == sorted(xs)
        assert all(x <= 100.0 for x in xs)
        assert xs[-2] < 100.0
        assert remotes.get('a').drawn == (100.0, 0.0)

    def test_two_half_window_ticks(self, remotes):
        remotes.on_join([move('a', 0, 0)])
        remotes.on_broadcast(move('a', 100, 0))
        remotes.tick(0.1)
        assert remotes.get('a').drawn[0] == pytest.approx(50.0)
        remotes.tick(0.1)
        assert remotes.get('a').drawn == (100.0, 0.0)

    def test_first_tick_speed_is_gap_over_window(self, remotes):
        remotes.on_join([move('a', 0, 0)])
        remotes.on_broadcast(move('a', 100, -40))
        remotes.tick(0.05)
        assert remotes.get('a').drawn == pytest.approx((25.0, -10.0))

    def test_axes_converge_independently_without_overshoot(self, remotes):
        remotes.on_join([move('a', 0, 0)])
        remotes.on_broadcast(move('a', -30, 90))
        for _ in range(30):
            remotes.tick(0.03)
            x, y = remotes.get('a').drawn
            assert -30.0 <= x <= 0.0
            assert 0.0 <= y <= 90.0
        assert remotes.get('a').drawn == (-30.0, 90.0)

    def test_new_target_mid_flight_restarts_window(self, remotes):
        remotes.on_join([move('a', 0, 0)])
        remotes.on_broadcast(move('a', 100, 0))
        remotes.tick(0.1)
        remotes.on_broadcast(move('a', 200, 0))
        remotes.tick(0.1)
        assert remotes.get('a').drawn[0] == pytest.approx(125.0)
        remotes.tick(0.1)
        assert remotes.get('a').drawn == (200.0, 0.0)

    def test_zero_dt_is_a_noop(self, remotes):
        remotes.on_join([move('a', 0, 0)])
        remotes.on_broadcast(move('a', 100, 0))
        remotes.tick(0.0)
        assert remotes.get('a').drawn == (0.0, 0.0)


class TestQueries:

    def test_drawn_positions(self, remotes):
        remotes.on_join([move('a', 1, 2), move('b', 3, 4)])
        assert remotes.drawn_positions() == {'a': (1.0, 2.0), 'b': (3.0, 4.0)}

    def test_closest_within_range(self, remotes):
        remotes.on_join([move('a', 0, 0), move('b', 20, 0), move('c', 100, 0)])
        assert remotes.closest((15, 0), 30).id == 'b'
        assert remotes.closest((5, 0), 30).id == 'a'

    def test_closest_out_of_range(self, remotes):
        remotes.on_join([move('a', 0, 0)])
        assert remotes.closest((31, 0), 30) is None
        assert remotes.closest((30, 0), 30).id == 'a'
