import random

import pytest

from carball import registry
from carball.errors import RoomCodeExhausted
from carball.models import MAX_PLAYERS, Ball, Player, Room, clean_name, generate_room_code
from helpers import make_room


def test_teams_alternate_by_count():
    room = make_room('A', 'B', 'C', 'D')
    assert [p.team for p in room.players.values()] == [0, 1, 0, 1]
    assert room.is_full()
    assert len(room.players) == MAX_PLAYERS


def test_first_player_is_host_and_host_moves_on_leave():
    room = make_room('A', 'B', 'C')
    assert room.host_id == 'p0'
    room.remove_player('p0')
    assert room.host_id == 'p1'
    room.remove_player('p2')
    assert room.host_id == 'p1'
    room.remove_player('p1')
    assert room.host_id is None


def test_names_are_bounded():
    assert clean_name('   ') == 'Player'
    assert clean_name(None) == 'Player'
    assert len(clean_name('x' * 50)) == 16


def test_kickoff_spreads_teammates():
    room = make_room('A', 'B', 'C', 'D')
    room.reset_positions()
    spots = {(p.x, p.y) for p in room.players.values()}
    assert spots == {(0.3, 0.35), (0.3, 0.65), (0.7, 0.35), (0.7, 0.65)}


def test_kickoff_ball_heads_into_requested_half():
    rng = random.Random(3)
    for _ in range(20):
        assert Ball.kickoff(1, rng=rng).vx > 0
        assert Ball.kickoff(-1, rng=rng).vx < 0
    ball = Ball.kickoff(rng=rng)
    assert (ball.x, ball.y) == (0.5, 0.5)


def test_launch_resets_match_state():
    room = make_room('A', 'B')
    room.score_a, room.score_b = 3, 2
    room.time_left = 4.0
    room.game_over_sent = True
    room.players['p0'].x = 0.85
    room.launch(50.0)
    assert room.started and not room.paused
    assert (room.score_a, room.score_b) == (0, 0)
    assert room.time_left == room.duration
    assert not room.game_over_sent
    assert room.last_step_at == 50.0
    assert room.players['p0'].x == 0.3


def test_stop_match_reports_whether_running():
    room = make_room('A')
    assert not room.stop_match()
    room.launch(0.0)
    room.register_goal(0, 1.0, 1.0, 2.0)
    assert room.stop_match()
    assert not room.started and not room.paused
    assert room.reset_at is None and room.resume_at is None


def test_game_over_guard_is_one_shot():
    room = Room('ABCD')
    assert room.claim_game_over()
    assert not room.claim_game_over()


def test_code_generation_gives_up():
    assert generate_room_code(lambda code: True, max_attempts=5) is None
    code = generate_room_code(lambda code: False, length=4)
    assert len(code) == 4 and code == code.upper()


def test_registry_reports_code_exhaustion(flask_app, monkeypatch):
    monkeypatch.setattr('carball.room_registry.generate_room_code', lambda *a, **kw: None)
    with pytest.raises(RoomCodeExhausted):
        registry.create_room(0, 180)
    assert registry.rooms == {}
    assert registry.stats['code_exhausted'] == 1


def test_registry_remove_stops_ticker(flask_app):
    room = registry.create_room(0, 180)

    class Ticker:
        stopped = False

        def stop(self):
            self.stopped = True

    ticker = Ticker()
    room.ticker = ticker
    assert registry.remove_room(room.code) is room
    assert ticker.stopped
    assert room.ticker is None
    assert registry.get(room.code) is None


def test_creator_is_seated_before_room_is_listed(flask_app):
    creator = Player('p0', 'sid0', 'Alice', 0)
    room = registry.create_room(0, 180, creator=creator)
    assert registry.get(room.code) is room
    assert room.host_id == 'p0'
    assert registry.lookup('sid0') == (room, 'p0')
    assert registry.summaries()[0]['players'] == 1
