import math
import random
import string
import threading
from typing import Callable, Dict, List, Optional

MAX_PLAYERS = 4
NAME_MAX_LENGTH = 16
DEFAULT_NAME = 'Player'

BALL_RADIUS = 0.03
BALL_KICKOFF_SPEED = 0.2
# Kickoff direction stays within this angle of the horizontal
BALL_KICKOFF_SPREAD = math.pi / 4

KICKOFF_X = {0: 0.3, 1: 0.7}
# Kickoff rows by number of players on a team
KICKOFF_ROWS = {1: [0.5], 2: [0.35, 0.65], 3: [0.3, 0.5, 0.7], 4: [0.25, 0.42, 0.58, 0.75]}

TEAM_A = 0
TEAM_B = 1


class Input:
    """Directional intent for one player; replaced wholesale on every update."""

    __slots__ = ('up', 'down', 'left', 'right', 'boost')

    def __init__(self, up=False, down=False, left=False, right=False, boost=False):
        self.up = bool(up)
        self.down = bool(down)
        self.left = bool(left)
        self.right = bool(right)
        self.boost = bool(boost)

    def copy(self):
        return Input(self.up, self.down, self.left, self.right, self.boost)

    def to_dict(self):
        return {
            'up': self.up,
            'down': self.down,
            'left': self.left,
            'right': self.right,
            'boost': self.boost,
        }


class Ball:
    def __init__(self, x=0.5, y=0.5, vx=0.0, vy=0.0, r=BALL_RADIUS):
        self.x = x
        self.y = y
        self.vx = vx
        self.vy = vy
        self.r = r

    @classmethod
    def kickoff(cls, toward: Optional[int] = None, rng=random):
        """Centre ball heading into one half.

        ``toward`` is -1 (left half), +1 (right half) or None for a coin flip.
        """
        side = toward if toward in (-1, 1) else rng.choice((-1, 1))
        angle = rng.uniform(-BALL_KICKOFF_SPREAD, BALL_KICKOFF_SPREAD)
        return cls(
            vx=math.cos(angle) * BALL_KICKOFF_SPEED * side,
            vy=math.sin(angle) * BALL_KICKOFF_SPEED,
        )

    def to_dict(self):
        return {
            'x': round(self.x, 5),
            'y': round(self.y, 5),
            'vx': round(self.vx, 5),
            'vy': round(self.vy, 5),
            'r': self.r,
        }


def clean_name(name) -> str:
    name = str(name or '').strip()[:NAME_MAX_LENGTH]
    return name or DEFAULT_NAME


class Player:
    def __init__(self, player_id: str, sid: str, name: str, team: int):
        self.id = player_id
        # Socket.IO session id; the connection itself belongs to the hub
        self.sid = sid
        self.name = clean_name(name)
        self.team = team
        self.x = KICKOFF_X[team]
        self.y = 0.5
        self.vx = 0.0
        self.vy = 0.0
        self.angle = 0.0 if team == TEAM_A else math.pi
        self.boost = 1.0
        self.input = Input()
        self.c1: Optional[str] = None
        self.c2: Optional[str] = None
        self.model = 0
        self.wheel_style = 0

    def apply_cosmetics(self, c1=None, c2=None, model=None, wheel_style=None):
        # Sparse merge: absent fields keep their current value
        if c1 is not None:
            self.c1 = c1
        if c2 is not None:
            self.c2 = c2
        if model is not None:
            self.model = model
        if wheel_style is not None:
            self.wheel_style = wheel_style

    def place(self, x: float, y: float):
        self.x = x
        self.y = y
        self.vx = 0.0
        self.vy = 0.0
        self.angle = 0.0 if self.team == TEAM_A else math.pi

    def to_roster(self, host_id: Optional[str] = None):
        return {
            'id': self.id,
            'name': self.name,
            'team': self.team,
            'host': self.id == host_id,
            'c1': self.c1,
            'c2': self.c2,
            'model': self.model,
            'wheelStyle': self.wheel_style,
        }

    def to_snapshot(self):
        return {
            'id': self.id,
            'name': self.name,
            'team': self.team,
            'x': round(self.x, 5),
            'y': round(self.y, 5),
            'vx': round(self.vx, 5),
            'vy': round(self.vy, 5),
            'a': round(self.angle, 4),
            'boost': round(self.boost, 4),
            'c1': self.c1,
            'c2': self.c2,
            'md': self.model,
            'ws': self.wheel_style,
        }


def generate_room_code(exists: Callable[[str], bool], length=4, max_attempts=32, rng=random) -> Optional[str]:
    """Generate a unique, short room code, or None once attempts run out."""
    alphabet = string.ascii_uppercase + string.digits
    for _ in range(max_attempts):
        code = ''.join(rng.choices(alphabet, k=length))
        if not exists(code):
            return code
    return None


class Room:
    """One match: ball, up to four players, scores, clock and lifecycle flags.

    Lifecycle: lobby -> started -> (paused after a goal) -> started -> ended.
    All mutation happens under ``lock``; the tick driver holds it for a whole
    step so the player map never changes mid-step.
    """

    def __init__(self, code: str, map_index: int = 0, duration: int = 180):
        self.code = code
        self.map = map_index
        self.duration = duration
        self.score_a = 0
        self.score_b = 0
        self.ball = Ball()
        self.players: Dict[str, Player] = {}
        self.host_id: Optional[str] = None
        self.started = False
        self.paused = False
        self.time_left = float(duration)
        self.game_over_sent = False
        self.reset_at: Optional[float] = None
        self.resume_at: Optional[float] = None
        self.kickoff_toward: Optional[int] = None
        self.last_step_at: Optional[float] = None
        self.tick_count = 0
        self.ticker = None
        self.lock = threading.RLock()

    # ---- roster ----

    def is_full(self) -> bool:
        return len(self.players) >= MAX_PLAYERS

    def next_team(self) -> int:
        return len(self.players) % 2

    def add_player(self, player: Player):
        self.players[player.id] = player
        if self.host_id is None:
            self.host_id = player.id

    def remove_player(self, player_id: str) -> Optional[Player]:
        player = self.players.pop(player_id, None)
        if player and self.host_id == player_id:
            self.host_id = next(iter(self.players), None)
        return player

    def is_host(self, player_id: str) -> bool:
        return self.host_id == player_id

    def roster(self) -> List[dict]:
        return [p.to_roster(self.host_id) for p in self.players.values()]

    # ---- lifecycle ----

    def launch(self, now: float, rng=random):
        self.score_a = 0
        self.score_b = 0
        self.time_left = float(self.duration)
        self.started = True
        self.paused = False
        self.game_over_sent = False
        self.reset_at = None
        self.resume_at = None
        self.tick_count = 0
        self.last_step_at = now
        self.ball = Ball.kickoff(rng=rng)
        for p in self.players.values():
            p.boost = 1.0
            p.input = Input()
        self.reset_positions()

    def reset_positions(self):
        for team in (TEAM_A, TEAM_B):
            members = [p for p in self.players.values() if p.team == team]
            rows = KICKOFF_ROWS.get(len(members)) or [0.5] * len(members)
            for player, y in zip(members, rows):
                player.place(KICKOFF_X[team], y)

    def register_goal(self, team: int, now: float, reset_delay: float, resume_delay: float):
        """Credit ``team`` and enter the goal pause."""
        if team == TEAM_A:
            self.score_a += 1
            # Team B conceded on the right, kick off into their half
            self.kickoff_toward = 1
        else:
            self.score_b += 1
            self.kickoff_toward = -1
        self.paused = True
        self.reset_at = now + reset_delay
        self.resume_at = self.reset_at + resume_delay

    def reset_due(self, now: float) -> bool:
        return self.reset_at is not None and now >= self.reset_at

    def resume_due(self, now: float) -> bool:
        return self.reset_at is None and self.resume_at is not None and now >= self.resume_at

    def apply_goal_reset(self, rng=random):
        """Replace the ball and send everyone back to kickoff; scores and clock stay."""
        self.ball = Ball.kickoff(self.kickoff_toward, rng=rng)
        self.reset_positions()
        self.reset_at = None

    def resume(self, now: float):
        self.paused = False
        self.resume_at = None
        # Never charge the pause to the next step's dt
        self.last_step_at = now

    def stop_match(self) -> bool:
        """Leave the started state. Returns False if the match was not running."""
        was_running = self.started
        self.started = False
        self.paused = False
        self.reset_at = None
        self.resume_at = None
        return was_running

    def claim_game_over(self) -> bool:
        """One-shot guard for the GAME_OVER event."""
        if self.game_over_sent:
            return False
        self.game_over_sent = True
        return True

    def stop_ticker(self):
        if self.ticker is not None:
            self.ticker.stop()
            self.ticker = None

    def summary(self):
        return {
            'serverId': self.code,
            'map': self.map,
            'time': self.duration,
            'players': len(self.players),
            'started': self.started,
            'paused': self.paused,
            'scoreA': self.score_a,
            'scoreB': self.score_b,
            'timeLeft': round(self.time_left, 2),
        }

    def __repr__(self):
        return (
            f"Room(code={self.code}, players={len(self.players)}, started={self.started}, "
            f"paused={self.paused}, score={self.score_a}-{self.score_b})"
        )
