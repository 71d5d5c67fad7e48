"""Fixed-step physics for one room.

``step`` advances every entity by one slice of ``dt`` seconds and reports
the state-changing events (goal, time expiry) it detected. It does not
broadcast or schedule anything; the room ticker acts on the result.
"""
import math
from itertools import combinations
from typing import Optional

from carball.models import TEAM_A, TEAM_B, Ball, Player, Room
from .physics import (
    FIELD_BOTTOM,
    FIELD_LEFT,
    FIELD_RIGHT,
    FIELD_TOP,
    approach,
    bounce_axis,
    cap_speed,
    clamp,
    contact_normal,
    decay,
    in_goal_band,
    normalize,
)

# Players
PLAYER_SPEED = 0.30
BOOST_MULT = 1.35
PLAYER_ACCEL = 12.0
# Fraction of velocity left after one second without input
PLAYER_FRICTION_BASE = 0.05
BOOST_DRAIN_PER_SEC = 0.5
BOOST_REGEN_PER_SEC = 0.2
ANGLE_DEADZONE = 0.01
WALL_DAMPING = 0.3
PLAYER_RADIUS = 0.04
PLAYER_BUMP_RESTITUTION = 0.2

# Ball
BALL_FRICTION_BASE = 0.74
BALL_MAX_SPEED = 1.2
BOUNCE = 0.7
KICK_RESTITUTION = 0.6
KICK_CARRY = 0.5
KICK_MIN = 0.05


class StepResult:
    __slots__ = ('stepped', 'goal_team', 'time_up')

    def __init__(self, stepped=False, goal_team: Optional[int] = None, time_up=False):
        self.stepped = stepped
        self.goal_team = goal_team
        self.time_up = time_up

    def __repr__(self):
        return f"StepResult(stepped={self.stepped}, goal_team={self.goal_team}, time_up={self.time_up})"


def max_speed(player: Player) -> float:
    if player.input.boost and player.boost > 0:
        return PLAYER_SPEED * BOOST_MULT
    return PLAYER_SPEED


def step_player(player: Player, dt: float) -> None:
    inp = player.input.copy()
    ax = (1.0 if inp.right else 0.0) - (1.0 if inp.left else 0.0)
    ay = (1.0 if inp.down else 0.0) - (1.0 if inp.up else 0.0)
    ax, ay = normalize(ax, ay)

    boosting = inp.boost and player.boost > 0
    target = PLAYER_SPEED * (BOOST_MULT if boosting else 1.0)
    if boosting:
        player.boost = approach(player.boost, 0.0, BOOST_DRAIN_PER_SEC * dt)
    else:
        player.boost = approach(player.boost, 1.0, BOOST_REGEN_PER_SEC * dt)

    player.vx += ax * target * dt * PLAYER_ACCEL
    player.vy += ay * target * dt * PLAYER_ACCEL

    player.vx = decay(player.vx, PLAYER_FRICTION_BASE, dt)
    player.vy = decay(player.vy, PLAYER_FRICTION_BASE, dt)

    player.vx, player.vy = cap_speed(player.vx, player.vy, target)

    if math.hypot(player.vx, player.vy) > ANGLE_DEADZONE:
        player.angle = math.atan2(player.vy, player.vx)

    player.x += player.vx * dt
    player.y += player.vy * dt

    player.x, player.vx = bounce_axis(player.x, player.vx, FIELD_LEFT, FIELD_RIGHT, WALL_DAMPING)
    player.y, player.vy = bounce_axis(player.y, player.vy, FIELD_TOP, FIELD_BOTTOM, WALL_DAMPING)


def separate_players(a: Player, b: Player) -> bool:
    """Soft depenetration plus a damped push along the contact normal."""
    nx, ny, dist = contact_normal(a.x, a.y, b.x, b.y)
    overlap = 2 * PLAYER_RADIUS - dist
    if overlap <= 0:
        return False

    half = overlap / 2
    a.x -= nx * half
    a.y -= ny * half
    b.x += nx * half
    b.y += ny * half

    closing = (b.vx - a.vx) * nx + (b.vy - a.vy) * ny
    if closing < 0:
        j = -closing * (1 + PLAYER_BUMP_RESTITUTION) / 2
        a.vx -= nx * j
        a.vy -= ny * j
        b.vx += nx * j
        b.vy += ny * j

    for p in (a, b):
        p.x = clamp(p.x, FIELD_LEFT, FIELD_RIGHT)
        p.y = clamp(p.y, FIELD_TOP, FIELD_BOTTOM)
    return True


def collide_ball_player(ball: Ball, player: Player) -> bool:
    """Kick the ball off ``player`` and push it clear of the player's body."""
    nx, ny, dist = contact_normal(player.x, player.y, ball.x, ball.y)
    reach = ball.r + PLAYER_RADIUS
    if dist >= reach:
        return False

    closing = (ball.vx - player.vx) * nx + (ball.vy - player.vy) * ny
    if closing < 0:
        impulse = (
            -closing * (1 + KICK_RESTITUTION)
            + math.hypot(player.vx, player.vy) * KICK_CARRY
            + KICK_MIN
        )
        ball.vx += nx * impulse
        ball.vy += ny * impulse
        ball.vx, ball.vy = cap_speed(ball.vx, ball.vy, BALL_MAX_SPEED)

    ball.x = player.x + nx * reach
    ball.y = player.y + ny * reach
    return True


def step_ball(ball: Ball, dt: float) -> None:
    ball.x += ball.vx * dt
    ball.y += ball.vy * dt
    ball.vx = decay(ball.vx, BALL_FRICTION_BASE, dt)
    ball.vy = decay(ball.vy, BALL_FRICTION_BASE, dt)
    ball.vx, ball.vy = cap_speed(ball.vx, ball.vy, BALL_MAX_SPEED)


def bounce_ball_vertical(ball: Ball) -> None:
    ball.y, ball.vy = bounce_axis(ball.y, ball.vy, FIELD_TOP + ball.r, FIELD_BOTTOM - ball.r, BOUNCE)


def resolve_sides(ball: Ball) -> Optional[int]:
    """Bounce off a side wall or report the team that scored."""
    if ball.x - ball.r < FIELD_LEFT:
        if in_goal_band(ball.y):
            return TEAM_B
        ball.x = FIELD_LEFT + ball.r
        ball.vx = abs(ball.vx) * BOUNCE
    elif ball.x + ball.r > FIELD_RIGHT:
        if in_goal_band(ball.y):
            return TEAM_A
        ball.x = FIELD_RIGHT - ball.r
        ball.vx = -abs(ball.vx) * BOUNCE
    return None


def step(room: Room, dt: float) -> StepResult:
    """Advance ``room`` by ``dt`` seconds; no-op unless the match is live."""
    if not room.started or room.paused:
        return StepResult()

    dt = max(0.0, dt)
    room.time_left -= dt
    if room.time_left <= 0:
        room.time_left = 0.0
        return StepResult(stepped=True, time_up=True)

    players = list(room.players.values())
    for player in players:
        step_player(player, dt)

    for a, b in combinations(players, 2):
        separate_players(a, b)

    ball = room.ball
    step_ball(ball, dt)
    for player in players:
        collide_ball_player(ball, player)

    bounce_ball_vertical(ball)
    scorer = resolve_sides(ball)
    return StepResult(stepped=True, goal_team=scorer)
