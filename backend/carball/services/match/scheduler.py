import logging
import time
from typing import Callable, Optional

from carball.models import Room
from . import engine
from .broadcast import ConnectionHub

log = logging.getLogger(__name__)

# advance() outcomes
IDLE = 'idle'
PAUSED = 'paused'
STEPPED = 'stepped'
GOAL = 'goal'
ENDED = 'ended'


class RoomTicker:
    """Fixed-rate driver for one room.

    - One background task per room, started with ``socketio.start_background_task``
    - Keeps running through the goal pause and only services its deadlines
    - dt comes from the monotonic clock, capped at ``max_step``
    - Stops itself when the match ends; the room keeps the handle for teardown
    """

    def __init__(
        self,
        room: Room,
        hub: ConnectionHub,
        tick_rate: int = 60,
        snapshot_every: int = 2,
        max_step: float = 1.0 / 30.0,
        reset_delay: float = 1.0,
        resume_delay: float = 2.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.room = room
        self.hub = hub
        self.interval = 1.0 / max(1, tick_rate)
        self.snapshot_every = max(1, int(snapshot_every))
        self.max_step = max_step
        self.reset_delay = reset_delay
        self.resume_delay = resume_delay
        self.clock = clock
        self.stopped = False
        self.running = False

    @classmethod
    def from_config(cls, room: Room, hub: ConnectionHub, config, clock=time.monotonic):
        return cls(
            room,
            hub,
            tick_rate=int(config.get('TICK_RATE', 60)),
            snapshot_every=int(config.get('SNAPSHOT_EVERY', 2)),
            max_step=float(config.get('MAX_STEP_SEC', 1.0 / 30.0)),
            reset_delay=float(config.get('GOAL_RESET_DELAY_SEC', 1.0)),
            resume_delay=float(config.get('GOAL_RESUME_DELAY_SEC', 2.0)),
            clock=clock,
        )

    def start(self, start_task: Optional[Callable] = None, sleep: Callable[[float], None] = time.sleep):
        """Run the loop on ``start_task``; without one the caller drives ``advance``."""
        if start_task is None:
            return
        self.running = True
        start_task(self._run, sleep)

    def stop(self):
        self.stopped = True

    def _run(self, sleep):
        log.info(f"[ticker-start] room={self.room.code} interval={self.interval:.4f}s")
        next_at = self.clock()
        try:
            while not self.stopped:
                self.advance(self.clock())
                next_at += self.interval
                delay = next_at - self.clock()
                if delay < 0:
                    # Running behind: skip the missed slots rather than bursting
                    next_at = self.clock()
                    delay = 0
                sleep(delay)
        except Exception:
            log.exception(f"[ticker-crash] room={self.room.code}")
            self.stopped = True
            room = self.room
            with room.lock:
                room.stop_match()
                if room.ticker is self:
                    room.ticker = None
                if room.claim_game_over():
                    self.hub.broadcast(room, 'GAME_OVER', {'scoreA': room.score_a, 'scoreB': room.score_b})
        finally:
            self.running = False
            log.info(f"[ticker-stop] room={self.room.code}")

    def advance(self, now: float) -> str:
        """One driver iteration at wall-clock ``now``."""
        room = self.room
        with room.lock:
            if self.stopped or not room.started:
                return IDLE

            if room.paused:
                return self._service_pause(now)

            last = room.last_step_at if room.last_step_at is not None else now
            dt = min(max(0.0, now - last), self.max_step)
            room.last_step_at = now

            result = engine.step(room, dt)
            if result.time_up:
                self._finish()
                return ENDED
            if result.goal_team is not None:
                room.register_goal(result.goal_team, now, self.reset_delay, self.resume_delay)
                log.info(f"[goal] room={room.code} team={result.goal_team} score={room.score_a}-{room.score_b}")
                self.hub.broadcast(room, 'GOAL', {
                    'team': result.goal_team,
                    'scoreA': room.score_a,
                    'scoreB': room.score_b,
                })
                return GOAL

            room.tick_count += 1
            if room.tick_count % self.snapshot_every == 0:
                self.hub.broadcast_snapshot(room)
            return STEPPED

    def _service_pause(self, now: float) -> str:
        room = self.room
        if room.reset_due(now):
            room.apply_goal_reset()
            self.hub.broadcast_snapshot(room)
        if room.resume_due(now):
            if room.time_left <= 0:
                self._finish()
                return ENDED
            room.resume(now)
        return PAUSED

    def _finish(self):
        room = self.room
        room.stop_match()
        self.stop()
        if room.claim_game_over():
            log.info(f"[game-over] room={room.code} score={room.score_a}-{room.score_b}")
            self.hub.broadcast(room, 'GAME_OVER', {'scoreA': room.score_a, 'scoreB': room.score_b})
