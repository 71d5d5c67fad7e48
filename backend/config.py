import os


def _env_bool(name, default):
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    # Comma separated list of origins allowed to open a socket
    CORS_ORIGINS = [o.strip() for o in os.environ.get(
        'CORS_ORIGINS',
        'http://localhost:5173,http://127.0.0.1:5173',
    ).split(',') if o.strip()]
    # Simulation clock
    TICK_RATE = int(os.environ.get('TICK_RATE', '60'))
    # Broadcast one GAME_STATE every N simulation steps
    SNAPSHOT_EVERY = int(os.environ.get('SNAPSHOT_EVERY', '2'))
    MAX_STEP_SEC = float(os.environ.get('MAX_STEP_SEC', str(1.0 / 30.0)))
    # Match settings (seconds)
    MATCH_DURATION_SEC = int(os.environ.get('MATCH_DURATION_SEC', '180'))
    MIN_MATCH_SEC = int(os.environ.get('MIN_MATCH_SEC', '30'))
    MAX_MATCH_SEC = int(os.environ.get('MAX_MATCH_SEC', '600'))
    MAP_COUNT = int(os.environ.get('MAP_COUNT', '3'))
    MIN_PLAYERS = int(os.environ.get('MIN_PLAYERS', '1'))
    # Goal pause: reset after the first delay, resume play after the second
    GOAL_RESET_DELAY_SEC = float(os.environ.get('GOAL_RESET_DELAY_SEC', '1.0'))
    GOAL_RESUME_DELAY_SEC = float(os.environ.get('GOAL_RESUME_DELAY_SEC', '2.0'))
    # Room codes
    ROOM_CODE_LENGTH = int(os.environ.get('ROOM_CODE_LENGTH', '4'))
    ROOM_CODE_MAX_ATTEMPTS = int(os.environ.get('ROOM_CODE_MAX_ATTEMPTS', '32'))
    # Per-connection outbound queue
    OUTBOX_LIMIT = int(os.environ.get('OUTBOX_LIMIT', '32'))
    ASYNC_DELIVERY = _env_bool('ASYNC_DELIVERY', True)
    # Disable to drive rooms manually (tests)
    TICK_DRIVER_ENABLED = _env_bool('TICK_DRIVER_ENABLED', True)
