import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    # Comma separated list; '*' allows any origin
    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '*')
    # Simulation cadence (seconds)
    TICK_INTERVAL_SEC = float(os.environ.get('TICK_INTERVAL_SEC', '1'))
    # Delay between game end and the automatic room reset (seconds)
    RESET_DELAY_SEC = int(os.environ.get('RESET_DELAY_SEC', '30'))
    # How long a disconnected player's record survives during an active game
    DISCONNECT_GRACE_SEC = int(os.environ.get('DISCONNECT_GRACE_SEC', '30'))
    MIN_PLAYERS = int(os.environ.get('MIN_PLAYERS', '2'))
    MAX_PLAYERS = int(os.environ.get('MAX_PLAYERS', '10'))
    # Round budget
    TIME_BUDGET_SEC = int(os.environ.get('TIME_BUDGET_SEC', '900'))
    TOTAL_DISTANCE = int(os.environ.get('TOTAL_DISTANCE', '100'))
    SECRET_USES = int(os.environ.get('SECRET_USES', '3'))
    CHAT_MAX_LENGTH = int(os.environ.get('CHAT_MAX_LENGTH', '200'))
    # Optional: fixed seed for reproducible sessions. Unset uses OS entropy.
    RANDOM_SEED = os.environ.get('RANDOM_SEED')
