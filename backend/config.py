import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    # Comma-separated list of browser origins allowed to connect
    CORS_ORIGINS = [o.strip() for o in os.environ.get('CORS_ORIGINS', '*').split(',') if o.strip()]
    SOCKETIO_NAMESPACE = os.environ.get('SOCKETIO_NAMESPACE', '/')
    # Pause before a lost life / cleared level is re-dealt (seconds)
    TRANSITION_DELAY_SEC = float(os.environ.get('TRANSITION_DELAY_SEC', '1.5'))
    # Room lifetime and how often stale rooms are swept (seconds)
    ROOM_EXPIRY_SEC = int(os.environ.get('ROOM_EXPIRY_SEC', str(6 * 60 * 60)))
    ROOM_SWEEP_INTERVAL_SEC = int(os.environ.get('ROOM_SWEEP_INTERVAL_SEC', str(30 * 60)))
    MAX_PLAYERS = int(os.environ.get('MAX_PLAYERS', '4'))
    MAX_NAME_LENGTH = int(os.environ.get('MAX_NAME_LENGTH', '20'))
    # Optional: fixed seed for reproducible deals. Unset means system randomness.
    DEAL_SEED = int(os.environ['DEAL_SEED']) if os.environ.get('DEAL_SEED') else None
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    HOST = os.environ.get('HOST', '0.0.0.0')
    PORT = int(os.environ.get('PORT', '9998'))
