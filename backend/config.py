import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///playgame.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # Tag cooldown: a tag is accepted once floor(elapsed / TAG_INTERVAL_SEC) >= TAG_COOLDOWN_INTERVALS
    TAG_INTERVAL_SEC = int(os.environ.get('TAG_INTERVAL_SEC', '5'))
    TAG_COOLDOWN_INTERVALS = int(os.environ.get('TAG_COOLDOWN_INTERVALS', '5'))
    # Tick deltas
    SCORE_NON_TARGET = int(os.environ.get('SCORE_NON_TARGET', '1'))
    SCORE_TARGET = int(os.environ.get('SCORE_TARGET', '-5'))
    # Tag-time bonus multipliers (applied to elapsed intervals)
    TIME_MULTIPLIER_TAGGER = float(os.environ.get('TIME_MULTIPLIER_TAGGER', '0.1'))
    TIME_MULTIPLIER_TAGGED = float(os.environ.get('TIME_MULTIPLIER_TAGGED', '-0.1'))
    # Background timers (seconds). 0 disables.
    AUTOSAVE_INTERVAL_SEC = int(os.environ.get('AUTOSAVE_INTERVAL_SEC', '30'))
    SCORE_TICK_INTERVAL_SEC = int(os.environ.get('SCORE_TICK_INTERVAL_SEC', '60'))
    # Optional: heartbeat interval for timer worker logs (sec). 0 disables.
    TIMER_HEARTBEAT_SEC = int(os.environ.get('TIMER_HEARTBEAT_SEC', '0'))
    # Load the stored snapshot when the app boots
    RESUME_ON_START = os.environ.get('RESUME_ON_START', '1') not in ('0', 'false', 'False')
