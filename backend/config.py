import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///vibequiz.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # Store backend: 'sql', 'memory', or empty to run unconfigured
    STORE_BACKEND = os.environ.get('STORE_BACKEND', 'sql')
    # Minimum roster size before the host may start the quiz
    MIN_PLAYERS = int(os.environ.get('MIN_PLAYERS', '1'))
    DEFAULT_TIME_LIMIT_SEC = int(os.environ.get('DEFAULT_TIME_LIMIT_SEC', '30'))
    MAX_TEAM_NAME_LENGTH = int(os.environ.get('MAX_TEAM_NAME_LENGTH', '30'))
    # Optional: reveal automatically once the timer plus grace has elapsed
    AUTO_REVEAL = os.environ.get('AUTO_REVEAL', '0') == '1'
    AUTO_REVEAL_GRACE_SEC = int(os.environ.get('AUTO_REVEAL_GRACE_SEC', '2'))
    CORS_ORIGINS = [
        origin.strip()
        for origin in os.environ.get(
            'CORS_ORIGINS',
            'http://localhost:5173,http://127.0.0.1:5173',
        ).split(',')
        if origin.strip()
    ]
