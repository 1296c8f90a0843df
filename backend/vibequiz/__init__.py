from flask import Flask, current_app
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
migrate = Migrate()
socketio = SocketIO(async_mode=None)


def build_store(flask_app):
    """Instantiate the store backend named by STORE_BACKEND (None if unset)."""
    backend = (flask_app.config.get('STORE_BACKEND') or '').strip().lower()
    if backend == 'sql':
        from vibequiz.store.sql import SqlStore
        return SqlStore(flask_app)
    if backend == 'memory':
        from vibequiz.store.memory import MemoryStore
        return MemoryStore()
    if backend:
        raise ValueError(f"Unknown STORE_BACKEND {backend!r}")
    flask_app.logger.warning("STORE_BACKEND is not set; every game operation will fail as unconfigured")
    return None


def get_context():
    """The QuizContext of the running app."""
    return current_app.extensions['vibequiz']


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    allowed_origins = flask_app.config.get('CORS_ORIGINS') or []

    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # Ensure the store table is known to SQLAlchemy before any create_all()
    from vibequiz import models  # noqa: F401
    from vibequiz.context import QuizContext
    from vibequiz.socketio_events import SubscriptionHub, register_socketio_handlers

    store = build_store(flask_app)
    flask_app.extensions['vibequiz'] = QuizContext.from_config(flask_app.config, store)
    flask_app.extensions['vibequiz_hub'] = SubscriptionHub(store)

    from vibequiz.main import main
    flask_app.register_blueprint(main)

    from vibequiz.api.games import games
    flask_app.register_blueprint(games, url_prefix='/api')

    register_socketio_handlers()

    @click.command('init-store')
    def init_store_command():
        """Creates the store table without running migrations."""
        with flask_app.app_context():
            db.create_all()
            print('Store table is ready.')

    @click.command('seed-sample-quiz')
    def seed_sample_quiz_command():
        """Saves the bundled sample quiz."""
        from vibequiz.services.quizzes import SAMPLE_QUIZ, save_quiz
        with flask_app.app_context():
            quiz = save_quiz(get_context(), SAMPLE_QUIZ)
            print(f'Sample quiz saved as {quiz.id}.')

    flask_app.cli.add_command(init_store_command)
    flask_app.cli.add_command(seed_sample_quiz_command)

    return flask_app
