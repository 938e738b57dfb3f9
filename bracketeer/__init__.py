"""Initialize the Flask app and its services."""

import atexit
import datetime
import json
import os

import firebase_admin
from firebase_admin import credentials, firestore
from flask import Flask
from werkzeug.middleware.proxy_fix import ProxyFix

from .core.constants import (
    AUTO_TOURNAMENT_GAMES,
    AUTO_TOURNAMENT_INTERVAL_SECONDS,
    AUTO_TOURNAMENT_REPLACEMENT_DELAY,
    AUTO_TOURNAMENT_RETENTION_HOURS,
    AUTO_TOURNAMENT_SIZES,
    DEFAULT_GAMES,
)
from .extensions import EXTENSION_KEY, Services
from .gameplay import default_registry
from .locks import KeyedLocks
from .store import DocumentStore
from .tournament.scheduler import AutoTournamentScheduler
from .tournament.services import TournamentService
from .user.services import UserService
from .user.stats import StatsUpdater

TRUE_VALUES = ["true", "1", "t", "yes"]


def _env_list(name, default, cast=str):
    """Read a comma separated environment variable."""
    raw = os.environ.get(name)
    if not raw:
        return list(default)
    return [cast(item.strip()) for item in raw.split(",") if item.strip()]


def _env_games():
    """Read the games catalog from ``GAMES`` as a JSON object of id to name."""
    raw = os.environ.get("GAMES")
    if not raw:
        return dict(DEFAULT_GAMES)
    return json.loads(raw)


def init_firebase(app):
    """Initialize the Firebase Admin SDK from the best available credentials."""
    cred = None
    project_id = None
    cred_info = {}

    # First, try to load from environment variable (for production)
    cred_json = os.environ.get("FIREBASE_CREDENTIALS_JSON")
    if cred_json:
        try:
            cred_info = json.loads(cred_json)
            project_id = cred_info.get("project_id")
            cred = credentials.Certificate(cred_info)
        except (json.JSONDecodeError, ValueError) as e:
            app.logger.error(f"Error parsing FIREBASE_CREDENTIALS_JSON: {e}")

    # If env var fails or is not present, try loading from file (for local dev)
    if not cred:
        cred_path = os.path.join(
            os.path.dirname(os.path.dirname(__file__)), "firebase_credentials.json"
        )
        if os.path.exists(cred_path):
            try:
                with open(cred_path, "r") as f:
                    cred_info = json.load(f)
                project_id = cred_info.get("project_id")
                cred = credentials.Certificate(cred_path)
            except (json.JSONDecodeError, ValueError) as e:
                app.logger.error(f"Error loading credentials from file: {e}")

    # If both methods fail, fallback to default credentials
    if not cred:
        try:
            cred = credentials.ApplicationDefault()
            project_id = os.environ.get("FIREBASE_PROJECT_ID")
        except Exception as e:  # noqa: BLE001
            app.logger.error(
                f"Could not find any valid credentials (env, file, or default): {e}"
            )

    if cred and not firebase_admin._apps:
        try:
            options = {"projectId": project_id} if project_id else None
            firebase_admin.initialize_app(cred, options)
        except ValueError:
            # This can happen if the app is already initialized, which is fine.
            app.logger.info("Firebase app already initialized.")


def build_services(app):
    """Wire the store, locks, services and scheduler for ``app``."""
    store = DocumentStore(app.config.get("FIRESTORE_CLIENT"))
    locks = KeyedLocks()
    stats = StatsUpdater(store, locks)
    games = app.config["GAMES"]
    users = UserService(store, locks, games.keys())
    tournaments = TournamentService(
        store,
        locks,
        stats,
        games,
        gameplay=default_registry(),
        rng=app.config.get("BRACKET_RNG"),
    )
    scheduler = AutoTournamentScheduler(
        tournaments,
        app.config["AUTO_TOURNAMENT_GAMES"],
        app.config["AUTO_TOURNAMENT_SIZES"],
        interval_seconds=app.config["AUTO_TOURNAMENT_INTERVAL_SECONDS"],
        retention=datetime.timedelta(
            hours=app.config["AUTO_TOURNAMENT_RETENTION_HOURS"]
        ),
        replacement_delay=app.config["AUTO_TOURNAMENT_REPLACEMENT_DELAY"],
    )
    return Services(
        store=store,
        locks=locks,
        stats=stats,
        users=users,
        tournaments=tournaments,
        scheduler=scheduler,
    )


def create_app(test_config=None):
    """Create and configure an instance of the Flask application."""
    app = Flask(__name__, instance_relative_config=True)

    # Load configuration
    app.config.from_mapping(
        SECRET_KEY=os.environ.get("SECRET_KEY") or "dev",
        ADMIN_TOKEN=os.environ.get("ADMIN_TOKEN"),
        GAMES=_env_games(),
        AUTO_TOURNAMENTS_ENABLED=(
            os.environ.get("AUTO_TOURNAMENTS_ENABLED") or "true"
        ).lower()
        in TRUE_VALUES,
        AUTO_TOURNAMENT_GAMES=_env_list(
            "AUTO_TOURNAMENT_GAMES", AUTO_TOURNAMENT_GAMES
        ),
        AUTO_TOURNAMENT_SIZES=_env_list(
            "AUTO_TOURNAMENT_SIZES", AUTO_TOURNAMENT_SIZES, cast=int
        ),
        AUTO_TOURNAMENT_INTERVAL_SECONDS=float(
            os.environ.get("AUTO_TOURNAMENT_INTERVAL_SECONDS")
            or AUTO_TOURNAMENT_INTERVAL_SECONDS
        ),
        AUTO_TOURNAMENT_RETENTION_HOURS=float(
            os.environ.get("AUTO_TOURNAMENT_RETENTION_HOURS")
            or AUTO_TOURNAMENT_RETENTION_HOURS
        ),
        AUTO_TOURNAMENT_REPLACEMENT_DELAY=float(
            os.environ.get("AUTO_TOURNAMENT_REPLACEMENT_DELAY")
            or AUTO_TOURNAMENT_REPLACEMENT_DELAY
        ),
    )

    if test_config:
        app.config.update(test_config)

    # Initialize Firebase Admin SDK only if not in testing mode
    if not app.config.get("TESTING"):
        init_firebase(app)
        if app.config.get("FIRESTORE_CLIENT") is None:
            app.config["FIRESTORE_CLIENT"] = firestore.client()

    services = build_services(app)
    app.extensions[EXTENSION_KEY] = services

    # Register blueprints
    from . import main as main_bp

    app.register_blueprint(main_bp.bp)

    from . import tournament as tournament_bp

    app.register_blueprint(tournament_bp.bp)

    from . import user as user_bp

    app.register_blueprint(user_bp.bp)
    app.register_blueprint(user_bp.users_bp)

    from . import leaderboard as leaderboard_bp

    app.register_blueprint(leaderboard_bp.bp)

    from . import admin as admin_bp

    app.register_blueprint(admin_bp.bp)

    from . import error_handlers

    app.register_blueprint(error_handlers.error_handlers_bp)

    if app.config["AUTO_TOURNAMENTS_ENABLED"] and not app.config.get("TESTING"):
        services.scheduler.start()
        atexit.register(services.scheduler.stop)

    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_prefix=1)

    return app
