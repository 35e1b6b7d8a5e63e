# backend/thintava/__init__.py
from flask import Flask

from .config import Config
from .extensions import db, migrate
from .notifications import init_dispatcher
from .scheduler import init_scheduler
from .triggers import init_triggers


def create_app(config_overrides=None, dispatcher=None) -> Flask:
    """
    Build the application and its collaborators.

    config_overrides is applied on top of Config (tests pass an in-memory
    database and TRIGGERS_ASYNC=False). dispatcher replaces the notification
    backend chosen from config.
    """
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    app.logger.setLevel(app.config["LOG_LEVEL"])

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Collaborators shared by every handler
    init_dispatcher(app, dispatcher)
    runner = init_triggers(app)
    init_scheduler(app)

    from .services import register_triggers
    register_triggers(runner)

    from .routes.system import system_bp
    app.register_blueprint(system_bp)

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
