from flask import Flask
from .config import config_by_name
from .extensions import db
from .commands import register_commands
from .domain.field_types import build_default_catalog


def create_app(config_name: str = "development") -> Flask:
    app = Flask(__name__)
    app.config.from_object(config_by_name[config_name])

    # -------------------------------------------------
    # Logging
    # -------------------------------------------------
    app.logger.setLevel(app.config["LOG_LEVEL"])

    # -------------------------------------------------
    # Extensions
    # -------------------------------------------------
    db.init_app(app)

    # Model modules register their tables and listeners on import
    from .models import audit_log, component, story, story_version, translation_link  # noqa: F401

    # -------------------------------------------------
    # Field types (frozen for the lifetime of the app)
    # -------------------------------------------------
    app.extensions["field_types"] = build_default_catalog()

    # -------------------------------------------------
    # CLI
    # -------------------------------------------------
    register_commands(app)

    return app
