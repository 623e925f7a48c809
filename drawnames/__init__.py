from __future__ import annotations

import logging
import os
from typing import Any, Mapping

from flask import Flask

from .extensions import init_extensions
from .views.auth import auth_bp
from .views.errors import register_error_handlers
from .views.events import events_bp


def _optional_int(name: str) -> int | None:
    raw = (os.environ.get(name) or "").strip()
    return int(raw) if raw else None


def _configure_logging(app: Flask) -> None:
    logger = logging.getLogger("drawnames")
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
        logger.addHandler(handler)
    logger.setLevel(app.config["LOG_LEVEL"])


def create_app(test_config: Mapping[str, Any] | None = None) -> Flask:
    app = Flask(__name__)

    app.config["SECRET_KEY"] = os.environ.get("SECRET_KEY", "dev-secret-change-me")
    app.config["SQLALCHEMY_DATABASE_URI"] = os.environ.get("DATABASE_URL", "sqlite:///drawnames.db")
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False

    # Optional Fernet key for recipients at rest; derived from SECRET_KEY otherwise
    app.config["RECIPIENT_ENC_KEY"] = os.environ.get("RECIPIENT_ENC_KEY", "").strip()

    # Generator caps; None lets the engine scale them with group size
    app.config["DRAW_REJECTION_ATTEMPTS"] = _optional_int("DRAW_REJECTION_ATTEMPTS")
    app.config["DRAW_SWAP_ROUNDS"] = _optional_int("DRAW_SWAP_ROUNDS")

    app.config["LOG_LEVEL"] = os.environ.get("LOG_LEVEL", "INFO").upper()

    if test_config:
        app.config.update(test_config)

    _configure_logging(app)

    init_extensions(app)

    # Blueprints
    app.register_blueprint(auth_bp)
    app.register_blueprint(events_bp)

    register_error_handlers(app)

    return app
