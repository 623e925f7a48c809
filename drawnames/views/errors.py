from __future__ import annotations

import logging

from flask import Flask, jsonify, request
from flask_wtf.csrf import CSRFError

from ..errors import DrawError, GenerationExhausted


logger = logging.getLogger(__name__)


def register_error_handlers(app: Flask) -> None:
    """DrawError -> JSON envelope; CSRF failures get the same shape."""

    @app.errorhandler(DrawError)
    def draw_error(exc: DrawError):
        if isinstance(exc, GenerationExhausted):
            logger.exception("Draw engine defect on %s", request.path)
        else:
            logger.warning("%s on %s: %s", exc.code, request.path, exc.message)
        return jsonify(exc.to_response()), exc.http_status

    @app.errorhandler(CSRFError)
    def csrf_error(exc: CSRFError):
        logger.warning("CSRF rejected on %s: %s", request.path, exc.description)
        return jsonify({"error": {"code": "csrf", "message": exc.description}}), 400
