from __future__ import annotations

from flask import Blueprint, jsonify, request
from flask.views import MethodView
from flask_login import login_user, logout_user, current_user
from flask_wtf.csrf import generate_csrf

from ..services.events import authenticate, get_event


auth_bp = Blueprint("auth", __name__, url_prefix="/auth")


class CsrfTokenView(MethodView):
    """JSON clients fetch a token here and send it back as X-CSRFToken."""
    def get(self):
        return jsonify({"csrf_token": generate_csrf()})


class LoginView(MethodView):
    def post(self, event_id: int):
        event = get_event(event_id)
        data = request.get_json(silent=True) or {}

        user = authenticate(event.id, data.get("name"), data.get("client_hash"))
        if user is None:
            return jsonify({"error": {
                "code": "invalid_login",
                "message": "Invalid name or this device does not have the correct saved passphrase.",
            }}), 401

        login_user(user)
        return jsonify({"participant_id": user.id, "event_id": event.id})


class LogoutView(MethodView):
    def get(self):
        if current_user.is_authenticated:
            logout_user()
        return jsonify({"logged_out": True})


auth_bp.add_url_rule("/csrf", view_func=CsrfTokenView.as_view("csrf"), methods=["GET"])
auth_bp.add_url_rule("/<int:event_id>/login", view_func=LoginView.as_view("login"), methods=["POST"])
auth_bp.add_url_rule("/logout", view_func=LogoutView.as_view("logout"), methods=["GET"])
