from __future__ import annotations

from flask import jsonify, request
from flask.views import MethodView
from flask_login import current_user

from .services.events import get_event


def _deny(status: int, code: str, message: str):
    return jsonify({"error": {"code": code, "message": message}}), status


def is_participant_of(event_id: int) -> bool:
    return current_user.is_authenticated and current_user.event_id == event_id


def is_organizer_of(event) -> bool:
    return is_participant_of(event.id) and current_user.id == event.organizer_id


# --------- Class-based view Mixins ----------
# Every URL these guard carries an ``event_id`` view argument.

class ParticipantRequiredMixin(MethodView):
    def dispatch_request(self, *args, **kwargs):
        if not current_user.is_authenticated:
            return _deny(401, "login_required", "Log in to this event first.")
        if current_user.event_id != kwargs.get("event_id"):
            return _deny(403, "forbidden", "You are not a participant of this event.")
        return super().dispatch_request(*args, **kwargs)


class OrganizerRequiredMixin(ParticipantRequiredMixin):
    def dispatch_request(self, *args, **kwargs):
        if current_user.is_authenticated:
            event = get_event(kwargs.get("event_id"))
            if not is_organizer_of(event):
                return _deny(403, "forbidden", "Only the organizer can do that.")
        return super().dispatch_request(*args, **kwargs)


class EditableOnlyWhenOpenMixin(OrganizerRequiredMixin):
    """
    Allows GET always.
    Blocks POST/PUT/PATCH/DELETE once the event is locked.
    """
    def dispatch_request(self, *args, **kwargs):
        if request.method in {"POST", "PUT", "PATCH", "DELETE"}:
            event = get_event(kwargs.get("event_id"))
            if not event.is_open:
                return _deny(409, "invalid_state", "This is view-only because the event is locked.")
        return super().dispatch_request(*args, **kwargs)
