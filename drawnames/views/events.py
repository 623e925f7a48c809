from __future__ import annotations

from flask import Blueprint, jsonify, request
from flask.views import MethodView
from flask_login import current_user, login_user

from ..errors import InvalidParticipant
from ..policies import EditableOnlyWhenOpenMixin, OrganizerRequiredMixin, ParticipantRequiredMixin
from ..services.events import (
    create_event,
    event_participants,
    get_event,
    join_event,
    participant_names,
    remove_participant,
)
from ..services.exclusions import check_feasibility, configure_exclusions, exclusion_overview
from ..services.lifecycle import assign, lock, unlock
from ..services.reveals import reveal, reveal_progress

events_bp = Blueprint("events", __name__, url_prefix="/events")


def _json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _iso(value):
    return value.isoformat() if value else None


def _event_json(event) -> dict:
    people = event_participants(event.id)
    return {
        "id": event.id,
        "name": event.name,
        "status": event.status.value,
        "organizer_id": event.organizer_id,
        "max_participants": event.max_participants,
        "num_participants": len(people),
        "participants": [{"id": p.id, "name": p.name} for p in people],
        "locked_at": _iso(event.locked_at),
        "assigned_at": _iso(event.assigned_at),
    }


def _feasibility_json(feasibility, event_id: int) -> dict | None:
    if feasibility is None:
        return None
    names = participant_names(event_id)
    return {
        "feasible": feasibility.feasible,
        "blocking": sorted(feasibility.blocking),
        "blocking_names": sorted(names.get(p, str(p)) for p in feasibility.blocking),
    }


def _parse_edits(data: dict) -> list[tuple]:
    raw = data.get("edits")
    if not isinstance(raw, list):
        raise InvalidParticipant("Expected a list of exclusion edits.")
    edits = []
    for item in raw:
        if not isinstance(item, dict):
            raise InvalidParticipant("Each edit needs op, a and b.")
        a, b = item.get("a"), item.get("b")
        if type(a) is not int or type(b) is not int:
            raise InvalidParticipant("Exclusion edits must reference participant ids.")
        edits.append((item.get("op"), a, b))
    return edits


class CreateEventView(MethodView):
    def post(self):
        data = _json_body()
        max_participants = data.get("max_participants")
        if max_participants is not None and type(max_participants) is not int:
            raise InvalidParticipant("max_participants must be a whole number.")

        event, organizer = create_event(
            data.get("name"),
            data.get("organizer_name"),
            data.get("client_hash"),
            email=data.get("email"),
            max_participants=max_participants,
        )
        login_user(organizer)
        return jsonify({"event": _event_json(event), "participant_id": organizer.id}), 201


class EventView(MethodView):
    def get(self, event_id: int):
        return jsonify(_event_json(get_event(event_id)))


class JoinEventView(MethodView):
    def post(self, event_id: int):
        data = _json_body()
        p = join_event(event_id, data.get("name"), data.get("client_hash"), email=data.get("email"))
        return jsonify({"participant_id": p.id, "event_id": event_id}), 201


class RemoveParticipantView(OrganizerRequiredMixin):
    def post(self, event_id: int, participant_id: int):
        name = remove_participant(event_id, participant_id)
        return jsonify({"removed": participant_id, "name": name})


class ExclusionsView(EditableOnlyWhenOpenMixin):
    def get(self, event_id: int):
        return jsonify({"participants": exclusion_overview(event_id)})

    def post(self, event_id: int):
        # EditableOnlyWhenOpenMixin blocks POST when locked
        model, feasibility = configure_exclusions(event_id, _parse_edits(_json_body()))
        return jsonify({
            "pairs": [list(pair) for pair in model.pairs()],
            "feasibility": _feasibility_json(feasibility, event_id),
            "participants": exclusion_overview(event_id),
        })


class FeasibilityView(OrganizerRequiredMixin):
    def get(self, event_id: int):
        return jsonify(_feasibility_json(check_feasibility(event_id), event_id))


class LockView(OrganizerRequiredMixin):
    def post(self, event_id: int):
        return jsonify(_event_json(lock(event_id)))


class UnlockView(OrganizerRequiredMixin):
    def post(self, event_id: int):
        return jsonify(_event_json(unlock(event_id)))


class AssignView(OrganizerRequiredMixin):
    def post(self, event_id: int):
        assignment = assign(event_id)
        event = get_event(event_id, fresh=True)
        # Confirmation only: the organizer never sees who drew whom.
        return jsonify({
            "status": event.status.value,
            "assigned_at": _iso(event.assigned_at),
            "num_participants": len(assignment),
        })


class RevealView(ParticipantRequiredMixin):
    def post(self, event_id: int):
        result = reveal(event_id, current_user.id)
        return jsonify({
            "recipient_id": result.recipient_id,
            "recipient_name": result.recipient_name,
            "first_time": result.first_time,
            "decoys": result.decoys,
        })


class ProgressView(OrganizerRequiredMixin):
    def get(self, event_id: int):
        return jsonify(reveal_progress(event_id))


# Register routes
events_bp.add_url_rule("", view_func=CreateEventView.as_view("create"), methods=["POST"])
events_bp.add_url_rule("/<int:event_id>", view_func=EventView.as_view("detail"))
events_bp.add_url_rule("/<int:event_id>/join", view_func=JoinEventView.as_view("join"), methods=["POST"])
events_bp.add_url_rule(
    "/<int:event_id>/participants/<int:participant_id>/delete",
    view_func=RemoveParticipantView.as_view("remove_participant"),
    methods=["POST"],
)

events_bp.add_url_rule("/<int:event_id>/exclusions", view_func=ExclusionsView.as_view("exclusions"), methods=["GET", "POST"])
events_bp.add_url_rule("/<int:event_id>/feasibility", view_func=FeasibilityView.as_view("feasibility"))

events_bp.add_url_rule("/<int:event_id>/lock", view_func=LockView.as_view("lock"), methods=["POST"])
events_bp.add_url_rule("/<int:event_id>/unlock", view_func=UnlockView.as_view("unlock"), methods=["POST"])
events_bp.add_url_rule("/<int:event_id>/assign", view_func=AssignView.as_view("assign"), methods=["POST"])

events_bp.add_url_rule("/<int:event_id>/reveal", view_func=RevealView.as_view("reveal"), methods=["POST"])
events_bp.add_url_rule("/<int:event_id>/progress", view_func=ProgressView.as_view("progress"))
