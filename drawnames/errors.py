from __future__ import annotations

from typing import Any, Iterable, Mapping


class DrawError(RuntimeError):
    """Base class for every failure the draw engine reports to callers."""

    code = "draw_error"
    http_status = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def details(self) -> dict[str, Any]:
        return {}

    def to_response(self) -> dict[str, Any]:
        body: dict[str, Any] = {"code": self.code, "message": self.message}
        body.update(self.details())
        return {"error": body}


class InvalidParticipant(DrawError):
    code = "invalid_participant"
    http_status = 400


class TooFewParticipants(DrawError):
    code = "too_few_participants"
    http_status = 409

    def __init__(self, count: int, minimum: int):
        super().__init__(f"Need at least {minimum} participants to draw names (have {count}).")
        self.count = count
        self.minimum = minimum

    def details(self) -> dict[str, Any]:
        return {"count": self.count, "minimum": self.minimum}


class Infeasible(DrawError):
    """No assignment satisfies the exclusions. ``blocking`` names the givers to fix."""

    code = "infeasible"
    http_status = 409

    def __init__(self, blocking: Iterable, names: Mapping | None = None):
        self.blocking = frozenset(blocking)
        self.names = dict(names or {})
        labels = sorted(str(self.names.get(p, p)) for p in self.blocking)
        if len(labels) == 1:
            message = f"{labels[0]} has no valid recipient left."
        else:
            message = f"{', '.join(labels)} do not have enough valid recipients between them."
        super().__init__(message)

    def details(self) -> dict[str, Any]:
        return {
            "blocking": sorted(self.blocking, key=str),
            "blocking_names": sorted(str(self.names.get(p, p)) for p in self.blocking),
        }


class NotReady(DrawError):
    code = "not_ready"
    http_status = 409


class GenerationExhausted(DrawError):
    # Raised only when the generator breaks its own contract.
    code = "generation_exhausted"
    http_status = 500


class LifecycleError(DrawError):
    code = "invalid_state"
    http_status = 409


class EventNotFound(DrawError):
    code = "event_not_found"
    http_status = 404

    def __init__(self, event_id):
        super().__init__(f"No event with id {event_id}.")
        self.event_id = event_id


class RegistrationClosed(DrawError):
    code = "registration_closed"
    http_status = 409
