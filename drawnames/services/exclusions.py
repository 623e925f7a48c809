from __future__ import annotations

import logging
from typing import Iterable

from ..engine import ExclusionModel, Feasibility, MIN_PARTICIPANTS
from ..engine.feasibility import check_feasibility as feasibility_of
from ..errors import LifecycleError
from ..extensions import db
from ..models import Event, EventStatus, Exclusion
from .events import claim_open, event_participants, get_event
from .locks import event_guard


logger = logging.getLogger(__name__)

# Organizers are warned when someone has fewer candidates than this.
CANDIDATE_MARGIN = 2


def load_exclusion_model(event: Event) -> ExclusionModel:
    ids = [p.id for p in event_participants(event.id)]
    known = set(ids)
    rows = Exclusion.query.filter_by(event_id=event.id).all()
    return ExclusionModel(
        ids,
        [(e.giver_id, e.receiver_id) for e in rows if e.giver_id in known and e.receiver_id in known],
    )


def _store_exclusions(event: Event, model: ExclusionModel) -> None:
    """
    Persists both directions of every exclusion:
      a -> b and b -> a
    """
    Exclusion.query.filter_by(event_id=event.id).delete(synchronize_session=False)
    for a, b in model.pairs():
        db.session.add(Exclusion(event_id=event.id, giver_id=a, receiver_id=b))
        db.session.add(Exclusion(event_id=event.id, giver_id=b, receiver_id=a))


def _feasibility_if_enough(model: ExclusionModel) -> Feasibility | None:
    if len(model) < MIN_PARTICIPANTS:
        return None
    return feasibility_of(model)


def configure_exclusions(event_id: int, edits: Iterable[tuple]) -> tuple[ExclusionModel, Feasibility | None]:
    """
    Apply ``(op, a, b)`` edits to an open event.

    Returns the updated model and a fresh feasibility result (None while the
    event has fewer than three participants). Nothing is written when any edit
    is invalid.
    """
    edits = list(edits)
    with event_guard(event_id):
        event = get_event(event_id, fresh=True)
        if not event.is_open:
            raise LifecycleError("Exclusions are frozen once the event is locked.")

        model = load_exclusion_model(event)
        model.apply_edits(edits)

        if not claim_open(event.id):
            db.session.rollback()
            raise LifecycleError("Exclusions are frozen once the event is locked.")
        _store_exclusions(event, model)
        db.session.commit()

    feasibility = _feasibility_if_enough(model)
    logger.info(
        "Event %s exclusions updated (%d edits, %d pairs, feasible=%s)",
        event_id, len(edits), len(model.pairs()), None if feasibility is None else feasibility.feasible,
    )
    return model, feasibility


def check_feasibility(event_id: int) -> Feasibility:
    """Read-only check against the stored exclusions; raises TooFewParticipants below three."""
    event = get_event(event_id, fresh=True)
    if event.status == EventStatus.ASSIGNED:
        raise LifecycleError("Names have already been drawn for this event.")
    return feasibility_of(load_exclusion_model(event))


def exclusion_overview(event_id: int) -> list[dict]:
    """Per-participant exclusions and remaining candidates for the configuration screen."""
    event = get_event(event_id)
    people = event_participants(event.id)
    model = load_exclusion_model(event)
    short = set(model.under_constrained_margin(CANDIDATE_MARGIN))
    overview = []
    for p in people:
        overview.append({
            "id": p.id,
            "name": p.name,
            "excluded": sorted(model.exclusions(p.id)),
            "remaining_candidates": model.remaining_candidates(p.id),
            "warning": p.id in short,
        })
    return overview
