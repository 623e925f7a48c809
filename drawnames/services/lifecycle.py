from __future__ import annotations

import logging
import random
from datetime import datetime

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..engine import Assignment, check_feasibility, generate_assignment
from ..errors import GenerationExhausted, LifecycleError
from ..extensions import db
from ..models import Draw, DrawState, Event, EventStatus
from ..security import decrypt_recipient, encrypt_recipient
from .events import get_event, participant_names
from .exclusions import load_exclusion_model
from .locks import event_guard


logger = logging.getLogger(__name__)


def _advance(event_id: int, expected: EventStatus, new: EventStatus, **values) -> bool:
    """Compare-and-swap the event status inside the current transaction."""
    result = db.session.execute(
        update(Event)
        .where(Event.id == event_id, Event.status == expected)
        .values(status=new, version=Event.version + 1, **values)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def lock(event_id: int) -> Event:
    """
    Freeze participants and exclusions: OPEN -> LOCKED.

    Re-checks feasibility first so a last-second edit can't lock an event
    that has no valid draw. Locking a locked event is a no-op.
    """
    with event_guard(event_id):
        event = get_event(event_id, fresh=True)
        if event.status == EventStatus.LOCKED:
            return event
        if event.status == EventStatus.ASSIGNED:
            raise LifecycleError("Names have already been drawn for this event.")

        model = load_exclusion_model(event)
        check_feasibility(model).raise_for_status(participant_names(event.id))

        if not _advance(event.id, EventStatus.OPEN, EventStatus.LOCKED, locked_at=datetime.utcnow()):
            db.session.rollback()
            event = get_event(event_id, fresh=True)
            if event.status != EventStatus.LOCKED:
                raise LifecycleError("The event changed while locking; try again.")
            return event
        db.session.commit()

    logger.info("Event %s locked with %d participants", event_id, len(model))
    return get_event(event_id, fresh=True)


def unlock(event_id: int) -> Event:
    """LOCKED -> OPEN so exclusions can be edited again. Impossible once assigned."""
    with event_guard(event_id):
        event = get_event(event_id, fresh=True)
        if event.status == EventStatus.OPEN:
            return event
        if event.status == EventStatus.ASSIGNED:
            raise LifecycleError("The draw cannot be undone once names are assigned.")

        if not _advance(event.id, EventStatus.LOCKED, EventStatus.OPEN, locked_at=None):
            db.session.rollback()
            raise LifecycleError("The event changed while unlocking; try again.")
        db.session.commit()

    logger.info("Event %s unlocked", event_id)
    return get_event(event_id, fresh=True)


def load_assignment(event: Event) -> Assignment:
    draws = Draw.query.filter_by(event_id=event.id).all()
    if not draws:
        raise GenerationExhausted(f"Event {event.id} is assigned but has no draws.")
    return Assignment({
        d.giver_id: decrypt_recipient(event.id, d.giver_id, d.recipient_ciphertext)
        for d in draws
    })


def _commit_assignment(event_id: int, assignment: Assignment) -> bool:
    """
    Write LOCKED -> ASSIGNED and every Draw row in one transaction.

    Returns False, with nothing written, when another writer got there first.
    """
    try:
        if not _advance(event_id, EventStatus.LOCKED, EventStatus.ASSIGNED, assigned_at=datetime.utcnow()):
            db.session.rollback()
            return False
        for giver_id, recipient_id in assignment.items():
            db.session.add(Draw(
                event_id=event_id,
                giver_id=giver_id,
                recipient_ciphertext=encrypt_recipient(event_id, giver_id, recipient_id),
                state=DrawState.NOT_REVEALED,
            ))
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return False
    except SQLAlchemyError:
        db.session.rollback()
        raise
    return True


def assign(event_id: int, rng: random.Random | None = None) -> Assignment:
    """
    Draw names for a locked event exactly once.

    Concurrent and repeated callers all get the single committed assignment;
    only the first caller through runs the generator. Infeasible leaves the
    event LOCKED with nothing written.
    """
    with event_guard(event_id):
        event = get_event(event_id, fresh=True)
        if event.status == EventStatus.ASSIGNED:
            return load_assignment(event)
        if event.status != EventStatus.LOCKED:
            raise LifecycleError("Lock the event before drawing names.")

        model = load_exclusion_model(event)
        check_feasibility(model).raise_for_status(participant_names(event.id))

        assignment = generate_assignment(
            model,
            rng=rng,
            rejection_attempts=current_app.config.get("DRAW_REJECTION_ATTEMPTS"),
            swap_rounds=current_app.config.get("DRAW_SWAP_ROUNDS"),
        )

        if not _commit_assignment(event.id, assignment):
            logger.info("Event %s was assigned by another writer; reading its draw", event_id)
            return load_assignment(get_event(event_id, fresh=True))

    logger.info("Event %s assigned for %d participants", event_id, len(assignment))
    return assignment
