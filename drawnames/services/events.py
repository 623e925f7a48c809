from __future__ import annotations

import logging

from sqlalchemy import or_, update

from ..errors import EventNotFound, InvalidParticipant, RegistrationClosed
from ..extensions import db
from ..models import Event, EventStatus, Exclusion, Participant
from ..security import hash_client_key, verify_client_key
from .locks import event_guard


logger = logging.getLogger(__name__)


def get_event(event_id: int, fresh: bool = False) -> Event:
    """Load an event; ``fresh`` re-reads the row even if this session has it."""
    event = db.session.get(Event, event_id, populate_existing=fresh)
    if event is None:
        raise EventNotFound(event_id)
    return event


def event_participants(event_id: int) -> list[Participant]:
    return Participant.query.filter_by(event_id=event_id).order_by(Participant.id.asc()).all()


def participant_names(event_id: int) -> dict[int, str]:
    return {p.id: p.name for p in event_participants(event_id)}


def claim_open(event_id: int) -> bool:
    """
    Bump the event version inside the current transaction, only if the event
    is still open. Callers roll back when this returns False.
    """
    result = db.session.execute(
        update(Event)
        .where(Event.id == event_id, Event.status == EventStatus.OPEN)
        .values(version=Event.version + 1)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def _clean_registration(name: str | None, client_hash: str | None) -> tuple[str, str]:
    name = (name or "").strip()
    client_hash = (client_hash or "").strip().lower()
    if not name:
        raise InvalidParticipant("Name is required.")
    if not client_hash:
        raise InvalidParticipant("Missing passphrase hash. Please refresh and try again.")
    return name, client_hash


def create_event(
    name: str,
    organizer_name: str,
    client_hash: str,
    email: str | None = None,
    max_participants: int | None = None,
) -> tuple[Event, Participant]:
    """Open a new event with its organizer as the first participant."""
    name = (name or "").strip()
    if not name:
        raise InvalidParticipant("Event name is required.")
    organizer_name, client_hash = _clean_registration(organizer_name, client_hash)
    if max_participants is not None and max_participants < 3:
        raise InvalidParticipant("An event needs room for at least 3 participants.")

    event = Event(name=name, status=EventStatus.OPEN, max_participants=max_participants)
    db.session.add(event)
    db.session.flush()

    organizer = Participant(
        event_id=event.id,
        name=organizer_name,
        email=(email or "").strip() or None,
        passkey_hash=hash_client_key(client_hash),
    )
    db.session.add(organizer)
    db.session.flush()
    event.organizer_id = organizer.id
    db.session.commit()

    logger.info("Event %s opened by participant %s", event.id, organizer.id)
    return event, organizer


def join_event(event_id: int, name: str, client_hash: str, email: str | None = None) -> Participant:
    name, client_hash = _clean_registration(name, client_hash)
    email = (email or "").strip() or None

    with event_guard(event_id):
        event = get_event(event_id, fresh=True)
        if not event.is_open:
            raise RegistrationClosed("Registration is closed; names are being drawn.")
        if event.max_participants is not None:
            if Participant.query.filter_by(event_id=event.id).count() >= event.max_participants:
                raise RegistrationClosed("This event is full.")
        if Participant.query.filter_by(event_id=event.id, name=name).first():
            raise InvalidParticipant("That name is already registered.")

        p = Participant(event_id=event.id, name=name, email=email, passkey_hash=hash_client_key(client_hash))
        if not claim_open(event.id):
            db.session.rollback()
            raise RegistrationClosed("Registration is closed; names are being drawn.")
        db.session.add(p)
        db.session.commit()

    logger.info("Participant %s joined event %s", p.id, event_id)
    return p


def authenticate(event_id: int, name: str, client_hash: str) -> Participant | None:
    name = (name or "").strip()
    client_hash = (client_hash or "").strip().lower()
    if not name or not client_hash:
        return None
    p = Participant.query.filter_by(event_id=event_id, name=name).first()
    if p and verify_client_key(client_hash, p.passkey_hash):
        return p
    return None


def remove_participant(event_id: int, participant_id: int) -> str:
    """Organizer removes someone while the event is still open."""
    with event_guard(event_id):
        event = get_event(event_id, fresh=True)
        if not event.is_open:
            raise RegistrationClosed("Participants can only be removed while the event is open.")

        p = db.session.get(Participant, participant_id)
        if p is None or p.event_id != event.id:
            raise InvalidParticipant(f"Unknown participant: {participant_id!r}")
        if p.id == event.organizer_id:
            raise InvalidParticipant("The organizer cannot be removed from their own event.")

        if not claim_open(event.id):
            db.session.rollback()
            raise RegistrationClosed("Participants can only be removed while the event is open.")

        # Clean up exclusions involving this participant
        Exclusion.query.filter(
            Exclusion.event_id == event.id,
            or_(Exclusion.giver_id == p.id, Exclusion.receiver_id == p.id),
        ).delete(synchronize_session=False)

        name = p.name
        db.session.delete(p)
        db.session.commit()

    logger.info("Participant %s removed from event %s", participant_id, event_id)
    return name
