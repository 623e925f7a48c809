from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy import update

from ..errors import NotReady
from ..extensions import db
from ..models import Draw, DrawState, EventStatus
from ..security import decrypt_recipient
from .events import get_event, participant_names


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Reveal:
    participant_id: int
    recipient_id: int
    recipient_name: str
    first_time: bool
    # Shuffled names for the client's drawing animation only.
    decoys: list[str] = field(default_factory=list)


def _decoys(names: dict[int, str], participant_id: int, rng: random.Random | None) -> list[str]:
    pool = [name for pid, name in names.items() if pid != participant_id]
    (rng or random.Random()).shuffle(pool)
    return pool


def reveal(event_id: int, participant_id: int, rng: random.Random | None = None) -> Reveal:
    """
    Show a participant the recipient fixed at assignment time.

    The first call flips the draw to REVEALED; later calls return the same
    recipient and write nothing. ``rng`` only shuffles the decoy names.
    """
    event = get_event(event_id, fresh=True)
    if event.status != EventStatus.ASSIGNED:
        raise NotReady("Names have not been drawn for this event yet.")

    draw = Draw.query.filter_by(event_id=event.id, giver_id=participant_id).first()
    if draw is None:
        raise NotReady(f"Participant {participant_id!r} has no draw in this event.")

    result = db.session.execute(
        update(Draw)
        .where(Draw.id == draw.id, Draw.state == DrawState.NOT_REVEALED)
        .values(state=DrawState.REVEALED, revealed_at=datetime.utcnow())
        .execution_options(synchronize_session=False)
    )
    db.session.commit()
    first_time = result.rowcount == 1

    recipient_id = decrypt_recipient(event.id, draw.giver_id, draw.recipient_ciphertext)
    names = participant_names(event.id)
    if first_time:
        logger.info("Participant %s revealed their draw in event %s", participant_id, event.id)

    return Reveal(
        participant_id=participant_id,
        recipient_id=recipient_id,
        recipient_name=names[recipient_id],
        first_time=first_time,
        decoys=_decoys(names, participant_id, rng),
    )


def reveal_progress(event_id: int) -> dict:
    """Who has looked at their draw so far. Never exposes recipients."""
    event = get_event(event_id, fresh=True)
    names = participant_names(event.id)
    if event.status != EventStatus.ASSIGNED:
        return {"revealed": [], "pending": sorted(names.values()), "total": len(names)}

    revealed, pending = [], []
    for d in Draw.query.filter_by(event_id=event.id).all():
        (revealed if d.state == DrawState.REVEALED else pending).append(names[d.giver_id])
    return {"revealed": sorted(revealed), "pending": sorted(pending), "total": len(names)}
