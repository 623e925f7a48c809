from __future__ import annotations

import enum
from datetime import datetime

from flask_login import UserMixin

from .extensions import db, login_manager


class EventStatus(enum.Enum):
    OPEN = "open"
    LOCKED = "locked"
    ASSIGNED = "assigned"


class DrawState(enum.Enum):
    NOT_REVEALED = "not_revealed"
    REVEALED = "revealed"


class Event(db.Model):
    __tablename__ = "events"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    status = db.Column(db.Enum(EventStatus), default=EventStatus.OPEN, nullable=False)
    # Bumped on every status transition; the assign commit compares on status.
    version = db.Column(db.Integer, default=0, nullable=False)
    max_participants = db.Column(db.Integer, nullable=True)

    # Participant who created the event; plain column to avoid a FK cycle.
    organizer_id = db.Column(db.Integer, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    locked_at = db.Column(db.DateTime, nullable=True)
    assigned_at = db.Column(db.DateTime, nullable=True)

    @property
    def is_open(self) -> bool:
        return self.status == EventStatus.OPEN


class Participant(UserMixin, db.Model):
    __tablename__ = "participants"

    id = db.Column(db.Integer, primary_key=True)
    event_id = db.Column(db.Integer, db.ForeignKey("events.id", ondelete="CASCADE"), nullable=False)
    name = db.Column(db.String(64), nullable=False)
    email = db.Column(db.String(255), nullable=True)

    # salted Passlib hash of SHA-256(passphrase) from the browser
    passkey_hash = db.Column(db.String(255), nullable=False)

    joined_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        db.UniqueConstraint("event_id", "name", name="uq_participant_event_name"),
    )


class Exclusion(db.Model):
    """
    Directed row: giver_id must not draw receiver_id.
    Both directions are always written together.
    """
    __tablename__ = "exclusions"
    id = db.Column(db.Integer, primary_key=True)

    event_id = db.Column(db.Integer, db.ForeignKey("events.id", ondelete="CASCADE"), nullable=False)
    giver_id = db.Column(db.Integer, db.ForeignKey("participants.id", ondelete="CASCADE"), nullable=False)
    receiver_id = db.Column(db.Integer, db.ForeignKey("participants.id", ondelete="CASCADE"), nullable=False)

    __table_args__ = (
        db.UniqueConstraint("giver_id", "receiver_id", name="uq_exclusion_giver_receiver"),
    )


class Draw(db.Model):
    """One giver's committed recipient plus their reveal state."""
    __tablename__ = "draws"

    id = db.Column(db.Integer, primary_key=True)
    event_id = db.Column(db.Integer, db.ForeignKey("events.id", ondelete="CASCADE"), nullable=False)
    giver_id = db.Column(db.Integer, db.ForeignKey("participants.id", ondelete="CASCADE"), nullable=False)

    # Encrypted receiver_id (Fernet token string); never stored in plaintext.
    recipient_ciphertext = db.Column(db.Text, nullable=False)

    state = db.Column(db.Enum(DrawState), default=DrawState.NOT_REVEALED, nullable=False)
    revealed_at = db.Column(db.DateTime, nullable=True)

    __table_args__ = (
        db.UniqueConstraint("event_id", "giver_id", name="uq_draw_event_giver"),
    )


@login_manager.user_loader
def load_user(user_id: str):
    return db.session.get(Participant, int(user_id))
