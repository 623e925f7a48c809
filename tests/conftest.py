import pytest

from drawnames import create_app
from drawnames.extensions import db
from drawnames.services.events import create_event, join_event
from drawnames.services.exclusions import configure_exclusions
from tests.fixtures import client_hash


@pytest.fixture
def app(tmp_path):
    app = create_app({
        "TESTING": True,
        "SECRET_KEY": "test-secret",
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'draw.db'}",
        "WTF_CSRF_ENABLED": False,
        "LOG_LEVEL": "WARNING",
    })
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.drop_all()


@pytest.fixture
def app_ctx(app):
    # Test clients push their own context; only service-level tests hold one.
    with app.app_context():
        yield app
        db.session.remove()


@pytest.fixture
def make_event(app_ctx):
    """Build an open event; returns (event_id, {name: participant_id})."""
    def _make(names=("Ann", "Ben", "Cat", "Dan"), exclusions=(), max_participants=None):
        event, organizer = create_event(
            "Family draw", names[0], client_hash(names[0]), max_participants=max_participants,
        )
        event_id = event.id
        ids = {names[0]: organizer.id}
        for name in names[1:]:
            ids[name] = join_event(event_id, name, client_hash(name)).id
        if exclusions:
            configure_exclusions(event_id, [("add", ids[a], ids[b]) for a, b in exclusions])
        return event_id, ids
    return _make
