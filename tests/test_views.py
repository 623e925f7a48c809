import pytest

from tests.fixtures import client_hash


def _create(client, organizer="Ann", **extra):
    body = {"name": "Office party", "organizer_name": organizer, "client_hash": client_hash(organizer)}
    body.update(extra)
    resp = client.post("/events", json=body)
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()


def _join(client, event_id, name):
    resp = client.post(f"/events/{event_id}/join", json={"name": name, "client_hash": client_hash(name)})
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()["participant_id"]


def _login(client, event_id, name):
    resp = client.post(f"/auth/{event_id}/login", json={"name": name, "client_hash": client_hash(name)})
    assert resp.status_code == 200, resp.get_json()


@pytest.fixture
def party(app):
    """Event with Ann (organizer), Ben, Cat and Dan; Ann's client is logged in."""
    organizer = app.test_client()
    created = _create(organizer)
    event_id = created["event"]["id"]
    ids = {"Ann": created["participant_id"]}
    for name in ("Ben", "Cat", "Dan"):
        ids[name] = _join(app.test_client(), event_id, name)
    _login(organizer, event_id, "Ann")
    return event_id, ids, organizer


def test_event_summary(app, party):
    event_id, ids, _ = party
    data = app.test_client().get(f"/events/{event_id}").get_json()
    assert data["status"] == "open"
    assert data["num_participants"] == 4
    assert data["organizer_id"] == ids["Ann"]
    assert [p["name"] for p in data["participants"]] == ["Ann", "Ben", "Cat", "Dan"]


def test_unknown_event_is_404(app):
    resp = app.test_client().get("/events/999")
    assert resp.status_code == 404
    assert resp.get_json()["error"]["code"] == "event_not_found"


def test_duplicate_name_rejected(app, party):
    event_id, _, _ = party
    resp = app.test_client().post(f"/events/{event_id}/join", json={"name": "Ben", "client_hash": client_hash("x")})
    assert resp.status_code == 400
    assert resp.get_json()["error"]["code"] == "invalid_participant"


def test_full_event_rejects_joins(app):
    client = app.test_client()
    event_id = _create(client, max_participants=3)["event"]["id"]
    _join(client, event_id, "Ben")
    _join(client, event_id, "Cat")
    resp = client.post(f"/events/{event_id}/join", json={"name": "Dan", "client_hash": client_hash("Dan")})
    assert resp.status_code == 409
    assert resp.get_json()["error"]["code"] == "registration_closed"


def test_wrong_passphrase_cannot_log_in(app, party):
    event_id, _, _ = party
    resp = app.test_client().post(f"/auth/{event_id}/login", json={"name": "Ben", "client_hash": client_hash("nope")})
    assert resp.status_code == 401


def test_organizer_only_endpoints(app, party):
    event_id, _, _ = party
    anonymous = app.test_client()
    assert anonymous.get(f"/events/{event_id}/exclusions").status_code == 401

    ben = app.test_client()
    _login(ben, event_id, "Ben")
    assert ben.get(f"/events/{event_id}/exclusions").status_code == 403
    assert ben.post(f"/events/{event_id}/lock").status_code == 403
    assert ben.get(f"/events/{event_id}/progress").status_code == 403


def test_configure_exclusions(party):
    event_id, ids, organizer = party
    resp = organizer.post(
        f"/events/{event_id}/exclusions",
        json={"edits": [{"op": "add", "a": ids["Ann"], "b": ids["Ben"]}]},
    )
    assert resp.status_code == 200
    data = resp.get_json()
    assert data["pairs"] == [[ids["Ann"], ids["Ben"]]]
    assert data["feasibility"] == {"feasible": True, "blocking": [], "blocking_names": []}

    rows = {row["name"]: row for row in organizer.get(f"/events/{event_id}/exclusions").get_json()["participants"]}
    assert rows["Ben"]["excluded"] == [ids["Ann"]]
    assert rows["Ben"]["remaining_candidates"] == 2


def test_configure_rejects_bad_edits(party):
    event_id, ids, organizer = party
    resp = organizer.post(
        f"/events/{event_id}/exclusions",
        json={"edits": [{"op": "add", "a": ids["Ann"], "b": "Ben"}]},
    )
    assert resp.status_code == 400
    assert resp.get_json()["error"]["code"] == "invalid_participant"


def test_infeasible_lock_names_the_blocker(party):
    event_id, ids, organizer = party
    edits = [{"op": "add", "a": ids["Ann"], "b": ids[other]} for other in ("Ben", "Cat", "Dan")]
    organizer.post(f"/events/{event_id}/exclusions", json={"edits": edits})

    feasibility = organizer.get(f"/events/{event_id}/feasibility").get_json()
    assert feasibility["feasible"] is False
    assert feasibility["blocking_names"] == ["Ann"]

    resp = organizer.post(f"/events/{event_id}/lock")
    assert resp.status_code == 409
    error = resp.get_json()["error"]
    assert error["code"] == "infeasible"
    assert error["blocking"] == [ids["Ann"]]
    assert error["message"] == "Ann has no valid recipient left."


def test_too_few_participants(app):
    organizer = app.test_client()
    event_id = _create(organizer)["event"]["id"]
    _join(app.test_client(), event_id, "Ben")
    _login(organizer, event_id, "Ann")
    resp = organizer.post(f"/events/{event_id}/lock")
    assert resp.status_code == 409
    assert resp.get_json()["error"]["code"] == "too_few_participants"


def test_remove_participant(party):
    event_id, ids, organizer = party
    resp = organizer.post(f"/events/{event_id}/participants/{ids['Dan']}/delete")
    assert resp.status_code == 200
    assert resp.get_json()["name"] == "Dan"
    assert organizer.get(f"/events/{event_id}").get_json()["num_participants"] == 3

    resp = organizer.post(f"/events/{event_id}/participants/{ids['Ann']}/delete")
    assert resp.status_code == 400


def test_full_draw_flow(app, party):
    event_id, ids, organizer = party
    organizer.post(
        f"/events/{event_id}/exclusions",
        json={"edits": [{"op": "add", "a": ids["Ann"], "b": ids["Ben"]}]},
    )

    ben = app.test_client()
    _login(ben, event_id, "Ben")
    resp = ben.post(f"/events/{event_id}/reveal")
    assert resp.status_code == 409
    assert resp.get_json()["error"]["code"] == "not_ready"

    assert organizer.post(f"/events/{event_id}/lock").get_json()["status"] == "locked"
    resp = organizer.post(f"/events/{event_id}/exclusions", json={"edits": []})
    assert resp.status_code == 409

    first = organizer.post(f"/events/{event_id}/assign")
    assert first.status_code == 200
    assert first.get_json()["status"] == "assigned"
    assert first.get_json()["num_participants"] == 4
    assert "recipient_id" not in first.get_data(as_text=True)
    assert organizer.post(f"/events/{event_id}/assign").status_code == 200

    drawn = ben.post(f"/events/{event_id}/reveal").get_json()
    assert drawn["recipient_name"] in {"Cat", "Dan"}
    assert drawn["first_time"] is True
    assert sorted(drawn["decoys"]) == ["Ann", "Cat", "Dan"]

    again = ben.post(f"/events/{event_id}/reveal").get_json()
    assert again["recipient_id"] == drawn["recipient_id"]
    assert again["first_time"] is False

    progress = organizer.get(f"/events/{event_id}/progress").get_json()
    assert progress["revealed"] == ["Ben"]
    assert progress["total"] == 4

    assert organizer.post(f"/events/{event_id}/unlock").status_code == 409


def test_reveal_requires_membership(app, party):
    event_id, _, organizer = party
    organizer.post(f"/events/{event_id}/lock")
    organizer.post(f"/events/{event_id}/assign")

    stranger = app.test_client()
    other_event = _create(stranger, organizer="Zed")["event"]["id"]
    _login(stranger, other_event, "Zed")
    assert stranger.post(f"/events/{event_id}/reveal").status_code == 403


def test_csrf_token_endpoint(app):
    resp = app.test_client().get("/auth/csrf")
    assert resp.status_code == 200
    assert resp.get_json()["csrf_token"]


def test_creator_is_logged_in_as_organizer(app):
    client = app.test_client()
    event_id = _create(client)["event"]["id"]
    assert client.get(f"/events/{event_id}/exclusions").status_code == 200
    client.get("/auth/logout")
    assert client.get(f"/events/{event_id}/exclusions").status_code == 401
