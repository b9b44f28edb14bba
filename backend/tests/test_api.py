import json

import pytest

from trip_planner.api import routes_generate
from trip_planner.services.plan_generation_service import PlanGenerationService


def stub_generator(monkeypatch, reply):
    prompts = []

    def complete(system_instruction, prompt):
        prompts.append(prompt)
        if isinstance(reply, Exception):
            raise reply
        return reply

    monkeypatch.setattr(routes_generate, "generator", PlanGenerationService(completion_fn=complete))
    return prompts


def test_root(client):
    assert client.get("/").json()["status"] == "ok"


# ---------------------------------------------------------------------------
# /generate-plan
# ---------------------------------------------------------------------------
def test_generate_requires_region(client):
    resp = client.get("/generate-plan", params={"start": "2025-06-01", "end": "2025-06-02"})
    assert resp.status_code == 400
    assert "region" in resp.json()["detail"]


def test_generate_returns_plan(client, monkeypatch):
    prompts = stub_generator(
        monkeypatch,
        '```json\n{"title": "Seoul classics", "plan": {"1": [{"place_name": "Gyeongbokgung"}]}}\n```',
    )

    resp = client.get("/generate-plan", params=[
        ("start", "2025-06-01"), ("end", "2025-06-02"), ("companion", "family"),
        ("speed", "packed"), ("style", "history"), ("style", "food"),
        ("transport", "walk"), ("region", "Seoul"),
    ])

    assert resp.status_code == 200
    assert resp.json() == {
        "title": "Seoul classics",
        "plan": {"1": [{"place_name": "Gyeongbokgung"}]},
    }
    # only the selected region's places are offered
    assert "Gyeongbokgung" in prompts[0]
    assert "Haeundae Beach" not in prompts[0]
    assert "history, food" in prompts[0]


def test_generate_unparsable_reply_is_500(client, monkeypatch):
    stub_generator(monkeypatch, "Sorry, I cannot help with that.")
    resp = client.get("/generate-plan", params={"region": "Seoul"})
    assert resp.status_code == 500


def test_generate_upstream_error_is_500(client, monkeypatch):
    stub_generator(monkeypatch, TimeoutError("slow"))
    assert client.get("/generate-plan", params={"region": "Seoul"}).status_code == 500


def test_generate_region_without_places_is_500(client, monkeypatch):
    prompts = stub_generator(monkeypatch, '{"title": "x", "plan": {}}')
    assert client.get("/generate-plan", params={"region": "Jeju"}).status_code == 500
    assert prompts == []


# ---------------------------------------------------------------------------
# /places
# ---------------------------------------------------------------------------
def test_list_places(client):
    body = client.get("/places", params={"region": "Seoul", "sort": "rating_desc"}).json()
    assert body["total"] == 3
    assert [p["place_id"] for p in body["items"]] == ["p3", "p1", "p2"]


def test_search_places(client):
    body = client.get("/places", params={"q": "tower"}).json()
    assert [p["place_id"] for p in body["items"]] == ["p2"]


def test_get_place(client):
    assert client.get("/places/p4").json()["place_name"] == "Haeundae Beach"
    assert client.get("/places/nope").status_code == 404


def test_rating_update_reaches_websocket_clients(client):
    with client.websocket_connect("/places/ws") as ws:
        resp = client.patch("/places/p1/rating", json={"average_rating": 4.9, "review_count": 6})
        assert resp.status_code == 200

        assert ws.receive_json() == {"place_id": "p1", "average_rating": 4.9, "review_count": 6}

    assert client.get("/places/p1").json()["review_count"] == 6


def test_rating_update_unknown_place(client):
    assert client.patch("/places/nope/rating", json={"average_rating": 1}).status_code == 404


# ---------------------------------------------------------------------------
# /trips
# ---------------------------------------------------------------------------
TRIP = {
    "trip_title": "Seoul weekend",
    "trip_start_date": "2025-06-01",
    "trip_end_date": "2025-06-02",
    "plan": {"1": [{"place_id": "p1"}, {"place_id": "p2"}], "2": [{"place_id": "p3"}]},
}


def test_trips_require_auth(client):
    assert client.get("/trips").status_code == 401
    assert client.post("/trips", json=TRIP, headers={"Authorization": "Bearer junk"}).status_code == 401


def test_create_and_load_trip(client, auth_headers):
    resp = client.post("/trips", json=TRIP, headers=auth_headers)
    assert resp.status_code == 201
    trip_id = resp.json()["trip_id"]
    assert resp.json()["place_count"] == 3

    body = client.get(f"/trips/{trip_id}", headers=auth_headers).json()
    assert body["header"]["trip_title"] == "Seoul weekend"
    assert [(p["place_id"], p["visit_order"]) for p in body["plan"]["1"]] == [("p1", 1), ("p2", 2)]
    assert [p["place_id"] for p in body["plan"]["2"]] == ["p3"]

    listed = client.get("/trips", headers=auth_headers).json()["items"]
    assert [(t["trip_id"], t["place_count"]) for t in listed] == [(trip_id, 3)]


def test_trip_is_private(client, auth_headers, other_headers):
    trip_id = client.post("/trips", json=TRIP, headers=auth_headers).json()["trip_id"]

    assert client.get(f"/trips/{trip_id}", headers=other_headers).status_code == 404
    assert client.put(f"/trips/{trip_id}", json=TRIP, headers=other_headers).status_code == 404
    assert client.get("/trips", headers=other_headers).json()["items"] == []


def test_update_trip_replaces_plan(client, auth_headers):
    trip_id = client.post("/trips", json=TRIP, headers=auth_headers).json()["trip_id"]

    resp = client.put(f"/trips/{trip_id}", headers=auth_headers,
                      json={**TRIP, "trip_title": "T1", "plan": {}})

    assert resp.status_code == 200
    assert resp.json() == {"trip_id": trip_id, "place_count": 0}
    body = client.get(f"/trips/{trip_id}", headers=auth_headers).json()
    assert body["header"]["trip_title"] == "T1"
    assert body["plan"] == {}


def test_trip_plan_is_normalized(client, auth_headers):
    data = {**TRIP, "plan": {"1": [{"place_id": "p1"}], "2": [{"place_id": "p1"}, {"place_id": "p4"}],
                             "5": [{"place_id": "p2"}]}}

    resp = client.post("/trips", json=data, headers=auth_headers)

    # duplicate p1 and out-of-range day 5 are dropped
    assert resp.json()["place_count"] == 2


@pytest.mark.parametrize("changes,status", [
    ({"trip_title": "  "}, 400),
    ({"trip_end_date": "2025-05-01"}, 400),
    ({"plan": {"1": [{"place_id": "ghost"}]}}, 400),
])
def test_invalid_trip_is_rejected(client, auth_headers, changes, status):
    resp = client.post("/trips", json={**TRIP, **changes}, headers=auth_headers)
    assert resp.status_code == status
    assert client.get("/trips", headers=auth_headers).json()["items"] == []


# ---------------------------------------------------------------------------
# /planner/sessions
# ---------------------------------------------------------------------------
def open_session(client, headers, **body):
    body.setdefault("start", "2025-06-01")
    body.setdefault("end", "2025-06-03")
    resp = client.post("/planner/sessions", json=body, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


def places_of(session, day):
    return [p["place_id"] for p in session["days"][day - 1]["places"]]


def test_session_from_ai_plan(client, auth_headers):
    ai = {"title": "T", "plan": {"1": [{"place_name": "Gyeongbokgung"}], "2": [{"place_name": "X"}]}}

    session = open_session(client, auth_headers, ai_plan=json.dumps(ai), end="2025-06-02")

    assert session["source"] == "ai_plan"
    assert session["title"] == "T"
    assert places_of(session, 1) == ["p1"]
    assert places_of(session, 2) == []


def test_session_editing_flow(client, auth_headers):
    sid = open_session(client, auth_headers)["session_id"]
    url = f"/planner/sessions/{sid}"

    client.put(f"{url}/active-day", json={"day": 2}, headers=auth_headers)
    for place_id in ("p1", "p2", "p3"):
        body = client.post(f"{url}/places", json={"place_id": place_id}, headers=auth_headers).json()
        assert body["changed"]
    assert places_of(body["session"], 2) == ["p1", "p2", "p3"]

    dup = client.post(f"{url}/places", json={"place_id": "p1", "day": 1}, headers=auth_headers).json()
    assert not dup["changed"]

    body = client.post(f"{url}/days/2/reorder", json={"from_id": "p3", "to_id": "p1"},
                       headers=auth_headers).json()
    assert places_of(body["session"], 2) == ["p3", "p1", "p2"]
    assert [p["visit_order"] for p in body["session"]["days"][1]["places"]] == [1, 2, 3]

    body = client.delete(f"{url}/days/2/places/p1", headers=auth_headers).json()
    assert places_of(body["session"], 2) == ["p3", "p2"]

    body = client.put(f"{url}/dates", json={"start": "2025-06-01", "end": "2025-06-01"},
                      headers=auth_headers).json()
    assert [d["day"] for d in body["session"]["days"]] == [1]

    assert client.put(f"{url}/dates", json={"start": "2025-06-09", "end": "2025-06-01"},
                      headers=auth_headers).status_code == 400


def test_session_save_and_reopen(client, auth_headers):
    sid = open_session(client, auth_headers)["session_id"]
    url = f"/planner/sessions/{sid}"
    client.post(f"{url}/places", json={"place_id": "p4", "day": 3}, headers=auth_headers)

    client.put(f"{url}/title", json={"title": ""}, headers=auth_headers)
    assert client.post(f"{url}/save", headers=auth_headers).status_code == 400

    client.put(f"{url}/title", json={"title": "Busan side trip"}, headers=auth_headers)
    resp = client.post(f"{url}/save", headers=auth_headers)
    assert resp.status_code == 200
    trip_id = resp.json()["trip_id"]
    assert resp.json()["updated"] is False

    # the session is closed once saved
    assert client.get(url, headers=auth_headers).status_code == 404

    reopened = open_session(client, auth_headers, start=None, end=None, trip_id=trip_id)
    assert reopened["source"] == "persisted_trip"
    assert reopened["title"] == "Busan side trip"
    assert places_of(reopened, 3) == ["p4"]

    url = f"/planner/sessions/{reopened['session_id']}"
    client.delete(f"{url}/days/3/places/p4", headers=auth_headers)
    resp = client.post(f"{url}/save", headers=auth_headers)
    assert resp.json() == {"trip_id": trip_id, "updated": True}
    assert client.get(f"/trips/{trip_id}", headers=auth_headers).json()["plan"] == {}


def test_session_browse_and_realtime_ratings(client, auth_headers):
    sid = open_session(client, auth_headers, regions=["Seoul"])["session_id"]
    url = f"/planner/sessions/{sid}/places"

    client.patch("/places/p2/rating", json={"average_rating": 5.0})

    body = client.get(url, params={"sort": "rating_desc", "limit": 2}, headers=auth_headers).json()
    assert [p["place_id"] for p in body["items"]] == ["p2", "p3"]
    assert body["total"] == 3


def test_sessions_are_private(client, auth_headers, other_headers):
    sid = open_session(client, auth_headers)["session_id"]

    assert client.get(f"/planner/sessions/{sid}", headers=other_headers).status_code == 404
    assert client.delete(f"/planner/sessions/{sid}", headers=other_headers).status_code == 404
    assert client.delete(f"/planner/sessions/{sid}", headers=auth_headers).json() == {"discarded": True}
    assert client.get(f"/planner/sessions/{sid}", headers=auth_headers).status_code == 404


def test_session_errors(client, auth_headers):
    assert client.post("/planner/sessions", json={"start": "2025-06-03", "end": "2025-06-01"},
                       headers=auth_headers).status_code == 400
    assert client.post("/planner/sessions", json={"trip_id": "missing"},
                       headers=auth_headers).status_code == 404
    assert client.post("/planner/sessions", json={}).status_code == 401

    sid = open_session(client, auth_headers)["session_id"]
    assert client.post(f"/planner/sessions/{sid}/places", json={"place_id": "ghost"},
                       headers=auth_headers).status_code == 404
