import logging

import pytest

from itinero_travel.api.services.route_service import NOTHING_TO_OPTIMIZE, RouteService
from itinero_travel.routes.websocket import NAMESPACE
from main import create_app

TOKYO = [
    {"id": "a", "name": "A", "lat": 35.68, "lng": 139.65},
    {"id": "b", "name": "B", "lat": 35.70, "lng": 139.77},
    {"id": "c", "name": "C", "lat": 35.66, "lng": 139.70},
]
DAYS = [
    {"day_number": 1, "stops": TOKYO},
    {"day_number": 2, "stops": [{"id": "x", "name": "Unplaced"}]},
]


@pytest.fixture
def ws(tracker):
    app, socketio = create_app(tracker)
    client = socketio.test_client(app, namespace=NAMESPACE)
    yield client
    if client.is_connected(NAMESPACE):
        client.disconnect(namespace=NAMESPACE)


def events(client, name):
    return [e["args"][0] for e in client.get_received(NAMESPACE) if e["name"] == name]


def test_connect_acknowledged(ws):
    connected = events(ws, "connected")
    assert connected and connected[0]["status"] == "connected"


def test_ping(ws):
    ws.get_received(NAMESPACE)
    ws.emit("ping", namespace=NAMESPACE)
    assert "timestamp" in events(ws, "pong")[0]


def test_optimize_all_days_streams_progress(ws):
    ws.get_received(NAMESPACE)
    ws.emit("optimize", {"mode": "all", "days": DAYS}, namespace=NAMESPACE)
    received = ws.get_received(NAMESPACE)

    progress = [e["args"][0] for e in received if e["name"] == "optimization_progress"]
    complete = [e["args"][0] for e in received if e["name"] == "optimization_complete"]

    assert progress == [{"day_number": 1, "progress": 50}, {"day_number": 2, "progress": 100}]
    assert len(complete) == 1
    assert complete[0]["mode"] == "all"
    assert sorted(s["id"] for s in complete[0]["days"]["1"]["stops"]) == ["a", "b", "c"]


def test_optimize_single_day(ws):
    ws.get_received(NAMESPACE)
    ws.emit("optimize", {"mode": "single", "day_number": 1, "days": DAYS,
                         "origin": {"lat": 35.69, "lng": 139.70}}, namespace=NAMESPACE)

    complete = events(ws, "optimization_complete")

    assert list(complete[0]["days"]) == ["1"]


@pytest.mark.parametrize("payload,message", [
    ({"mode": "single", "day_number": 9, "days": DAYS}, "Day not found"),
    ({"mode": "single", "day_number": 2, "days": DAYS}, NOTHING_TO_OPTIMIZE),
    ({"mode": "sideways", "days": DAYS}, "Invalid mode"),
    ({"mode": "all", "days": [1]}, "Day must be an object"),
    ({"mode": "all", "days": "1,2"}, "days must be a list"),
    ({"mode": "all", "days": [{"day_number": 1, "stops": {"id": "a"}}]}, "stops must be a list"),
    ({"mode": "all", "days": [{"day_number": 1, "stops": [{"id": "a", "lat": "north", "lng": 1}]}]},
     "not a number"),
])
def test_optimize_errors(ws, payload, message):
    ws.get_received(NAMESPACE)
    ws.emit("optimize", payload, namespace=NAMESPACE)

    errors = events(ws, "error")

    assert message in errors[0]["message"]
    assert errors[0]["event"] == "optimize"


def test_non_object_payload_is_reported(ws):
    ws.get_received(NAMESPACE)
    ws.emit("optimize", ["all"], namespace=NAMESPACE)

    errors = events(ws, "error")

    assert errors == [{"message": "Payload must be an object", "event": "optimize"}]


def test_unexpected_failure_is_reported_to_client(ws, monkeypatch):
    def explode(*args, **kwargs):
        raise RuntimeError("solver crashed")

    monkeypatch.setattr(RouteService, "plan_trip", staticmethod(explode))
    ws.get_received(NAMESPACE)
    ws.emit("optimize", {"mode": "all", "days": DAYS}, namespace=NAMESPACE)
    received = ws.get_received(NAMESPACE)

    errors = [e["args"][0] for e in received if e["name"] == "error"]
    assert errors == [{"message": "solver crashed", "event": "optimize"}]
    assert not [e for e in received if e["name"] == "optimization_complete"]
    assert ws.is_connected(NAMESPACE)


def test_events_are_logged_with_client_address_and_origin(tracker, caplog):
    app, socketio = create_app(tracker)
    with caplog.at_level(logging.INFO, logger="itinero_travel.routes.websocket.base"):
        client = socketio.test_client(app, namespace=NAMESPACE,
                                      headers={"Origin": "https://itinero.example"})
    client.disconnect(namespace=NAMESPACE)

    connects = [r.getMessage() for r in caplog.records if "[WS] connect" in r.getMessage()]
    assert connects
    assert "origin https://itinero.example" in connects[0]
