import time

import pytest

import app as web


IMP = "MOV 0, 1"
DUCK = "DAT #0, #0"


@pytest.fixture
def client():
    web.app.config["TESTING"] = True
    with web.app.test_client() as client:
        client.post("/api/reset")
        yield client
        client.post("/api/reset")


def _load(client, *sources, seed=3):
    payload = {
        "warriors": [{"name": f"W{i + 1}", "source": s} for i, s in enumerate(sources)],
        "seed": seed,
    }
    return client.post("/api/load", json=payload)


def test_index_page(client):
    response = client.get("/")
    assert response.status_code == 200
    assert b"MARS" in response.data


def test_bundled_warriors(client):
    data = client.get("/api/warriors").get_json()
    assert data["imp"]["name"] == "Imp"
    assert "MOV 0, 1" in data["imp"]["source"]


def test_idle_state(client):
    state = client.get("/api/state").get_json()
    assert state["status"] == "idle"
    assert state["warriors"] == []
    assert state["running"] is False


def test_load_and_step(client):
    response = _load(client, IMP, IMP)
    assert response.status_code == 200
    state = response.get_json()
    assert state["status"] == "loaded"
    assert [w["name"] for w in state["warriors"]] == ["W1", "W2"]

    data = client.post("/api/step").get_json()
    assert data["report"]["warrior_id"] == 1
    assert len(data["report"]["touched"]) == 1
    assert data["state"]["cycle"] == 1
    assert data["state"]["touched_by"] == 1


def test_step_reports_winner(client):
    _load(client, DUCK, IMP)
    data = client.post("/api/step").get_json()
    assert data["report"]["eliminated"] == 1
    assert data["state"]["status"] == "single_winner"
    assert data["state"]["winner_id"] == 2

    data = client.post("/api/step").get_json()
    assert data["report"] is None


def test_load_error_names_warrior_and_line(client):
    _load(client, IMP)
    response = _load(client, IMP, "MOV 0, 1\nJMZ 2, 3")
    assert response.status_code == 400
    error = response.get_json()
    assert error["warrior_id"] == 2
    assert error["line_number"] == 2
    assert error["line"] == "JMZ 2, 3"

    state = client.get("/api/state").get_json()
    assert len(state["warriors"]) == 1


@pytest.mark.parametrize("payload", [{}, {"warriors": "MOV 0, 1"}, {"warriors": [42]}])
def test_load_rejects_malformed_payload(client, payload):
    assert client.post("/api/load", json=payload).status_code == 400


def test_core_and_snippet(client):
    _load(client, IMP)
    client.post("/api/step")

    core = client.get("/api/core").get_json()
    assert core["core_size"] == len(core["cells"])
    assert sum(1 for c in core["cells"] if c["owner"] == 1) == 2

    rows = client.get("/api/snippet?warrior=1&window=9").get_json()
    assert len(rows) == 9
    assert any(r["is_pc"] for r in rows)


def test_run_and_pause(client):
    _load(client, IMP, IMP)
    data = client.post("/api/run").get_json()
    assert data["started"] is True

    deadline = time.time() + 5
    while client.get("/api/state").get_json()["cycle"] < 2 and time.time() < deadline:
        time.sleep(0.02)

    state = client.post("/api/pause").get_json()
    assert state["cycle"] >= 2
    assert state["status"] == "stepping"
    assert state["running"] is False

    assert client.post("/api/step").status_code == 200


def test_reset(client):
    _load(client, IMP)
    state = client.post("/api/reset").get_json()
    assert state["status"] == "idle"
    assert state["cycle"] == 0
