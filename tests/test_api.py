"""
REST API tests using the Flask test client.
"""

import pytest

import api
from conftest import FailingGenerator, ScriptedGenerator
from mindmap_canvas.controller import MindMapController
from mindmap_canvas.generation import OutlineNode
from mindmap_canvas.models import CounterIdGenerator


@pytest.fixture
def client(monkeypatch):
    generator = ScriptedGenerator(
        labels={"Basics": ["Loops", "Functions"]},
        outlines={"Python": OutlineNode("Python", [OutlineNode("Basics"), OutlineNode("OOP")])},
    )
    controller = MindMapController(generator=generator, id_generator=CounterIdGenerator())
    monkeypatch.setattr(api, "api_controller", controller)
    api.app.config["TESTING"] = True
    with api.app.test_client() as test_client:
        yield test_client


class TestMapEndpoints:

    def test_status(self, client):
        response = client.get("/status")
        assert response.status_code == 200
        assert response.get_json()["map_loaded"] is False

    def test_get_map_without_map(self, client):
        response = client.get("/map")
        assert response.status_code == 200
        assert response.get_json()["map"] is None

    def test_new_map(self, client):
        response = client.post("/map/new", json={"topic": "Python"})
        assert response.status_code == 201
        body = response.get_json()
        assert body["status"] == "success"
        assert [c["text"] for c in body["map"]["tree"]["children"]] == ["Basics", "OOP"]
        assert len(body["map"]["scene"]["nodes"]) == 3

    def test_new_empty_map(self, client):
        response = client.post("/map/new", json={"topic": "Python", "empty": True})
        assert response.status_code == 201
        assert response.get_json()["map"]["tree"]["children"] == []

    def test_new_map_requires_topic(self, client):
        response = client.post("/map/new", json={})
        assert response.status_code == 400

    def test_new_map_blank_topic(self, client):
        response = client.post("/map/new", json={"topic": "  "})
        assert response.status_code == 400
        assert response.get_json()["error"] == "InvalidInput"

    def test_export_and_search(self, client):
        client.post("/map/new", json={"topic": "Python"})
        export = client.get("/map/export").get_json()
        assert export["content"].startswith("Python (ID: root)")

        results = client.get("/map/search", query_string={"text": "oo"}).get_json()["results"]
        assert [r["node"]["text"] for r in results] == ["OOP"]
        assert results[0]["path"][0] == "root"

    def test_export_without_map(self, client):
        assert client.get("/map/export").status_code == 404

    def test_search_requires_text(self, client):
        assert client.get("/map/search").status_code == 400

    def test_switch_layout(self, client):
        client.post("/map/new", json={"topic": "Python", "empty": True})
        response = client.post("/map/layout", json={"mode": "radial"})
        assert response.status_code == 200
        assert response.get_json()["map"]["scene"]["mode"] == "radial"
        assert client.post("/map/layout", json={"mode": "spiral"}).status_code == 400


class TestNodeEndpoints:

    @pytest.fixture(autouse=True)
    def empty_map(self, client):
        client.post("/map/new", json={"topic": "Python", "empty": True})

    def test_add_node(self, client):
        response = client.post("/node/add", json={"text": "Basics"})
        assert response.status_code == 201
        body = response.get_json()
        assert body["node_ids"] == ["node-1"]
        positions = {n["id"]: (n["x"], n["y"]) for n in body["map"]["scene"]["nodes"]}
        assert positions["node-1"] == (0.0, 200.0)

    def test_add_batch(self, client):
        response = client.post("/node/add", json={"labels": ["A", "", "B"], "parent_id": "root"})
        assert len(response.get_json()["node_ids"]) == 2
        assert [c["text"] for c in response.get_json()["map"]["tree"]["children"]] == ["A", "B"]

    def test_add_under_missing_parent(self, client):
        response = client.post("/node/add", json={"text": "A", "parent_id": "ghost"})
        assert response.status_code == 404
        assert response.get_json()["error"] == "NotFound"

    def test_add_blank_label(self, client):
        assert client.post("/node/add", json={"text": "  "}).status_code == 400

    def test_add_non_text_labels(self, client):
        for payload in ({"text": 5}, {"labels": ["A", 7]}):
            response = client.post("/node/add", json=payload)
            assert response.status_code == 400
            assert response.get_json()["error"] == "InvalidInput"

    def test_expand(self, client):
        client.post("/node/add", json={"text": "Basics"})
        response = client.post("/node/node-1/expand")
        assert response.status_code == 201
        assert len(response.get_json()["node_ids"]) == 2

    def test_expand_missing_node(self, client):
        assert client.post("/node/ghost/expand").status_code == 404

    def test_expand_collaborator_failure(self, client, monkeypatch):
        monkeypatch.setattr(api.api_controller, "generator", FailingGenerator())
        response = client.post("/node/root/expand")
        assert response.status_code == 502
        assert response.get_json()["error"] == "CollaboratorFailure"

    def test_delete(self, client):
        client.post("/node/add", json={"text": "Basics"})
        assert client.delete("/node/node-1").status_code == 200
        assert client.delete("/node/node-1").status_code == 404

    def test_delete_root_forbidden(self, client):
        response = client.delete("/node/root")
        assert response.status_code == 403
        assert response.get_json()["error"] == "RootProtected"

    def test_collapse(self, client):
        client.post("/node/add", json={"text": "Basics"})
        response = client.post("/node/root/collapse")
        assert response.status_code == 200
        assert response.get_json()["collapsed"] is True
        assert len(response.get_json()["map"]["scene"]["nodes"]) == 1

    def test_rename(self, client):
        response = client.put("/node/root", json={"text": "Python 3"})
        assert response.status_code == 200
        assert response.get_json()["old_text"] == "Python"
        assert client.put("/node/root", json={}).status_code == 400

    def test_move(self, client):
        response = client.post("/node/root/position", json={"x": 10, "y": 20})
        assert response.status_code == 200
        node = response.get_json()["map"]["scene"]["nodes"][0]
        assert (node["x"], node["y"]) == (10.0, 20.0)
        assert client.post("/node/root/position", json={"x": "left"}).status_code == 400
