import pytest
from fastapi.testclient import TestClient

import hashring.main as main
from hashring.hashing import ring_hash
from hashring.ring import HashRing


@pytest.fixture
def client():
    return TestClient(main.app)


@pytest.fixture
def small_ring(monkeypatch):
    ring = HashRing(["cache-a", "cache-b", "cache-c"], virtual_nodes=50)
    monkeypatch.setattr(main, "ring", ring)
    monkeypatch.setattr(main.settings, "replica_count", 2)
    return ring


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_ring_summary(client, small_ring):
    body = client.get("/ring").json()
    assert body["virtual_nodes"] == 50
    assert body["nodes"] == ["cache-a", "cache-b", "cache-c"]
    assert body["positions"] == 150
    assert sum(body["ownership"].values()) == pytest.approx(1.0)


def test_route_uses_configured_replicas(client, small_ring):
    body = client.get("/route/user-42").json()
    assert body["key"] == "user-42"
    assert body["position"] == ring_hash("user-42")
    assert body["primary"] == small_ring.find_node_for("user-42")
    assert len(body["replicas"]) == 1
    assert body["primary"] not in body["replicas"]
    assert body["degraded"] is False


def test_route_explicit_replicas(client, small_ring):
    body = client.get("/route/user-42", params={"replicas": 3}).json()
    assert [body["primary"], *body["replicas"]] == small_ring.find_nodes_for("user-42", 3)


def test_route_too_many_replicas(client, small_ring):
    resp = client.get("/route/user-42", params={"replicas": 4})
    assert resp.status_code == 400


def test_route_zero_replicas(client, small_ring):
    assert client.get("/route/user-42", params={"replicas": 0}).status_code == 400


def test_route_whitespace_key(client, small_ring):
    assert client.get("/route/%20%20").status_code == 400


def test_route_default_clamped_to_node_count(client, monkeypatch):
    monkeypatch.setattr(main, "ring", HashRing(["solo"]))
    body = client.get("/route/anything").json()
    assert body["primary"] == "solo"
    assert body["replicas"] == []


def test_route_empty_ring(client, monkeypatch):
    monkeypatch.setattr(main, "ring", HashRing(virtual_nodes=10))
    assert client.get("/route/anything").status_code == 409


def test_distribution(client, small_ring):
    keys = [f"k{i}" for i in range(300)]
    resp = client.post("/ring/distribution", json={"keys": keys, "remove": "cache-b"})
    assert resp.status_code == 200
    body = resp.json()
    assert sum(body["consistent_hash"].values()) == 300
    assert sum(body["modulo"].values()) == 300
    assert body["removed_node"] == "cache-b"
    assert 0 < body["consistent_hash_remapped"] < 1


def test_distribution_requires_keys(client, small_ring):
    resp = client.post("/ring/distribution", json={"keys": []})
    assert resp.status_code == 400


def test_route_reports_short_walk_as_degraded(client, monkeypatch):
    ring = HashRing(["a"])
    ring._table.positions_by_node["ghost"] = set()
    monkeypatch.setattr(main, "ring", ring)
    body = client.get("/route/key", params={"replicas": 2}).json()
    assert body["primary"] == "a"
    assert body["replicas"] == []
    assert body["degraded"] is True
