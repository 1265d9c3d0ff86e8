import pytest

from hashring.ring import HashRing


@pytest.fixture
def three_node_ring() -> HashRing:
    return HashRing(["node1", "node2", "node3"])


@pytest.fixture
def virtual_ring() -> HashRing:
    return HashRing(["node1", "node2", "node3", "node4"], virtual_nodes=50)


@pytest.fixture
def fixed_hashes(monkeypatch):
    """Pin ring positions: keys found in the mapping hash to the given value."""
    import hashring.ring as ring_module

    real_hash = ring_module.ring_hash
    table = {}

    def fake_hash(key):
        if key in table:
            return table[key]
        return real_hash(key)

    monkeypatch.setattr(ring_module, "ring_hash", fake_hash)
    return table
