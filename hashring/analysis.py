import bisect
from statistics import pvariance
from typing import Dict, Iterable, List, Optional, Tuple

from .errors import FailedPreconditionError, InvalidArgumentError
from .hashing import ring_hash, validate_key
from .ring import HashRing, count_by_node


class ModuloSharder:
    """Baseline that maps a key to ``nodes[hash(key) % len(nodes)]``."""

    def __init__(self, nodes: Iterable[str]):
        self.nodes = [validate_key(node, "node") for node in nodes]

    def assign(self, key: str) -> str:
        if not self.nodes:
            raise FailedPreconditionError("No nodes configured")
        return self.nodes[ring_hash(key) % len(self.nodes)]

    def without(self, node: str) -> "ModuloSharder":
        return ModuloSharder(n for n in self.nodes if n != node)

    def distribution(self, keys: Iterable[str]) -> Dict[str, int]:
        return count_by_node(self.assign(key) for key in keys)


class RingSnapshot:
    """Frozen copy of a ring's positions, answering lookups without locking."""

    def __init__(self, entries: List[Tuple[int, str]]):
        self.positions = [position for position, _ in entries]
        self.owners = [node for _, node in entries]

    @classmethod
    def of(cls, ring: HashRing) -> "RingSnapshot":
        return cls(ring.positions())

    @property
    def nodes(self) -> List[str]:
        return sorted(set(self.owners))

    def owner_for(self, key: str) -> str:
        if not self.positions:
            raise FailedPreconditionError("The ring is empty. Add one or more nodes")
        idx = bisect.bisect_left(self.positions, ring_hash(key))
        if idx == len(self.positions):
            idx = 0
        return self.owners[idx]

    def without(self, node: str) -> "RingSnapshot":
        return RingSnapshot(
            [(p, owner) for p, owner in zip(self.positions, self.owners) if owner != node]
        )


def load_variance(counts: Dict[str, int], nodes: Iterable[str]) -> float:
    """Population variance of per-node key counts, idle nodes counted as 0."""
    values = [counts.get(node, 0) for node in nodes]
    if not values:
        return 0.0
    return float(pvariance(values))


def remapped_fraction(before: Dict[str, str], after: Dict[str, str]) -> float:
    if not before:
        return 0.0
    moved = sum(1 for key, node in before.items() if after.get(key) != node)
    return moved / len(before)


def compare_sharding(
    ring: HashRing, keys: List[str], remove: Optional[str] = None
) -> Dict[str, object]:
    """Compare the ring against modulo sharding for a sample of keys.

    Every figure comes from a single snapshot of the ring. When ``remove``
    names a registered node, also report the share of keys each scheme
    would move if that node left.
    """
    if not keys:
        raise InvalidArgumentError("No keys provided")
    for key in keys:
        validate_key(key)
    if remove is not None:
        validate_key(remove, "remove")

    snapshot = RingSnapshot.of(ring)
    nodes = snapshot.nodes
    modulo = ModuloSharder(nodes)
    assigned = {key: snapshot.owner_for(key) for key in keys}
    consistent_counts = count_by_node(assigned.values())
    modulo_counts = modulo.distribution(keys)
    report: Dict[str, object] = {
        "consistent_hash": consistent_counts,
        "modulo": modulo_counts,
        "consistent_hash_variance": load_variance(consistent_counts, nodes),
        "modulo_variance": load_variance(modulo_counts, nodes),
        "removed_node": None,
        "consistent_hash_remapped": None,
        "modulo_remapped": None,
    }
    if remove is None:
        return report
    if remove not in nodes:
        raise InvalidArgumentError(f"Unknown node '{remove}'")
    if len(nodes) < 2:
        raise InvalidArgumentError("Cannot remove the only node on the ring")

    shrunk = snapshot.without(remove)
    shrunk_modulo = modulo.without(remove)
    report["removed_node"] = remove
    report["consistent_hash_remapped"] = remapped_fraction(
        assigned, {key: shrunk.owner_for(key) for key in keys}
    )
    report["modulo_remapped"] = remapped_fraction(
        {key: modulo.assign(key) for key in keys},
        {key: shrunk_modulo.assign(key) for key in keys},
    )
    return report
