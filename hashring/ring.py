import bisect
import logging
from typing import Dict, Iterable, List, Set, Tuple

from .errors import (
    FailedPreconditionError,
    InvalidArgumentError,
    OutOfRangeError,
    PositionCollisionError,
    RingCorruptionError,
)
from .hashing import RING_SIZE, ring_hash, validate_key, virtual_position_key
from .locks import ReadWriteLock

logger = logging.getLogger(__name__)


def count_by_node(owners: Iterable[str]) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    for node in owners:
        counts[node] = counts.get(node, 0) + 1
    return counts


class PositionTable:
    """Sorted ring positions plus both ownership indexes.

    Positions are only ever placed or dropped a whole node at a time, which
    keeps the sorted list, ``owners`` and ``positions_by_node`` in step.
    Not thread-safe on its own; ``HashRing`` serialises access.
    """

    def __init__(self) -> None:
        self.sorted_positions: List[int] = []
        self.owners: Dict[int, str] = {}
        self.positions_by_node: Dict[str, Set[int]] = {}

    def __len__(self) -> int:
        return len(self.sorted_positions)

    def __contains__(self, node: str) -> bool:
        return node in self.positions_by_node

    def place(self, node: str, positions: List[int]) -> None:
        placed: List[int] = []
        for position in positions:
            idx = bisect.bisect_left(self.sorted_positions, position)
            if idx < len(self.sorted_positions) and self.sorted_positions[idx] == position:
                owner = self.owners.get(position)
                self._rollback(placed)
                raise PositionCollisionError(node, position, owner)
            self.sorted_positions.insert(idx, position)
            self.owners[position] = node
            placed.append(position)
        self.positions_by_node[node] = set(placed)

    def drop(self, node: str) -> Set[int]:
        positions = self.positions_by_node[node]
        for position in positions:
            idx = self._index_of(position)
            del self.sorted_positions[idx]
            del self.owners[position]
        del self.positions_by_node[node]
        return positions

    def start_index(self, point: int) -> int:
        idx = bisect.bisect_left(self.sorted_positions, point)
        if idx == len(self.sorted_positions):
            # past the highest position, wrap to the lowest
            idx = 0
        return idx

    def owner_at(self, idx: int) -> str:
        position = self.sorted_positions[idx]
        try:
            return self.owners[position]
        except KeyError:
            raise RingCorruptionError(f"Position {position} has no owning node") from None

    def items(self) -> List[Tuple[int, str]]:
        return [(p, self.owner_at(i)) for i, p in enumerate(self.sorted_positions)]

    def _index_of(self, position: int) -> int:
        idx = bisect.bisect_left(self.sorted_positions, position)
        if idx == len(self.sorted_positions) or self.sorted_positions[idx] != position:
            raise RingCorruptionError(f"Position {position} missing from the ring")
        return idx

    def _rollback(self, placed: List[int]) -> None:
        for position in placed:
            del self.sorted_positions[self._index_of(position)]
            del self.owners[position]


class HashRing:
    """Consistent hashing ring with optional virtual nodes.

    With ``virtual_nodes=1`` each node sits at ``hash(node)``; otherwise it
    gets one position per ``hash(f"{node}:{i}")``. All methods are safe to
    call from multiple threads: membership changes take the write lock,
    lookups share the read lock.
    """

    def __init__(self, nodes: Iterable[str] = (), virtual_nodes: int = 1):
        if isinstance(virtual_nodes, bool) or not isinstance(virtual_nodes, int):
            raise InvalidArgumentError(
                f"virtual_nodes must be an int, got {type(virtual_nodes).__name__}"
            )
        if virtual_nodes < 1:
            raise InvalidArgumentError(f"virtual_nodes must be >= 1, got {virtual_nodes}")
        self._virtual_nodes = virtual_nodes
        self._table = PositionTable()
        self._lock = ReadWriteLock()
        for node in nodes:
            self.add_node(node)

    @property
    def virtual_nodes(self) -> int:
        return self._virtual_nodes

    def _candidate_positions(self, node: str) -> List[int]:
        if self._virtual_nodes == 1:
            return [ring_hash(node)]
        return [
            ring_hash(virtual_position_key(node, i)) for i in range(self._virtual_nodes)
        ]

    def add_node(self, node: str) -> bool:
        """Register a node and place its positions.

        Returns False if the node is already registered. Raises
        PositionCollisionError, leaving the ring untouched, if any of the
        node's positions is already occupied.
        """
        validate_key(node, "node")
        with self._lock.write_locked():
            if node in self._table:
                return False
            positions = self._candidate_positions(node)
            try:
                self._table.place(node, positions)
            except PositionCollisionError as exc:
                logger.warning(
                    "Rejected node %s: position %d collides with %s",
                    node,
                    exc.position,
                    exc.owner,
                )
                raise
            total = len(self._table)
        logger.info("Added node %s with %d positions (%d on ring)", node, len(positions), total)
        return True

    def remove_node(self, node: str) -> bool:
        validate_key(node, "node")
        with self._lock.write_locked():
            if node not in self._table:
                return False
            removed = self._table.drop(node)
            total = len(self._table)
        logger.info("Removed node %s and %d positions (%d on ring)", node, len(removed), total)
        return True

    def find_node_for(self, key: str) -> str:
        """Return the node owning the first position clockwise from ``hash(key)``."""
        validate_key(key)
        point = ring_hash(key)
        with self._lock.read_locked():
            self._require_positions()
            return self._table.owner_at(self._table.start_index(point))

    def find_nodes_for(self, key: str, replication_factor: int) -> List[str]:
        """Walk clockwise from ``key`` collecting distinct nodes.

        The first entry is the node ``find_node_for`` returns. If the walk
        covers the whole ring before ``replication_factor`` nodes are found
        the shorter list is returned.
        """
        validate_key(key)
        if isinstance(replication_factor, bool) or not isinstance(replication_factor, int):
            raise InvalidArgumentError(
                f"replication_factor must be an int, got {type(replication_factor).__name__}"
            )
        if replication_factor < 1:
            raise InvalidArgumentError(
                f"replication_factor must be >= 1, got {replication_factor}"
            )
        point = ring_hash(key)
        with self._lock.read_locked():
            self._require_positions()
            node_count = len(self._table.positions_by_node)
            if replication_factor > node_count:
                raise OutOfRangeError(
                    f"replication_factor {replication_factor} exceeds {node_count} registered nodes"
                )
            total = len(self._table)
            idx = self._table.start_index(point)
            found: List[str] = []
            for step in range(total):
                node = self._table.owner_at((idx + step) % total)
                if node not in found:
                    found.append(node)
                    if len(found) == replication_factor:
                        break
        if len(found) < replication_factor:
            logger.warning(
                "Replica walk for %s found %d of %d nodes", key, len(found), replication_factor
            )
        return found

    def _require_positions(self) -> None:
        if not len(self._table):
            raise FailedPreconditionError("The ring is empty. Add one or more nodes")

    @property
    def nodes(self) -> List[str]:
        with self._lock.read_locked():
            return sorted(self._table.positions_by_node)

    @property
    def node_count(self) -> int:
        with self._lock.read_locked():
            return len(self._table.positions_by_node)

    def __len__(self) -> int:
        with self._lock.read_locked():
            return len(self._table)

    def __contains__(self, node: object) -> bool:
        if not isinstance(node, str):
            return False
        with self._lock.read_locked():
            return node in self._table

    def positions_of(self, node: str) -> List[int]:
        validate_key(node, "node")
        with self._lock.read_locked():
            return sorted(self._table.positions_by_node.get(node, ()))

    def positions(self) -> List[Tuple[int, str]]:
        with self._lock.read_locked():
            return self._table.items()

    def ownership(self) -> Dict[str, float]:
        """Fraction of the hash space that routes to each node."""
        with self._lock.read_locked():
            snapshot = self._table.items()
        if not snapshot:
            return {}
        if len(snapshot) == 1:
            return {snapshot[0][1]: 1.0}
        shares: Dict[str, int] = {}
        previous = snapshot[-1][0]
        for position, node in snapshot:
            arc = (position - previous) % RING_SIZE
            shares[node] = shares.get(node, 0) + arc
            previous = position
        return {node: arc / RING_SIZE for node, arc in shares.items()}

    def distribution(self, keys: Iterable[str]) -> Dict[str, int]:
        points = [ring_hash(validate_key(key)) for key in keys]
        with self._lock.read_locked():
            self._require_positions()
            return count_by_node(
                self._table.owner_at(self._table.start_index(point)) for point in points
            )
