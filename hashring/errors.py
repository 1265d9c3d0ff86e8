from typing import Optional


class HashRingError(Exception):
    """Base class for every error raised by the ring."""


class InvalidArgumentError(HashRingError, ValueError):
    """A key, virtual node count or replication factor failed validation."""


class OutOfRangeError(HashRingError, ValueError):
    """More replicas were requested than there are registered nodes."""


class FailedPreconditionError(HashRingError, RuntimeError):
    """A lookup was attempted on a ring with no positions."""


class PositionCollisionError(HashRingError):
    """A node's position is already taken, so the node was not added."""

    def __init__(self, node: str, position: int, owner: Optional[str]):
        self.node = node
        self.position = position
        self.owner = owner
        super().__init__(
            f"Position {position} for node '{node}' is already owned by '{owner}'"
        )


class RingCorruptionError(HashRingError, RuntimeError):
    """Position table invariants no longer hold. Not recoverable."""
