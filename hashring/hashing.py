import hashlib

from .errors import InvalidArgumentError

RING_SIZE = 2**32


def validate_key(key: str, name: str = "key") -> str:
    if key is None or not isinstance(key, str):
        raise InvalidArgumentError(f"{name} must be a string, got {type(key).__name__}")
    if not key.strip():
        raise InvalidArgumentError(f"{name} must not be empty or whitespace")
    return key


def ring_hash(key: str) -> int:
    """Map a key to a 32-bit ring position.

    The position is the first four bytes of the SHA-256 digest of the UTF-8
    encoded key, read little-endian, so it is stable across processes.
    """
    validate_key(key)
    digest = hashlib.sha256(key.encode("utf-8")).digest()
    return int.from_bytes(digest[:4], "little")


def virtual_position_key(node: str, index: int) -> str:
    return f"{node}:{index}"
