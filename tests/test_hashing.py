import hashlib

import pytest

from hashring.errors import InvalidArgumentError
from hashring.hashing import RING_SIZE, ring_hash, validate_key, virtual_position_key


def test_hash_is_first_four_digest_bytes_little_endian():
    digest = hashlib.sha256(b"node1").digest()
    expected = digest[0] | digest[1] << 8 | digest[2] << 16 | digest[3] << 24
    assert ring_hash("node1") == expected


def test_hash_is_deterministic_and_in_range():
    values = [ring_hash(f"key{i}") for i in range(200)]
    assert values == [ring_hash(f"key{i}") for i in range(200)]
    assert all(0 <= v < RING_SIZE for v in values)
    assert len(set(values)) > 190


@pytest.mark.parametrize("bad", [None, "", " ", "\t\n", 42, b"node"])
def test_invalid_keys_rejected_before_hashing(bad):
    with pytest.raises(InvalidArgumentError):
        ring_hash(bad)


def test_invalid_key_error_is_value_error():
    with pytest.raises(ValueError, match="node"):
        validate_key("   ", "node")


def test_validate_key_returns_key():
    assert validate_key(" padded ") == " padded "


def test_virtual_position_key_format():
    assert virtual_position_key("node1", 3) == "node1:3"
