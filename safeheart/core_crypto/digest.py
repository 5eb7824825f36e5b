"""
Digest and Canonical Serialization

Hashing primitives used by the record ledger:
- SHA-256 via the ``cryptography`` hash API
- Canonical JSON form of record payloads
- The block-hash function over (index, previous hash, timestamp, payload, nonce)

The canonical form sorts keys at every nesting level and uses compact
separators, so two payloads with the same content hash identically no matter
in which order their keys were inserted.
"""

import json
from typing import Any

from cryptography.hazmat.primitives import hashes


def sha256(data: bytes) -> bytes:
    """
    Compute the SHA-256 digest of data.

    Args:
        data: Bytes to hash

    Returns:
        32-byte digest
    """
    digest = hashes.Hash(hashes.SHA256())
    digest.update(data)
    return digest.finalize()


def sha256_hex(data: bytes) -> str:
    """Compute SHA-256 and return it as a lowercase hex string."""
    return sha256(data).hex()


def canonical_payload(payload: Any) -> str:
    """
    Serialize a payload into its canonical text form.

    Keys are sorted recursively, no whitespace is emitted and non-ASCII
    characters are kept as-is (they are UTF-8 encoded at hashing time).

    Raises:
        ValueError: If the payload holds NaN/Infinity or values that are
            not JSON-serializable
    """
    try:
        return json.dumps(
            payload,
            sort_keys=True,
            separators=(',', ':'),
            ensure_ascii=False,
            allow_nan=False,
        )
    except TypeError as e:
        raise ValueError(f"Payload is not JSON-serializable: {e}") from e


def compute_block_hash(
    index: int,
    previous_hash: str,
    timestamp: str,
    payload: Any,
    nonce: int
) -> str:
    """
    Compute the content hash of a block.

    The digest input is the plain concatenation
    ``index + previous_hash + timestamp + canonical(payload) + nonce``
    encoded as UTF-8.

    Returns:
        Lowercase hex SHA-256 (64 characters)
    """
    material = (
        str(index) +
        previous_hash +
        timestamp +
        canonical_payload(payload) +
        str(nonce)
    )
    return sha256_hex(material.encode('utf-8'))
