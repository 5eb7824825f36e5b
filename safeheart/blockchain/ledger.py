"""
Blockchain Ledger Module

Implements the hash chain behind the medical record log:
- SHA-256 content hash per block (canonical payload serialization)
- Linkage to the previous block's hash
- Optional Proof of Work with adjustable difficulty
- Full chain validation reported as data
- Write-ahead persistence through a ChainStore

Proof of Work here is a cost dial for demonstration only. A single writer
controls the whole chain, so mining gives no protection against that writer.

Security features:
- Immutable blocks (frozen dataclass)
- Tamper detection by hash recomputation and linkage checks
"""

import copy
import json
import logging
import math
import threading
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from itertools import count
from typing import Any, Dict, List, Optional, TYPE_CHECKING

from ..core_crypto.digest import compute_block_hash

if TYPE_CHECKING:
    from .storage import ChainStore


logger = logging.getLogger(__name__)


# ============================================================================
# Constants
# ============================================================================

GENESIS_PREV_HASH = "0"  # Sentinel predecessor of the genesis block
GENESIS_PAYLOAD: Dict[str, Any] = {"info": "Genesis Block"}
DEFAULT_DIFFICULTY = 2  # Leading zero hex characters required
MAX_DIFFICULTY = 64  # Length of a hex SHA-256 digest


def utc_timestamp() -> str:
    """Current UTC time as ISO-8601 with milliseconds, e.g. 2026-10-19T08:15:30.123Z."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec='milliseconds').replace('+00:00', 'Z')


# ============================================================================
# Errors
# ============================================================================

class LedgerError(Exception):
    """Base class for ledger errors."""
    pass


class EmptyChainError(LedgerError):
    """Raised when the chain unexpectedly holds no blocks."""
    pass


class PersistenceError(LedgerError):
    """Raised when the block sequence could not be written to storage."""
    pass


class MalformedStateError(LedgerError):
    """Raised when persisted chain content cannot be parsed."""
    pass


def reject_json_constant(name: str) -> Any:
    """parse_constant hook refusing NaN and Infinity, which have no canonical form."""
    raise MalformedStateError(f"Non-finite number {name} in chain data")


def parse_finite_float(text: str) -> float:
    """parse_float hook refusing literals that overflow to infinity, such as 1e999."""
    value = float(text)
    if not math.isfinite(value):
        raise MalformedStateError(f"Non-finite number {text} in chain data")
    return value


# ============================================================================
# Block Structure (Immutable)
# ============================================================================

@dataclass(frozen=True)
class Block:
    """
    Immutable block structure for the record ledger.

    ``hash`` is derived from the other five fields. Build blocks with
    ``Block.create`` (or ``ProofOfWork.mine``) so the invariant holds.
    """
    index: int
    timestamp: str
    payload: Dict[str, Any]
    previous_hash: str
    nonce: int
    hash: str

    @classmethod
    def create(
        cls,
        index: int,
        timestamp: str,
        payload: Dict[str, Any],
        previous_hash: str
    ) -> 'Block':
        """
        Create a block with nonce 0 and its hash computed immediately.

        The block keeps its own deep copy of payload, so later edits to the
        caller's object cannot alter a sealed block.
        """
        payload = copy.deepcopy(payload)
        return cls(
            index=index,
            timestamp=timestamp,
            payload=payload,
            previous_hash=previous_hash,
            nonce=0,
            hash=compute_block_hash(index, previous_hash, timestamp, payload, 0),
        )

    def compute_hash(self) -> str:
        """Recompute the hash from the block's current fields."""
        return compute_block_hash(
            self.index,
            self.previous_hash,
            self.timestamp,
            self.payload,
            self.nonce
        )

    def detached(self) -> 'Block':
        """Copy of the block whose payload shares no objects with this one."""
        return replace(self, payload=copy.deepcopy(self.payload))

    def to_dict(self) -> Dict[str, Any]:
        """Convert block to dictionary for serialization."""
        return {
            'index': self.index,
            'timestamp': self.timestamp,
            'data': self.payload,
            'previousHash': self.previous_hash,
            'nonce': self.nonce,
            'hash': self.hash,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Block':
        """
        Create block from dictionary.

        The stored hash is taken as-is; it is not recomputed here so that
        tampering stays visible to ``Blockchain.validate``.

        Raises:
            MalformedStateError: If a field is missing or has the wrong type
        """
        try:
            block = cls(
                index=data['index'],
                timestamp=data['timestamp'],
                payload=data['data'],
                previous_hash=data['previousHash'],
                nonce=data['nonce'],
                hash=data['hash'],
            )
        except (KeyError, TypeError) as e:
            raise MalformedStateError(f"Invalid block record: {e!r}") from e

        ints_ok = all(
            isinstance(v, int) and not isinstance(v, bool) and v >= 0
            for v in (block.index, block.nonce)
        )
        strs_ok = all(
            isinstance(v, str)
            for v in (block.timestamp, block.previous_hash, block.hash)
        )
        if not (ints_ok and strs_ok):
            raise MalformedStateError(f"Invalid field types in block {data.get('index')!r}")
        return block

    def __str__(self) -> str:
        return (
            f"Block #{self.index}\n"
            f"  Hash: {self.hash[:16]}...\n"
            f"  Prev: {self.previous_hash[:16]}...\n"
            f"  Time: {self.timestamp}\n"
            f"  Nonce: {self.nonce}"
        )


# ============================================================================
# Proof of Work
# ============================================================================

class ProofOfWork:
    """
    Proof of Work with adjustable difficulty.

    Difficulty is the number of leading '0' characters required in the
    block's hex hash. Difficulty 0 disables mining. Expected work grows as
    16 ** difficulty, so values above 4 are impractical for interactive use.
    """

    def __init__(self, difficulty: int = DEFAULT_DIFFICULTY):
        """
        Args:
            difficulty: Leading zero hex characters required (0-64)
        """
        if isinstance(difficulty, bool) or not isinstance(difficulty, int):
            raise ValueError("Difficulty must be an integer")
        if not 0 <= difficulty <= MAX_DIFFICULTY:
            raise ValueError(f"Difficulty must be between 0 and {MAX_DIFFICULTY}")
        self.difficulty = difficulty
        self._target_prefix = '0' * difficulty

    @property
    def target_prefix(self) -> str:
        """Required hash prefix."""
        return self._target_prefix

    def hash_meets_target(self, block_hash: str) -> bool:
        """Check if a hex hash meets the difficulty target."""
        return block_hash.startswith(self._target_prefix)

    def mine(self, block: Block) -> Block:
        """
        Search nonces until the block hash meets the target.

        Starts from the block's current nonce. There is no attempt cap.

        Returns:
            The sealed block (the input itself if it already qualifies)
        """
        if self.hash_meets_target(block.hash):
            return block

        for nonce in count(block.nonce + 1):
            block_hash = compute_block_hash(
                block.index, block.previous_hash, block.timestamp, block.payload, nonce
            )
            if self.hash_meets_target(block_hash):
                return replace(block, nonce=nonce, hash=block_hash)


# ============================================================================
# Validation Result
# ============================================================================

class MismatchKind(Enum):
    """Kinds of integrity failure found by chain validation."""
    HASH_MISMATCH = "hash-mismatch"
    LINKAGE_MISMATCH = "linkage-mismatch"


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of a full chain validation."""
    valid: bool
    reason: Optional[MismatchKind] = None
    block_index: Optional[int] = None

    @property
    def message(self) -> str:
        if self.valid:
            return "Chain is valid"
        if self.reason is MismatchKind.HASH_MISMATCH:
            return f"Block {self.block_index} hash mismatch"
        return f"Block {self.block_index} previousHash mismatch"

    def to_dict(self) -> Dict[str, Any]:
        if self.valid:
            return {'valid': True}
        return {
            'valid': False,
            'reason': self.reason.value,
            'block_index': self.block_index,
            'message': self.message,
        }

    def __bool__(self) -> bool:
        return self.valid


# ============================================================================
# Blockchain
# ============================================================================

class Blockchain:
    """
    Append-only hash chain of record blocks.

    Features:
    - Genesis created once, or reloaded from a ChainStore
    - Optional Proof of Work per appended block
    - Write-ahead persistence: a block is committed in memory only after
      the extended sequence has been saved
    - Full chain validation
    """

    def __init__(
        self,
        difficulty: int = DEFAULT_DIFFICULTY,
        store: Optional['ChainStore'] = None
    ):
        """
        Initialize the chain.

        Args:
            difficulty: PoW difficulty (leading zero hex characters)
            store: Optional durable store; without one the chain is in-memory only
        """
        self._pow = ProofOfWork(difficulty)
        self._store = store
        self._lock = threading.RLock()
        self._chain: List[Block] = []

        loaded = store.load() if store is not None else None
        if loaded:
            self._chain = loaded
            logger.info("Loaded chain of %d blocks from %s", len(loaded), store.path)
            result = self.validate()
            if not result.valid:
                logger.warning("Reloaded chain failed validation: %s", result.message)
        else:
            self._create_genesis_block()

    def _create_genesis_block(self) -> None:
        """Create the genesis (first) block and persist it."""
        genesis = Block.create(
            index=0,
            timestamp=utc_timestamp(),
            payload=dict(GENESIS_PAYLOAD),
            previous_hash=GENESIS_PREV_HASH,
        )
        if self._store is not None:
            self._store.save([genesis])
        self._chain = [genesis]
        logger.info("Genesis block created with hash %s", genesis.hash)

    @property
    def chain(self) -> List[Block]:
        """Get the blockchain (read-only view)."""
        with self._lock:
            return [block.detached() for block in self._chain]

    @property
    def length(self) -> int:
        """Get blockchain length."""
        return len(self._chain)

    def __len__(self) -> int:
        return len(self._chain)

    @property
    def difficulty(self) -> int:
        """Get current difficulty."""
        return self._pow.difficulty

    @property
    def proof_of_work(self) -> ProofOfWork:
        return self._pow

    def get_latest(self) -> Block:
        """
        Get the last block in the chain.

        Raises:
            EmptyChainError: If the chain holds no blocks (invariant violation)
        """
        with self._lock:
            if not self._chain:
                raise EmptyChainError("Chain has no blocks")
            return self._chain[-1].detached()

    @property
    def last_block(self) -> Block:
        return self.get_latest()

    def append(self, payload: Dict[str, Any], timestamp: Optional[str] = None) -> Block:
        """
        Append a new block holding payload.

        The candidate is built on the current tail, mined when difficulty > 0,
        saved together with the existing blocks and only then committed.

        Args:
            payload: Opaque record payload
            timestamp: Creation time; defaults to the current UTC time

        Returns:
            The appended block, with its final nonce and hash

        Raises:
            PersistenceError: If saving fails; the chain is left unchanged
            ValueError: If the payload cannot be canonicalized
        """
        with self._lock:
            if not self._chain:
                raise EmptyChainError("Chain has no blocks")
            prev_block = self._chain[-1]
            candidate = Block.create(
                index=len(self._chain),
                timestamp=timestamp if timestamp is not None else utc_timestamp(),
                payload=payload,
                previous_hash=prev_block.hash,
            )

            if self._pow.difficulty > 0:
                candidate = self._pow.mine(candidate)

            if self._store is not None:
                self._store.save(self._chain + [candidate])

            self._chain.append(candidate)

        logger.info(
            "Appended block #%d (nonce=%d, hash=%s...)",
            candidate.index, candidate.nonce, candidate.hash[:16]
        )
        return candidate.detached()

    def validate(self) -> ValidationResult:
        """
        Validate the entire blockchain.

        Checks every block after genesis for (a) a hash that matches its
        recomputed content and (b) a previous hash equal to its
        predecessor's hash. Stops at the first failure.

        Returns:
            ValidationResult describing the earliest failure, if any
        """
        with self._lock:
            blocks = list(self._chain)

        for i in range(1, len(blocks)):
            current = blocks[i]
            previous = blocks[i - 1]

            try:
                recomputed = current.compute_hash()
            except ValueError:
                recomputed = None  # payload has no canonical form
            if current.hash != recomputed:
                return ValidationResult(False, MismatchKind.HASH_MISMATCH, i)

            if current.previous_hash != previous.hash:
                return ValidationResult(False, MismatchKind.LINKAGE_MISMATCH, i)

        return ValidationResult(True)

    def to_json(self) -> str:
        """Serialize the block sequence to JSON."""
        return json.dumps([block.to_dict() for block in self.chain], indent=2)

    @classmethod
    def from_json(cls, json_str: str, difficulty: int = DEFAULT_DIFFICULTY) -> 'Blockchain':
        """
        Deserialize an in-memory blockchain from JSON.

        Only the structure is checked; call ``validate`` for integrity.

        Raises:
            MalformedStateError: If the content is not a non-empty block list
        """
        try:
            data = json.loads(
                json_str,
                parse_constant=reject_json_constant,
                parse_float=parse_finite_float,
            )
        except ValueError as e:
            raise MalformedStateError(f"Invalid chain JSON: {e}") from e
        if not isinstance(data, list) or not data:
            raise MalformedStateError("Chain JSON must be a non-empty list of blocks")

        blockchain = cls.__new__(cls)
        blockchain._pow = ProofOfWork(difficulty)
        blockchain._store = None
        blockchain._lock = threading.RLock()
        blockchain._chain = [Block.from_dict(block_data) for block_data in data]
        return blockchain

    def print_chain(self) -> None:
        """Print the blockchain."""
        print(f"\nBlockchain (difficulty={self.difficulty}, length={self.length})")
        print("=" * 60)
        for block in self.chain:
            print(block)
            print("-" * 40)


# ============================================================================
# Convenience Functions
# ============================================================================

def create_blockchain(
    difficulty: int = DEFAULT_DIFFICULTY,
    store: Optional['ChainStore'] = None
) -> Blockchain:
    """Create a new blockchain with given difficulty."""
    return Blockchain(difficulty, store=store)
