"""
Record Ledger Module

Connects medical-device records to the blockchain ledger.
Every ECG record becomes one block, giving a tamper-evident history per
patient.

Operations offered to the transport layer:
- append_record: wrap a record in a new block and persist it
- get_chain: the full ordered block list
- get_latest: the most recent block
- validate_chain: full integrity check, reported as data

The ledger object owns the chain for its whole lifetime; create it once at
startup and hand it to whatever serves requests.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Union

from ..blockchain.ledger import Block, Blockchain, ValidationResult, DEFAULT_DIFFICULTY
from ..blockchain.storage import ChainStore
from ..config import LedgerConfig


logger = logging.getLogger(__name__)

SERVICE_NAME = "Safe-Heart Blockchain Prototype"
REQUIRED_FIELDS_MESSAGE = "patientId and ecgStatus are required"


class RecordValidationError(ValueError):
    """Raised when a record lacks a required field."""
    pass


# ============================================================================
# Record Structure
# ============================================================================

@dataclass
class MedicalRecord:
    """
    One medical-device reading as stored in a block payload.

    ai_result and extra are optional and stored as null when absent.
    """
    patient_id: str
    ecg_status: str
    ai_result: Optional[Any] = None
    extra: Optional[Any] = None

    def to_payload(self) -> Dict[str, Any]:
        """Convert record to a block payload."""
        return {
            'patientId': self.patient_id,
            'ecgStatus': self.ecg_status,
            'aiResult': self.ai_result,
            'extra': self.extra,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'MedicalRecord':
        """
        Build a record from request-style data.

        Empty optional values are normalized to None.

        Raises:
            RecordValidationError: If patientId or ecgStatus is missing or empty
        """
        patient_id = data.get('patientId')
        ecg_status = data.get('ecgStatus')
        if not patient_id or not ecg_status:
            raise RecordValidationError(REQUIRED_FIELDS_MESSAGE)

        return cls(
            patient_id=patient_id,
            ecg_status=ecg_status,
            ai_result=data.get('aiResult') or None,
            extra=data.get('extra') or None,
        )

    @classmethod
    def from_payload(cls, payload: Any) -> Optional['MedicalRecord']:
        """Recover a record from a block payload; None for non-record payloads."""
        if not isinstance(payload, Mapping):
            return None
        if 'patientId' not in payload or 'ecgStatus' not in payload:
            return None
        return cls(
            patient_id=payload['patientId'],
            ecg_status=payload['ecgStatus'],
            ai_result=payload.get('aiResult'),
            extra=payload.get('extra'),
        )


# ============================================================================
# Record Ledger
# ============================================================================

class RecordLedger:
    """
    Tamper-evident medical record log backed by a Blockchain.
    """

    def __init__(
        self,
        difficulty: int = DEFAULT_DIFFICULTY,
        store: Optional[ChainStore] = None,
        blockchain: Optional[Blockchain] = None
    ):
        """
        Initialize the record ledger.

        Args:
            difficulty: Proof of Work difficulty for a new blockchain
            store: Optional durable store for a new blockchain
            blockchain: Optional existing blockchain to use instead
        """
        if blockchain is None:
            blockchain = Blockchain(difficulty, store=store)
        self._blockchain = blockchain

    @classmethod
    def from_config(cls, config: LedgerConfig) -> 'RecordLedger':
        """Create a persistent ledger from configuration."""
        return cls(
            difficulty=config.difficulty,
            store=ChainStore(config.chain_file),
        )

    @property
    def blockchain(self) -> Blockchain:
        return self._blockchain

    # ========================================================================
    # Collaborator Operations
    # ========================================================================

    def append_record(self, payload: Union[MedicalRecord, Mapping[str, Any]]) -> Block:
        """
        Append a record to the chain.

        Required-field checks belong to the caller; a mapping is stored as
        given. Use MedicalRecord.from_dict to validate request data first.

        Args:
            payload: A MedicalRecord or an already-built payload mapping

        Returns:
            The appended block

        Raises:
            PersistenceError: If the chain could not be saved
        """
        if isinstance(payload, MedicalRecord):
            data = payload.to_payload()
        else:
            data = dict(payload)

        block = self._blockchain.append(data)
        logger.debug("Record for patient %s stored in block #%d",
                     data.get('patientId'), block.index)
        return block

    def get_chain(self) -> List[Block]:
        """Get all blocks in order."""
        return self._blockchain.chain

    def get_latest(self) -> Block:
        """Get the most recent block."""
        return self._blockchain.get_latest()

    def validate_chain(self) -> ValidationResult:
        """Validate the whole chain."""
        result = self._blockchain.validate()
        if not result.valid:
            logger.warning("Chain validation failed: %s", result.message)
        return result

    # ========================================================================
    # Retrieval
    # ========================================================================

    def get_records(self) -> List[MedicalRecord]:
        """All records stored in the chain, oldest first (genesis excluded)."""
        records = []
        for block in self._blockchain.chain:
            record = MedicalRecord.from_payload(block.payload)
            if record is not None:
                records.append(record)
        return records

    def get_patient_records(self, patient_id: str) -> List[Block]:
        """Get the blocks holding records for one patient."""
        return [
            block for block in self._blockchain.chain
            if isinstance(block.payload, Mapping)
            and block.payload.get('patientId') == patient_id
        ]

    def describe(self) -> Dict[str, Any]:
        """Summary of the service and its operations."""
        return {
            'message': SERVICE_NAME,
            'operations': {
                'append_record': 'Add a record (patientId, ecgStatus, aiResult, extra)',
                'get_chain': 'Return the whole chain',
                'validate_chain': 'Check chain integrity',
                'get_latest': 'Return the latest block',
            },
            'length': self._blockchain.length,
            'difficulty': self._blockchain.difficulty,
        }


# ============================================================================
# Convenience Functions
# ============================================================================

def create_record_ledger(config: Optional[LedgerConfig] = None) -> RecordLedger:
    """Create a persistent record ledger from config (environment by default)."""
    return RecordLedger.from_config(config or LedgerConfig.from_env())
