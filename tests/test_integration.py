"""
Integration tests for SafeHeart Ledger.

Tests end-to-end workflows through the record ledger.
"""

import json
from dataclasses import replace

import pytest

from safeheart.blockchain.ledger import Blockchain, MismatchKind, GENESIS_PREV_HASH
from safeheart.blockchain.storage import ChainStore
from safeheart.config import LedgerConfig
from safeheart.integration.record_ledger import (
    MedicalRecord, RecordLedger, RecordValidationError, create_record_ledger
)


class TestMedicalRecord:
    """Tests for the record model."""

    def test_to_payload(self):
        """Payload uses the record field names, absent optionals as null."""
        record = MedicalRecord(patient_id="P1", ecg_status="normal")
        assert record.to_payload() == {
            'patientId': 'P1',
            'ecgStatus': 'normal',
            'aiResult': None,
            'extra': None,
        }

    def test_from_dict(self):
        """Request-style data becomes a record."""
        record = MedicalRecord.from_dict({
            'patientId': 'P7',
            'ecgStatus': 'arrhythmia',
            'aiResult': 'AFib (0.93)',
            'extra': {'device': 'holter-2'},
        })
        assert record.ai_result == 'AFib (0.93)'
        assert record.extra == {'device': 'holter-2'}

    def test_from_dict_empty_optionals(self):
        """Empty optional values become None."""
        record = MedicalRecord.from_dict({'patientId': 'P1', 'ecgStatus': 'ok', 'aiResult': ''})
        assert record.ai_result is None

    @pytest.mark.parametrize("data", [
        {},
        {'patientId': 'P1'},
        {'ecgStatus': 'normal'},
        {'patientId': '', 'ecgStatus': 'normal'},
    ])
    def test_required_fields(self, data):
        """patientId and ecgStatus are required."""
        with pytest.raises(RecordValidationError, match="patientId and ecgStatus are required"):
            MedicalRecord.from_dict(data)

    def test_from_payload_genesis(self):
        """Genesis payload is not a record."""
        assert MedicalRecord.from_payload({'info': 'Genesis Block'}) is None


class TestRecordLedgerWorkflow:
    """Integration tests for the four ledger operations."""

    def test_full_scenario(self, tmp_path):
        """Fresh store -> append -> validate -> reload."""
        store_path = tmp_path / "chain.json"
        ledger = RecordLedger(difficulty=2, store=ChainStore(store_path))

        chain = ledger.get_chain()
        assert len(chain) == 1
        assert chain[0].index == 0
        assert chain[0].previous_hash == GENESIS_PREV_HASH

        block = ledger.append_record({"patientId": "P1", "ecgStatus": "normal"})
        assert block.index == 1
        assert block.previous_hash == chain[0].hash
        assert block.hash.startswith("00")
        assert ledger.get_latest() == block
        assert ledger.validate_chain().to_dict() == {'valid': True}

        reopened = RecordLedger(difficulty=2, store=ChainStore(store_path))
        assert reopened.get_chain() == ledger.get_chain()

    def test_append_medical_record(self):
        """A MedicalRecord is stored as its payload."""
        ledger = RecordLedger(difficulty=0)
        record = MedicalRecord("P1", "normal", ai_result="Normal sinus rhythm")
        block = ledger.append_record(record)
        assert block.payload == record.to_payload()

    def test_mapping_stored_as_given(self):
        """Payload mappings are not reshaped by the ledger."""
        ledger = RecordLedger(difficulty=0)
        block = ledger.append_record({"patientId": "P1", "ecgStatus": "normal", "note": "x"})
        assert block.payload == {"patientId": "P1", "ecgStatus": "normal", "note": "x"}

    def test_nested_extra_edit_ignored(self):
        """Editing a record's nested extra after append leaves the chain valid."""
        ledger = RecordLedger(difficulty=1)
        extra = {"device": "holter-7", "leads": [1, 2]}
        ledger.append_record(MedicalRecord("P1", "normal", extra=extra))
        payload = {"patientId": "P2", "ecgStatus": "normal", "extra": {"hr": 72}}
        ledger.append_record(payload)

        extra["device"] = "forged"
        extra["leads"].append(3)
        payload["extra"]["hr"] = 0
        ledger.get_chain()[1].payload["ecgStatus"] = "abnormal"

        chain = ledger.get_chain()
        assert chain[1].payload["extra"] == {"device": "holter-7", "leads": [1, 2]}
        assert chain[1].payload["ecgStatus"] == "normal"
        assert chain[2].payload["extra"] == {"hr": 72}
        assert ledger.validate_chain().valid

    def test_corruption_reported(self):
        """Corrupting block 1's payload is reported, not raised."""
        ledger = RecordLedger(difficulty=1)
        ledger.append_record(MedicalRecord("P1", "normal"))
        chain = ledger.blockchain._chain
        chain[1] = replace(chain[1], payload={**chain[1].payload, 'ecgStatus': 'abnormal'})

        result = ledger.validate_chain()
        assert not result.valid
        assert result.reason is MismatchKind.HASH_MISMATCH
        assert result.block_index == 1
        assert result.to_dict()['block_index'] == 1

    def test_patient_records(self):
        """Blocks can be listed per patient."""
        ledger = RecordLedger(difficulty=0)
        ledger.append_record(MedicalRecord("P1", "normal"))
        ledger.append_record(MedicalRecord("P2", "normal"))
        ledger.append_record(MedicalRecord("P1", "tachycardia"))

        blocks = ledger.get_patient_records("P1")
        assert [b.index for b in blocks] == [1, 3]
        assert ledger.get_patient_records("P404") == []

    def test_get_records_skips_genesis(self):
        """Only record payloads are returned."""
        ledger = RecordLedger(difficulty=0)
        ledger.append_record(MedicalRecord("P1", "normal"))
        assert ledger.get_records() == [MedicalRecord("P1", "normal")]

    def test_existing_blockchain(self):
        """An existing Blockchain can be wrapped."""
        bc = Blockchain(difficulty=0)
        ledger = RecordLedger(blockchain=bc)
        assert ledger.blockchain is bc

    def test_describe(self):
        """Service summary lists the operations."""
        info = RecordLedger(difficulty=0).describe()
        assert info['message'] == "Safe-Heart Blockchain Prototype"
        assert set(info['operations']) == {
            'append_record', 'get_chain', 'validate_chain', 'get_latest'
        }
        assert info['length'] == 1

    def test_from_config(self, tmp_path):
        """A configured ledger persists to the configured file."""
        config = LedgerConfig(difficulty=1, chain_file=tmp_path / "c" / "chain.json")
        ledger = create_record_ledger(config)
        ledger.append_record(MedicalRecord("P1", "normal"))

        stored = json.loads(config.chain_file.read_text(encoding='utf-8'))
        assert len(stored) == 2
        assert stored[1]['data']['patientId'] == "P1"
        assert ledger.blockchain.difficulty == 1
