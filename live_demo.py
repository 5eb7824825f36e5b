#!/usr/bin/env python
"""
╔══════════════════════════════════════════════════════════════════════════════╗
║                        SAFE-HEART LEDGER LIVE DEMO                            ║
╚══════════════════════════════════════════════════════════════════════════════╝

Walks through the record ledger:
- Chain start-up with a genesis block
- Appending ECG records with Proof of Work
- Full chain validation
- Tamper detection after editing the stored file
- Reload from disk
"""

import json
import sys
import tempfile
from pathlib import Path

from safeheart.blockchain.storage import ChainStore
from safeheart.integration.record_ledger import MedicalRecord, RecordLedger


def print_header(title):
    """Print a formatted section header"""
    print("\n" + "═" * 70)
    print(f"  {title}")
    print("═" * 70)


def print_step(step_num, description):
    """Print a numbered step"""
    print(f"\n  [{step_num}] {description}")


def pause(message="Press ENTER to continue..."):
    """Pause for presenter to explain"""
    if sys.stdin.isatty():
        print(f"\n  [PAUSE] {message}")
        input()


def main():
    with tempfile.TemporaryDirectory(prefix="safeheart_demo_") as workdir:
        return run_demo(Path(workdir) / "chain.json")


def run_demo(chain_file):
    difficulty = 2

    print("\n" + "╔" + "═" * 68 + "╗")
    print("║" + "SAFE-HEART - TAMPER-EVIDENT ECG RECORD LEDGER".center(68) + "║")
    print("╚" + "═" * 68 + "╝")
    print(f"\n  Chain file: {chain_file}")
    print(f"  Difficulty: {difficulty} (cost dial only, not a security boundary)")

    print_header("PART 1: START-UP")
    ledger = RecordLedger(difficulty=difficulty, store=ChainStore(chain_file))
    genesis = ledger.get_latest()
    print_step("1.1", "Genesis block")
    print(genesis)

    pause()

    print_header("PART 2: APPENDING RECORDS")
    records = [
        MedicalRecord("P-1001", "normal", ai_result="Normal sinus rhythm"),
        MedicalRecord("P-1002", "abnormal", ai_result="Atrial fibrillation (0.91)"),
        MedicalRecord("P-1001", "normal", ai_result="Normal sinus rhythm",
                      extra={"device": "holter-7"}),
    ]
    for i, record in enumerate(records, start=1):
        block = ledger.append_record(record)
        print_step(f"2.{i}", f"Record for {record.patient_id}")
        print(block)

    pause()

    print_header("PART 3: VALIDATION")
    result = ledger.validate_chain()
    print(f"\n  {json.dumps(result.to_dict())}")

    pause()

    print_header("PART 4: TAMPERING WITH THE STORED FILE")
    data = json.loads(chain_file.read_text(encoding='utf-8'))
    data[2]['data']['ecgStatus'] = "normal"
    chain_file.write_text(json.dumps(data, indent=2), encoding='utf-8')
    print("\n  Block 2 ecgStatus rewritten to 'normal' without recomputing its hash")

    reloaded = RecordLedger(difficulty=difficulty, store=ChainStore(chain_file))
    result = reloaded.validate_chain()
    print(f"\n  Reloaded chain length: {len(reloaded.get_chain())}")
    print(f"  {json.dumps(result.to_dict())}")

    print("\n" + "═" * 70)
    print("  Demo complete")
    print("═" * 70)
    return 0 if not result.valid else 1


if __name__ == "__main__":
    sys.exit(main())
