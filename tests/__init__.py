# SafeHeart Ledger Test Suite
"""
Test suite including:
- Unit tests (hashing, blocks, proof of work, storage, config)
- Integration tests (record ledger, command line)
- Tamper detection tests

Run with: pytest
"""
