# Core Cryptography Module
"""
Hashing primitives for the record ledger:
- SHA-256 digests
- Canonical payload serialization
- Block content hashing
"""
