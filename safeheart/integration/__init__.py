# Integration Module
"""
Record ledger that stores medical-device records on the blockchain.

This is the surface a transport layer calls into.
"""

# Lazy imports to avoid RuntimeWarning when running module directly
def __getattr__(name):
    """Lazy import to avoid circular import issues."""
    from . import record_ledger
    return getattr(record_ledger, name)

__all__ = [
    'MedicalRecord',
    'RecordLedger',
    'RecordValidationError',
    'create_record_ledger',
]
