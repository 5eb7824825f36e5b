# Blockchain Module
"""
Record ledger implementation including:
- SHA-256 chaining over canonical payloads
- Optional Proof of Work with adjustable difficulty
- Full chain validation
- Atomic JSON persistence

Security features:
- Immutable blocks (frozen dataclass)
- Tamper detection on every block after genesis
"""

# Lazy imports to avoid RuntimeWarning when running module directly
def __getattr__(name):
    """Lazy import to avoid circular import issues."""
    if name == 'ChainStore':
        from .storage import ChainStore
        return ChainStore
    from . import ledger
    return getattr(ledger, name)

__all__ = [
    'Block',
    'Blockchain',
    'ChainStore',
    'ProofOfWork',
    'ValidationResult',
    'MismatchKind',
    'LedgerError',
    'EmptyChainError',
    'PersistenceError',
    'MalformedStateError',
    'create_blockchain',
    'GENESIS_PREV_HASH',
    'GENESIS_PAYLOAD',
    'DEFAULT_DIFFICULTY',
]
