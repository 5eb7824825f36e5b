"""
Unit tests for configuration loading.
"""

from pathlib import Path

import pytest
from safeheart.blockchain.ledger import DEFAULT_DIFFICULTY
from safeheart.config import LedgerConfig, DEFAULT_CHAIN_FILE


class TestLedgerConfig:
    """Tests for LedgerConfig.from_env."""

    def test_defaults(self):
        """Empty environment gives the defaults."""
        config = LedgerConfig.from_env({})
        assert config.difficulty == DEFAULT_DIFFICULTY
        assert config.chain_file == DEFAULT_CHAIN_FILE
        assert config.log_level == "INFO"

    def test_overrides(self):
        """Environment values override the defaults."""
        config = LedgerConfig.from_env({
            'SAFEHEART_DIFFICULTY': '0',
            'SAFEHEART_CHAIN_FILE': '/var/lib/safeheart/chain.json',
            'SAFEHEART_LOG_LEVEL': 'debug',
        })
        assert config.difficulty == 0
        assert config.chain_file == Path('/var/lib/safeheart/chain.json')
        assert config.log_level == "DEBUG"

    @pytest.mark.parametrize("value", ["two", "-1", "1.5"])
    def test_invalid_difficulty(self, value):
        """Bad difficulty values name the variable."""
        with pytest.raises(ValueError, match="SAFEHEART_DIFFICULTY"):
            LedgerConfig.from_env({'SAFEHEART_DIFFICULTY': value})

    def test_reads_os_environ(self, monkeypatch):
        """Without an explicit mapping os.environ is used."""
        monkeypatch.setenv('SAFEHEART_DIFFICULTY', '3')
        assert LedgerConfig.from_env().difficulty == 3
