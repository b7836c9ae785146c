"""Configuration loaded from environment variables."""

from certanchor.config.app_config import AppConfig
from certanchor.config.ledger_config import (
    TEST_SEQUENCER_CONFIG,
    LedgerConfig,
    SequencerConfig,
)
from certanchor.config.storage_config import StorageConfig

__all__ = [
    "AppConfig",
    "LedgerConfig",
    "SequencerConfig",
    "StorageConfig",
    "TEST_SEQUENCER_CONFIG",
]
