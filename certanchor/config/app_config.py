"""Top-level application configuration.

Environment Variables:
- ENVIRONMENT: development, test or production (default: development)
- LOG_LEVEL: structlog filter level (default: INFO)
- ISSUER_ROLE: Role allowed to anchor certificates (default: issuer)
- CORS_ALLOW_ORIGINS: Comma-separated origins, or * (default: *)

Ledger, sequencer and storage settings are documented in their own modules.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from certanchor.config._env import get_str_env
from certanchor.config.ledger_config import LedgerConfig, SequencerConfig
from certanchor.config.storage_config import StorageConfig

LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


def _split_origins(raw: str) -> tuple[str, ...]:
    return tuple(origin.strip() for origin in raw.split(",") if origin.strip())


@dataclass(frozen=True)
class AppConfig:
    """Everything the bootstrap needs to wire the service."""

    environment: str = "development"
    log_level: str = "INFO"
    issuer_role: str = "issuer"
    cors_allow_origins: tuple[str, ...] = ("*",)
    ledger: LedgerConfig = field(default_factory=LedgerConfig)
    sequencer: SequencerConfig = field(default_factory=SequencerConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.log_level not in LOG_LEVELS:
            raise ValueError(
                f"log_level must be one of {sorted(LOG_LEVELS)}, got {self.log_level!r}"
            )
        if not self.issuer_role.strip():
            raise ValueError("issuer_role must not be empty")

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def require_backend_settings(self) -> None:
        """Fail fast on a selected backend that lacks its settings."""
        self.ledger.require_backend_settings()
        self.storage.require_backend_settings()

    @classmethod
    def from_environment(cls) -> "AppConfig":
        return cls(
            environment=(get_str_env("ENVIRONMENT", "development") or "development").lower(),
            log_level=(get_str_env("LOG_LEVEL", "INFO") or "INFO").upper(),
            issuer_role=get_str_env("ISSUER_ROLE", "issuer") or "issuer",
            cors_allow_origins=_split_origins(get_str_env("CORS_ALLOW_ORIGINS", "*") or "*"),
            ledger=LedgerConfig.from_environment(),
            sequencer=SequencerConfig.from_environment(),
            storage=StorageConfig.from_environment(),
        )
