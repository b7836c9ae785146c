"""Unit tests for AppConfig and StorageConfig."""

from __future__ import annotations

import os
from unittest.mock import patch

import pytest

from certanchor.config import AppConfig, LedgerConfig, StorageConfig
from certanchor.domain.errors.configuration import ConfigurationError


class TestStorageConfig:
    def test_defaults(self) -> None:
        config = StorageConfig()
        assert config.backend == "stub"
        assert config.prefix == "certificates"
        assert config.timeout_seconds == 10.0

    def test_s3_requires_bucket(self) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            StorageConfig(backend="s3").require_backend_settings()
        assert exc_info.value.setting == "STORAGE_BUCKET"

    def test_s3_with_bucket_is_complete(self) -> None:
        StorageConfig(backend="s3", bucket="docs").require_backend_settings()

    @pytest.mark.parametrize(
        "kwargs",
        [{"backend": "gcs"}, {"prefix": "//"}, {"timeout_seconds": 0}],
    )
    def test_invalid_values_rejected(self, kwargs: dict[str, object]) -> None:
        with pytest.raises(ValueError):
            StorageConfig(**kwargs)  # type: ignore[arg-type]

    def test_from_environment(self) -> None:
        env = {
            "STORAGE_BACKEND": "S3",
            "STORAGE_BUCKET": "registrar-docs",
            "STORAGE_PREFIX": "diplomas",
            "STORAGE_REGION": "eu-central-1",
            "STORAGE_ENDPOINT_URL": "http://minio:9000",
            "STORAGE_TIMEOUT": "3.5",
        }
        with patch.dict(os.environ, env, clear=True):
            config = StorageConfig.from_environment()

        assert config == StorageConfig(
            backend="s3",
            bucket="registrar-docs",
            prefix="diplomas",
            region="eu-central-1",
            endpoint_url="http://minio:9000",
            timeout_seconds=3.5,
        )


class TestAppConfig:
    def test_defaults(self) -> None:
        config = AppConfig()
        assert config.environment == "development"
        assert config.log_level == "INFO"
        assert config.issuer_role == "issuer"
        assert config.cors_allow_origins == ("*",)
        assert not config.is_production

    def test_invalid_log_level_rejected(self) -> None:
        with pytest.raises(ValueError, match="log_level"):
            AppConfig(log_level="VERBOSE")

    def test_blank_issuer_role_rejected(self) -> None:
        with pytest.raises(ValueError, match="issuer_role"):
            AppConfig(issuer_role="  ")

    def test_require_backend_settings_checks_ledger(self) -> None:
        config = AppConfig(ledger=LedgerConfig(backend="evm"))

        with pytest.raises(ConfigurationError) as exc_info:
            config.require_backend_settings()

        assert exc_info.value.setting == "LEDGER_RPC_URL"

    def test_require_backend_settings_checks_storage(self) -> None:
        config = AppConfig(storage=StorageConfig(backend="s3"))

        with pytest.raises(ConfigurationError):
            config.require_backend_settings()

    def test_from_empty_environment(self) -> None:
        with patch.dict(os.environ, {}, clear=True):
            config = AppConfig.from_environment()

        assert config == AppConfig()

    def test_from_environment(self) -> None:
        env = {
            "ENVIRONMENT": "Production",
            "LOG_LEVEL": "debug",
            "ISSUER_ROLE": "registrar",
            "CORS_ALLOW_ORIGINS": "https://a.example, https://b.example,",
            "SEQUENCER_MAX_QUEUE_DEPTH": "3",
        }
        with patch.dict(os.environ, env, clear=True):
            config = AppConfig.from_environment()

        assert config.is_production
        assert config.log_level == "DEBUG"
        assert config.issuer_role == "registrar"
        assert config.cors_allow_origins == ("https://a.example", "https://b.example")
        assert config.sequencer.max_queue_depth == 3
