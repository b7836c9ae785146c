"""Unit tests for the import boundary checking script.

Tests verify that the hexagonal architecture import rules are enforced:
- domain/ imports NOTHING from other certanchor layers
- application/ imports from domain/ only
- infrastructure/ imports from domain/, application/ and config/
- api/ reaches adapters only through bootstrap/
"""

import ast
import sys
from collections.abc import Iterator
from pathlib import Path

import pytest

ROOT = Path(__file__).parent.parent.parent
sys.path.insert(0, str(ROOT / "scripts"))

from check_imports import (  # noqa: E402
    ALLOWED_IMPORTS,
    LAYER_HIERARCHY,
    check_file_imports,
    check_import_boundaries,
    format_violations,
    get_import_module,
)


class TestLayerHierarchy:
    """Test that the layer hierarchy is correctly defined."""

    def test_domain_is_innermost(self) -> None:
        assert LAYER_HIERARCHY["domain"] == 0

    def test_api_is_outermost(self) -> None:
        assert LAYER_HIERARCHY["api"] == max(LAYER_HIERARCHY.values())

    def test_bootstrap_sits_between_adapters_and_api(self) -> None:
        assert (
            LAYER_HIERARCHY["infrastructure"]
            < LAYER_HIERARCHY["bootstrap"]
            < LAYER_HIERARCHY["api"]
        )


class TestAllowedImports:
    """Test that the allowed imports are correctly defined."""

    def test_domain_imports_nothing(self) -> None:
        assert ALLOWED_IMPORTS["domain"] == set()

    def test_application_imports_domain_only(self) -> None:
        assert ALLOWED_IMPORTS["application"] == {"domain"}

    def test_api_never_imports_infrastructure(self) -> None:
        assert "infrastructure" not in ALLOWED_IMPORTS["api"]
        assert "bootstrap" in ALLOWED_IMPORTS["api"]


class TestGetImportModule:
    """Test the get_import_module helper function."""

    def test_import_from_statement(self) -> None:
        node = ast.parse("from certanchor.domain.models import anchor").body[0]
        assert isinstance(node, ast.ImportFrom)
        assert get_import_module(node) == "certanchor.domain.models"

    def test_import_statement(self) -> None:
        node = ast.parse("import certanchor.domain.models").body[0]
        assert isinstance(node, ast.Import)
        assert get_import_module(node) == "certanchor.domain.models"

    def test_none_for_relative_import(self) -> None:
        node = ast.parse("from . import something").body[0]
        assert isinstance(node, ast.ImportFrom)
        assert get_import_module(node) is None


class TestCheckFileImports:
    """Test check_file_imports with a temporary package tree."""

    @pytest.fixture
    def package_dir(self, tmp_path: Path) -> Iterator[Path]:
        package = tmp_path / "certanchor"
        package.mkdir()
        for layer in LAYER_HIERARCHY:
            (package / layer).mkdir()
            (package / layer / "__init__.py").write_text("")
        yield package

    def _write(self, package_dir: Path, layer: str, source: str) -> Path:
        path = package_dir / layer / "module.py"
        path.write_text(source)
        return path

    def test_domain_may_import_stdlib(self, package_dir: Path) -> None:
        path = self._write(package_dir, "domain", "import hashlib\nfrom typing import Any\n")
        assert check_file_imports(path, package_dir) == []

    def test_domain_importing_application_is_violation(self, package_dir: Path) -> None:
        path = self._write(
            package_dir, "domain", "from certanchor.application.services import x\n"
        )

        violations = check_file_imports(path, package_dir)

        assert len(violations) == 1
        assert violations[0][1] == 1
        assert "domain layer cannot import from application" in violations[0][2]

    def test_application_importing_infrastructure_is_violation(
        self, package_dir: Path
    ) -> None:
        path = self._write(
            package_dir,
            "application",
            "import os\nfrom certanchor.infrastructure.stubs import LedgerClientStub\n",
        )

        violations = check_file_imports(path, package_dir)

        assert [v[1] for v in violations] == [2]

    def test_application_importing_config_is_violation(self, package_dir: Path) -> None:
        path = self._write(
            package_dir, "application", "from certanchor.config import AppConfig\n"
        )
        assert len(check_file_imports(path, package_dir)) == 1

    def test_api_importing_infrastructure_is_violation(self, package_dir: Path) -> None:
        path = self._write(
            package_dir,
            "api",
            "from certanchor.infrastructure.monitoring.metrics import MetricsCollector\n",
        )
        assert len(check_file_imports(path, package_dir)) == 1

    def test_api_importing_bootstrap_is_allowed(self, package_dir: Path) -> None:
        path = self._write(
            package_dir, "api", "from certanchor.bootstrap.anchoring import get_ledger_client\n"
        )
        assert check_file_imports(path, package_dir) == []

    def test_infrastructure_importing_config_is_allowed(self, package_dir: Path) -> None:
        path = self._write(
            package_dir, "infrastructure", "from certanchor.config import LedgerConfig\n"
        )
        assert check_file_imports(path, package_dir) == []

    def test_format_violations(self, package_dir: Path) -> None:
        path = self._write(package_dir, "domain", "import certanchor.api.main\n")

        report = format_violations(check_import_boundaries(package_dir))

        assert str(path) in report
        assert "Total: 1 violation(s)" in report


class TestRealPackage:
    def test_certanchor_has_no_violations(self) -> None:
        violations = check_import_boundaries(ROOT / "certanchor")

        assert violations == [], format_violations(violations)
