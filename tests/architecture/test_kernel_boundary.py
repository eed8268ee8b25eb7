"""
Kernel boundary contract.

Tests that enforce the kernel's architectural boundaries:

1. procurement_kernel/** may NOT import procurement_config or
   procurement_services.  The kernel never depends upward.

2. procurement_kernel/domain/** is pure: no ORM, no DB driver, no
   kernel db package.

3. Sequence numbers never come from an aggregate MAX(...) + 1 query.

These tests read source code via AST; they cannot break anything.
"""

import ast
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _python_files(package: str) -> list[Path]:
    """Return all .py files under a package directory of the repo."""
    return sorted((ROOT / package).rglob("*.py"))


def _extract_imports(filepath: Path) -> list[tuple[int, str]]:
    """Extract (line_number, module_string) for all imports in a file."""
    tree = ast.parse(filepath.read_text(), filename=str(filepath))

    results: list[tuple[int, str]] = []
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            for alias in node.names:
                results.append((node.lineno, alias.name))
        elif isinstance(node, ast.ImportFrom):
            if node.module:
                results.append((node.lineno, node.module))
    return results


def _violations(files: list[Path], forbidden: tuple[str, ...]) -> list[str]:
    found: list[str] = []
    for filepath in files:
        for lineno, module in _extract_imports(filepath):
            for prefix in forbidden:
                if module == prefix or module.startswith(f"{prefix}."):
                    found.append(
                        f"  {filepath.relative_to(ROOT)}:{lineno} imports '{module}'"
                    )
    return found


# ---------------------------------------------------------------------------
# Test: Kernel has no upward dependencies
# ---------------------------------------------------------------------------

class TestKernelNoUpwardDependencies:
    """procurement_kernel/** must not import procurement_config or procurement_services."""

    FORBIDDEN_PREFIXES = (
        "procurement_config",
        "procurement_services",
    )

    def test_kernel_files_found(self):
        assert _python_files("procurement_kernel")

    def test_kernel_does_not_import_forbidden_packages(self):
        violations = _violations(
            _python_files("procurement_kernel"), self.FORBIDDEN_PREFIXES
        )
        assert not violations, (
            "Kernel boundary violation: procurement_kernel/** must not import "
            "upward packages:\n" + "\n".join(violations)
        )

    def test_config_does_not_import_services(self):
        violations = _violations(
            _python_files("procurement_config"), ("procurement_services",)
        )
        assert not violations, "\n".join(violations)


# ---------------------------------------------------------------------------
# Test: Kernel domain purity
# ---------------------------------------------------------------------------

class TestKernelDomainPurity:
    """procurement_kernel/domain/** must not import ORM or DB packages."""

    FORBIDDEN_MODULES = (
        "sqlalchemy",
        "psycopg2",
        "psycopg",
        "sqlite3",
        "procurement_kernel.db",
        "procurement_kernel.models",
        "procurement_kernel.services",
    )

    def test_domain_no_orm_imports(self):
        violations = _violations(
            _python_files("procurement_kernel/domain"), self.FORBIDDEN_MODULES
        )
        assert not violations, (
            "Domain purity violation: procurement_kernel/domain/** must not "
            "import ORM or DB packages:\n" + "\n".join(violations)
        )


# ---------------------------------------------------------------------------
# Test: No aggregate-based numbering
# ---------------------------------------------------------------------------

class TestNoMaxPlusOneNumbering:
    """Sequence numbers come from the counter row, never from func.max()."""

    def test_no_func_max_in_kernel_services(self):
        offenders: list[str] = []
        for filepath in _python_files("procurement_kernel/services"):
            tree = ast.parse(filepath.read_text(), filename=str(filepath))
            for node in ast.walk(tree):
                if (
                    isinstance(node, ast.Attribute)
                    and node.attr == "max"
                    and isinstance(node.value, ast.Name)
                    and node.value.id == "func"
                ):
                    offenders.append(f"  {filepath.relative_to(ROOT)}:{node.lineno}")
        assert not offenders, "func.max() used in services:\n" + "\n".join(offenders)
