"""
Import-boundary enforcement.

1. Kernel independence -- credit_kernel/** and credit_config/** may not
   import credit_modules at module level.
2. Pure core         -- DTOs, workflows, calculations and projections may
   not import the ORM, sessions, services or repositories.
3. No wall clock     -- nothing outside SystemClock reads the time directly.

All scanning is done via AST; these tests are read-only.
"""

import ast
import glob
from pathlib import Path


def _python_files(*patterns: str) -> list[str]:
    files: set[str] = set()
    for pattern in patterns:
        files.update(glob.glob(pattern, recursive=True))
    return sorted(files)


def _parse(filepath: str) -> ast.Module:
    return ast.parse(Path(filepath).read_text(), filename=filepath)


def _module_level_imports(filepath: str) -> list[tuple[int, str]]:
    """Imports in the module body only; function-local imports are skipped."""
    results: list[tuple[int, str]] = []
    for node in _parse(filepath).body:
        if isinstance(node, ast.Import):
            results.extend((node.lineno, alias.name) for alias in node.names)
        elif isinstance(node, ast.ImportFrom) and node.module:
            results.append((node.lineno, node.module))
    return results


def _all_imports(filepath: str) -> list[tuple[int, str]]:
    results: list[tuple[int, str]] = []
    for node in ast.walk(_parse(filepath)):
        if isinstance(node, ast.Import):
            results.extend((node.lineno, alias.name) for alias in node.names)
        elif isinstance(node, ast.ImportFrom) and node.module:
            results.append((node.lineno, node.module))
    return results


def _matches_any(module: str, prefixes: tuple[str, ...]) -> bool:
    return any(module == p or module.startswith(f"{p}.") for p in prefixes)


class TestKernelIndependence:

    def test_kernel_and_config_do_not_import_modules(self):
        violations = [
            f"  {path}:{lineno} imports '{module}'"
            for path in _python_files("credit_kernel/**/*.py", "credit_config/**/*.py")
            for lineno, module in _module_level_imports(path)
            if _matches_any(module, ("credit_modules",))
        ]
        assert not violations, "Kernel imports modules:\n" + "\n".join(violations)


class TestPureCore:

    PURE_FILES = (
        "credit_kernel/domain/*.py",
        "credit_modules/*/models.py",
        "credit_modules/*/workflows.py",
        "credit_modules/loans/calculations.py",
        "credit_modules/procurement/projections.py",
    )

    FORBIDDEN_PREFIXES = (
        "sqlalchemy",
        "psycopg2",
        "credit_kernel.db.engine",
        "credit_kernel.models",
        "credit_kernel.services",
        "credit_kernel.selectors",
        "credit_modules.repository",
        "credit_modules._unit_of_work",
        "credit_modules.credit.orm",
        "credit_modules.credit.service",
        "credit_modules.loans.orm",
        "credit_modules.loans.service",
        "credit_modules.loans.ledger",
        "credit_modules.procurement.orm",
        "credit_modules.procurement.service",
    )

    def test_pure_files_exist(self):
        assert len(_python_files(*self.PURE_FILES)) >= 10

    def test_no_persistence_imports(self):
        violations = [
            f"  {path}:{lineno} imports '{module}'"
            for path in _python_files(*self.PURE_FILES)
            for lineno, module in _all_imports(path)
            if _matches_any(module, self.FORBIDDEN_PREFIXES)
        ]
        assert not violations, "Pure core reaches persistence:\n" + "\n".join(violations)


class TestNoWallClock:

    FORBIDDEN_CALLS = {("datetime", "now"), ("datetime", "utcnow"), ("date", "today")}

    def test_time_only_from_clock(self):
        violations: list[str] = []
        for path in _python_files(
            "credit_kernel/**/*.py", "credit_modules/**/*.py", "credit_config/**/*.py"
        ):
            if path.replace("\\", "/").endswith("credit_kernel/domain/clock.py"):
                continue
            for node in ast.walk(_parse(path)):
                if (
                    isinstance(node, ast.Attribute)
                    and isinstance(node.value, ast.Name)
                    and (node.value.id, node.attr) in self.FORBIDDEN_CALLS
                ):
                    violations.append(f"  {path}:{node.lineno} uses {node.value.id}.{node.attr}")
        assert not violations, "Direct wall-clock access:\n" + "\n".join(violations)
