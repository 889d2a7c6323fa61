"""
Import-boundary enforcement.

1. Domain purity       -- approval_kernel/domain/** imports no DB, ORM,
                          services, selectors or outer packages.
2. Engine purity       -- approval_engines/** imports no DB drivers, ORM,
                          kernel models/db/services, config or services.
3. Engine no-impure    -- approval_engines/** never reads the wall clock
                          or the environment.
4. Kernel direction    -- approval_kernel/** never imports approval_config
                          or approval_services.
5. Config isolation    -- only approval_config/__init__.py reads the
                          environment.

All scanning is done via AST; these tests are read-only.
"""

import ast
import glob
from pathlib import Path


def _python_files(root: str) -> list[str]:
    """Return all .py files under *root*, sorted for deterministic order."""
    return sorted(glob.glob(f"{root}/**/*.py", recursive=True))


def _extract_imports(filepath: str) -> list[tuple[int, str]]:
    """Return (line_number, module_string) for every import in *filepath*."""
    tree = ast.parse(Path(filepath).read_text(), filename=filepath)
    results: list[tuple[int, str]] = []
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            for alias in node.names:
                results.append((node.lineno, alias.name))
        elif isinstance(node, ast.ImportFrom) and node.module:
            results.append((node.lineno, node.module))
    return results


def _extract_attribute_refs(filepath: str) -> list[tuple[int, str]]:
    """Return (line_number, 'receiver.attr') for two-level attribute references."""
    tree = ast.parse(Path(filepath).read_text(), filename=filepath)
    return [
        (node.lineno, f"{node.value.id}.{node.attr}")
        for node in ast.walk(tree)
        if isinstance(node, ast.Attribute) and isinstance(node.value, ast.Name)
    ]


def _matches_any(module: str, prefixes: tuple[str, ...]) -> bool:
    return any(module == p or module.startswith(f"{p}.") for p in prefixes)


def _violations(root: str, forbidden: tuple[str, ...]) -> list[str]:
    return [
        f"  {filepath}:{lineno} imports '{module}'"
        for filepath in _python_files(root)
        for lineno, module in _extract_imports(filepath)
        if _matches_any(module, forbidden)
    ]


class TestDomainPurity:
    FORBIDDEN = (
        "sqlalchemy",
        "approval_kernel.db",
        "approval_kernel.models",
        "approval_kernel.selectors",
        "approval_kernel.services",
        "approval_engines",
        "approval_config",
        "approval_services",
    )

    def test_domain_has_no_forbidden_imports(self):
        violations = _violations("approval_kernel/domain", self.FORBIDDEN)
        assert not violations, "Domain must stay pure:\n" + "\n".join(violations)


class TestEnginePurity:
    FORBIDDEN = (
        "sqlalchemy",
        "psycopg2",
        "sqlite3",
        "yaml",
        "approval_kernel.db",
        "approval_kernel.models",
        "approval_kernel.selectors",
        "approval_kernel.services",
        "approval_config",
        "approval_services",
    )

    def test_engine_files_have_no_forbidden_imports(self):
        violations = _violations("approval_engines", self.FORBIDDEN)
        assert not violations, "Engines must stay pure:\n" + "\n".join(violations)


class TestEngineNoImpureFunctions:
    IMPURE = ("datetime.now", "datetime.utcnow", "date.today", "os.environ", "os.getenv")

    def test_engines_never_read_clock_or_environment(self):
        violations = [
            f"  {filepath}:{lineno} uses '{ref}'"
            for filepath in _python_files("approval_engines")
            for lineno, ref in _extract_attribute_refs(filepath)
            if ref in self.IMPURE
        ]
        assert not violations, "Engines must not be impure:\n" + "\n".join(violations)


class TestKernelDirection:
    def test_kernel_never_imports_outer_packages(self):
        violations = _violations("approval_kernel", ("approval_config", "approval_services"))
        assert not violations, "Kernel depends upward:\n" + "\n".join(violations)


class TestConfigIsolation:
    def test_only_entrypoint_reads_environment(self):
        violations = [
            f"  {filepath}:{lineno} uses '{ref}'"
            for filepath in _python_files("approval_config")
            if not filepath.endswith("__init__.py")
            for lineno, ref in _extract_attribute_refs(filepath)
            if ref in ("os.environ", "os.getenv")
        ]
        assert not violations, "\n".join(violations)
