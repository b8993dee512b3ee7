from __future__ import annotations

import argparse
import ast
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Sequence

_FRAMEWORKS = frozenset(
    {
        "fastapi",
        "starlette",
        "sqlalchemy",
        "alembic",
        "redis",
        "httpx",
        "requests",
        "opentelemetry",
    }
)

# Layer name -> modules that layer must not import.
LAYER_RULES: dict[str, frozenset[str]] = {
    "domain": _FRAMEWORKS
    | {"pydantic", "prometheus_client", "rsv.application", "rsv.api", "rsv.infrastructure"},
    "application": _FRAMEWORKS | {"rsv.api", "rsv.infrastructure"},
}

SRC_ROOT = Path(__file__).resolve().parents[1] / "src" / "rsv"


@dataclass(frozen=True)
class Violation:
    file_path: Path
    line: int
    module: str
    layer: str


def _python_files(root: Path) -> Iterable[Path]:
    if root.is_file() and root.suffix == ".py":
        yield root
        return
    if root.is_dir():
        yield from sorted(root.rglob("*.py"))


def _matches(module: str, forbidden: frozenset[str]) -> bool:
    return any(module == name or module.startswith(f"{name}.") for name in forbidden)


def _imported_modules(tree: ast.AST) -> Iterable[tuple[int, str]]:
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            for alias in node.names:
                yield node.lineno, alias.name
        elif isinstance(node, ast.ImportFrom) and node.module and node.level == 0:
            yield node.lineno, node.module


def _scan_file(file_path: Path, layer: str) -> list[Violation]:
    forbidden = LAYER_RULES[layer]
    tree = ast.parse(file_path.read_text(encoding="utf-8"), filename=str(file_path))
    return [
        Violation(file_path=file_path, line=line, module=module, layer=layer)
        for line, module in _imported_modules(tree)
        if _matches(module, forbidden)
    ]


def find_violations(paths: Sequence[Path], layer: str = "domain") -> list[Violation]:
    if layer not in LAYER_RULES:
        raise ValueError(f"unknown layer: {layer}")
    violations: list[Violation] = []
    for path in paths:
        for file_path in _python_files(path):
            violations.extend(_scan_file(file_path, layer))
    return violations


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Dependency policy check for the rsv domain and application layers."
    )
    parser.add_argument(
        "--layer",
        choices=sorted(LAYER_RULES),
        action="append",
        default=[],
        help="Layer rules to apply (repeatable). Defaults to every layer, or domain with --path.",
    )
    parser.add_argument(
        "--path",
        action="append",
        default=[],
        help="Path to scan with the selected layer's rules (repeatable).",
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)
    layers = args.layer or (["domain"] if args.path else sorted(LAYER_RULES))

    violations: list[Violation] = []
    for layer in layers:
        paths = [Path(item) for item in args.path] if args.path else [SRC_ROOT / layer]
        violations.extend(find_violations(paths, layer=layer))

    if not violations:
        print("depcheck passed")
        return 0

    print("depcheck failed: forbidden imports detected")
    for violation in violations:
        print(f"[{violation.layer}] {violation.file_path}:{violation.line} -> {violation.module}")
    return 1


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
