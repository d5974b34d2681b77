from __future__ import annotations

import argparse
import ast
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Sequence

PACKAGE_ROOT = Path(__file__).resolve().parents[1] / "src" / "tabsettle"

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

# layer -> top-level modules it may never import
LAYER_POLICY: dict[str, frozenset[str]] = {
    "domain": _FRAMEWORKS
    | {
        "pydantic",
        "prometheus_client",
        "tabsettle.api",
        "tabsettle.application",
        "tabsettle.infrastructure",
    },
    "application": _FRAMEWORKS | {"tabsettle.api", "tabsettle.infrastructure"},
}


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


def _is_forbidden(module: str, forbidden: frozenset[str]) -> bool:
    return any(module == item or module.startswith(f"{item}.") for item in forbidden)


def _imported_modules(tree: ast.AST) -> Iterable[tuple[int, str]]:
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            for alias in node.names:
                yield node.lineno, alias.name
        elif isinstance(node, ast.ImportFrom) and node.module and node.level == 0:
            yield node.lineno, node.module


def scan_layer(layer: str, root: Path) -> list[Violation]:
    forbidden = LAYER_POLICY[layer]
    violations: list[Violation] = []
    for file_path in _python_files(root):
        tree = ast.parse(file_path.read_text(encoding="utf-8"), filename=str(file_path))
        for line, module in _imported_modules(tree):
            if _is_forbidden(module, forbidden):
                violations.append(
                    Violation(file_path=file_path, line=line, module=module, layer=layer)
                )
    return violations


def find_violations(paths: Sequence[Path], layer: str = "domain") -> list[Violation]:
    violations: list[Violation] = []
    for path in paths:
        violations.extend(scan_layer(layer, path))
    return violations


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Layer import policy check for the tabsettle package."
    )
    parser.add_argument(
        "--layer",
        choices=sorted(LAYER_POLICY),
        action="append",
        default=[],
        help="Layer to check (repeatable). Defaults to every layer in the policy.",
    )
    parser.add_argument(
        "--path",
        action="append",
        default=[],
        help="Scan these paths with the policy of the single --layer given (default domain).",
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)
    if args.path:
        layer = args.layer[0] if args.layer else "domain"
        violations = find_violations([Path(item) for item in args.path], layer=layer)
    else:
        violations = []
        for layer in args.layer or sorted(LAYER_POLICY):
            violations.extend(scan_layer(layer, PACKAGE_ROOT / layer))

    if not violations:
        print("depcheck passed")
        return 0

    print("depcheck failed: forbidden imports detected")
    for violation in violations:
        print(f"{violation.file_path}:{violation.line} [{violation.layer}] -> {violation.module}")
    return 1


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
