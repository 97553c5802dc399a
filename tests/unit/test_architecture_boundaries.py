import ast
from pathlib import Path


def _imports(py_file: Path):
    tree = ast.parse(py_file.read_text(encoding="utf-8"), filename=str(py_file))
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            for alias in node.names:
                yield node.lineno, alias.name
        elif isinstance(node, ast.ImportFrom):
            yield node.lineno, node.module or ""


def _violations(layer: str, forbidden: str):
    repo_root = Path(__file__).resolve().parents[2]
    layer_dir = repo_root / "vidmerge" / layer
    violations = []
    for py_file in layer_dir.rglob("*.py"):
        rel_path = py_file.relative_to(repo_root)
        for lineno, name in _imports(py_file):
            if name == forbidden or name.startswith(forbidden + "."):
                violations.append(f"{rel_path}:{lineno} imports {name}")
    return violations


def test_pipeline_layer_does_not_import_ui_layer():
    """Pipeline layer must not import from UI layer directly."""
    violations = _violations("pipeline", "vidmerge.ui")
    assert not violations, "Pipeline layer must not import UI layer:\n" + "\n".join(violations)


def test_infrastructure_does_not_import_pipeline():
    violations = _violations("infrastructure", "vidmerge.pipeline")
    assert not violations, "Infrastructure must not import pipeline:\n" + "\n".join(violations)
