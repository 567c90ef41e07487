from __future__ import annotations

import ast
import sys
from pathlib import Path


ROOT = Path(__file__).resolve().parents[1]
PACKAGE_DIR = ROOT / "libdesk"
ALLOWED_FILE = PACKAGE_DIR / "core" / "time_provider.py"

# (receiver, attribute) pairs that read the wall clock.
CLOCK_CALLS = {
    ("datetime", "now"),
    ("datetime", "utcnow"),
    ("datetime", "today"),
    ("date", "today"),
}


def _clock_call(node: ast.Call) -> str | None:
    func = node.func
    if not isinstance(func, ast.Attribute):
        return None
    receiver = func.value
    # Accept both `datetime.now()` and `datetime.datetime.now()`.
    if isinstance(receiver, ast.Attribute):
        receiver_name = receiver.attr
    elif isinstance(receiver, ast.Name):
        receiver_name = receiver.id
    else:
        return None
    if (receiver_name, func.attr) in CLOCK_CALLS:
        return f"{receiver_name}.{func.attr}()"
    return None


def find_violations(package_dir: Path = PACKAGE_DIR) -> list[tuple[Path, int, str]]:
    violations = []
    for file_path in sorted(package_dir.rglob("*.py")):
        if file_path.resolve() == ALLOWED_FILE.resolve():
            continue
        tree = ast.parse(file_path.read_text(encoding="utf-8"), filename=str(file_path))
        for node in ast.walk(tree):
            if isinstance(node, ast.Call):
                call = _clock_call(node)
                if call:
                    violations.append((file_path, node.lineno, call))
    return violations


def main() -> int:
    violations = find_violations()
    if violations:
        print("Read the clock through libdesk.core.time_provider instead of datetime/date directly:")
        for path, line_no, call in violations:
            print(f" - {path.relative_to(ROOT)}:{line_no}: {call}")
        return 1
    print("No direct clock reads in libdesk/.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
