"""Vitalzone v1.0 — Standalone test runner (no pytest dependency).

Imports every tests/test_*.py module and runs its test_* functions.
"""
import importlib
import inspect
import sys
import traceback
from pathlib import Path

ROOT = Path(__file__).parent
sys.path.insert(0, str(ROOT))
sys.path.insert(0, str(ROOT / "tests"))

passed = 0
failed = 0


def test(name, fn):
    global passed, failed
    try:
        fn()
        print(f"  ✓ {name}")
        passed += 1
    except Exception as e:
        print(f"  ✗ {name}: {e}")
        traceback.print_exc()
        failed += 1


for path in sorted((ROOT / "tests").glob("test_*.py")):
    module = importlib.import_module(path.stem)
    print(f"\n[{path.stem[len('test_'):].replace('_', ' ').title()}]")
    for name, fn in inspect.getmembers(module, inspect.isfunction):
        if name.startswith("test_") and fn.__module__ == module.__name__:
            test(name[len("test_"):].replace("_", " "), fn)


# ═══════════════════════════════════════════════════════════════════════
# SUMMARY
# ═══════════════════════════════════════════════════════════════════════
print(f"\n{'=' * 58}")
print(f"  {passed} passed, {failed} failed")
print(f"{'=' * 58}")
sys.exit(1 if failed else 0)
