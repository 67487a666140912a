#!/usr/bin/env python3
"""Test runner for the webgit test suites."""

import sys
import subprocess
from pathlib import Path


def run_test(test_file: str, description: str) -> bool:
    """Run a single test file and return success status."""
    print(f"\n{'='*60}")
    print(f"Running: {description}")
    print(f"File: {test_file}")
    print('='*60)

    try:
        result = subprocess.run([sys.executable, test_file], capture_output=False, text=True)
    except OSError as e:
        print(f"❌ ERROR running {test_file}: {e}")
        return False

    success = result.returncode == 0
    print(f"\n{'✅ PASSED' if success else '❌ FAILED'}: {description}")
    return success


def main():
    """Run every webgit test suite."""
    print("webgit Test Suite")
    print("="*60)

    tests = [
        ("test_config.py", "Configuration"),
        ("test_error_strategies.py", "Error Categorisation"),
        ("test_hosting.py", "GitHub CLI Client"),
        ("test_repository_classification.py", "Repository Classification"),
        ("test_identity_ownership.py", "Identity and Ownership"),
        ("test_detached_head.py", "Detached HEAD Recovery"),
        ("test_submodule_updates.py", "Safe Submodule Updates"),
        ("test_push_engine.py", "Commit/Push Engine"),
        ("test_pages_enrichment.py", "Pages and Pull Request Enrichment"),
        ("test_orchestrator.py", "Pull/Push Orchestration"),
        ("test_cli.py", "Command Line"),
    ]

    root = Path(__file__).parent
    results = []
    for test_file, description in tests:
        if (root / test_file).exists():
            success = run_test(str(root / test_file), description)
            results.append((test_file, description, success))
        else:
            print(f"⚠️  Test file not found: {test_file}")
            results.append((test_file, description, False))

    print(f"\n{'='*60}")
    print("TEST SUITE SUMMARY")
    print("="*60)

    passed = 0
    for test_file, description, success in results:
        status = "✅ PASS" if success else "❌ FAIL"
        print(f"{status} {description}")
        if success:
            passed += 1

    print(f"\nResults: {passed}/{len(results)} tests passed")

    if passed == len(results):
        print("\n🎉 ALL TESTS PASSED!")
        return True
    print(f"\n⚠️  {len(results) - passed} tests failed")
    return False


if __name__ == "__main__":
    try:
        success = main()
        sys.exit(0 if success else 1)
    except KeyboardInterrupt:
        print("\n\nTest suite interrupted by user")
        sys.exit(1)
