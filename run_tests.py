#!/usr/bin/env python3
"""Test runner for repotree."""

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

        success = result.returncode == 0
        print(f"\n{'✅ PASSED' if success else '❌ FAILED'}: {description}")
        return success

    except OSError as e:
        print(f"❌ ERROR running {test_file}: {e}")
        return False


def main():
    """Run every repotree test module."""
    print("repotree Test Suite")
    print("="*60)

    tests = [
        ("test_config_and_errors.py", "Configuration and Error Handling"),
        ("test_comparable_url.py", "Remote URL Normalization"),
        ("test_workspace_config.py", "Workspace Config File"),
        ("test_repo_filters.py", "Repository Filters"),
        ("test_github_client.py", "GitHub REST Client"),
        ("test_desired_state.py", "Desired State Resolution"),
        ("test_reconciliation.py", "Reconciliation"),
        ("test_branch_sync.py", "Branch Synchronization"),
        ("test_action_execution.py", "Action Execution"),
        ("test_scheduler.py", "Scheduler"),
        ("test_reporting.py", "Progress Reporting"),
        ("test_local_repo.py", "Local Git Operations"),
        ("test_sync_plan.py", "Sync Planning End to End"),
        ("test_server_tools.py", "MCP Tools"),
        ("test_cli.py", "Command Line Interface"),
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

    # Summary
    print(f"\n{'='*60}")
    print("TEST SUITE SUMMARY")
    print("="*60)

    passed = 0
    for test_file, description, success in results:
        status = "✅ PASS" if success else "❌ FAIL"
        print(f"{status} {description}")
        if success:
            passed += 1

    print(f"\nResults: {passed}/{len(results)} test modules passed")

    if passed == len(results):
        print("\n🎉 ALL TESTS PASSED!")
        return True
    else:
        print(f"\n⚠️  {len(results) - passed} test modules failed")
        return False


if __name__ == "__main__":
    try:
        success = main()
        sys.exit(0 if success else 1)
    except KeyboardInterrupt:
        print("\n\nTest suite interrupted by user")
        sys.exit(1)
