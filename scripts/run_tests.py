#!/usr/bin/env python
"""
Test runner for mpm-core.

Runs pytest under the interpreter executing this script. The end-to-end
solver and CLI runs carry the ``slow`` marker and are left out unless
``--all`` is given or a ``-m`` expression is passed through.

Usage:
    python scripts/run_tests.py              # Fast suite
    python scripts/run_tests.py --all        # Include the end-to-end runs
    python scripts/run_tests.py -m slow      # Only the end-to-end runs
    python scripts/run_tests.py -x -vv       # Fast suite with pytest debugging flags
"""

import subprocess
import sys
from typing import List

FAST_MARKER = "not slow"


def build_pytest_args(argv: List[str]) -> List[str]:
    args = list(argv)
    run_all = "--all" in args
    args = [a for a in args if a != "--all"]
    has_marker = any(a == "-m" or a.startswith("-m") and len(a) > 2 for a in args)
    if not run_all and not has_marker:
        args = ["-m", FAST_MARKER] + args
    if not any(a in ("-q", "-v", "-vv", "--quiet", "--verbose") for a in args):
        args = ["-q"] + args
    return args


def main():
    cmd = [sys.executable, "-m", "pytest"] + build_pytest_args(sys.argv[1:])
    print(f"Running: {' '.join(cmd)}", file=sys.stderr)
    result = subprocess.run(cmd)
    sys.exit(result.returncode)


if __name__ == "__main__":
    main()
