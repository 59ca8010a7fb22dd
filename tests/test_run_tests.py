import importlib.util
from pathlib import Path

import pytest

_SCRIPT = Path(__file__).resolve().parents[1] / "scripts" / "run_tests.py"


@pytest.fixture(scope="module")
def runner():
    found = importlib.util.spec_from_file_location("run_tests", _SCRIPT)
    module = importlib.util.module_from_spec(found)
    found.loader.exec_module(module)
    return module


def test_default_is_fast_and_quiet(runner):
    assert runner.build_pytest_args([]) == ["-q", "-m", "not slow"]


def test_passthrough_keeps_fast_filter(runner):
    assert runner.build_pytest_args(["-x", "-vv"]) == ["-m", "not slow", "-x", "-vv"]


def test_all_and_explicit_marker_drop_fast_filter(runner):
    assert runner.build_pytest_args(["--all"]) == ["-q"]
    assert runner.build_pytest_args(["-m", "slow"]) == ["-q", "-m", "slow"]
