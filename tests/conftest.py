"""
Pytest configuration for mpm-core tests.

Automatically adds src/ to sys.path so tests can import mpm_core without
installing the package or setting PYTHONPATH.
"""

import sys
import os

import pytest

repo_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
src_path = os.path.join(repo_root, 'src')

if src_path not in sys.path:
    sys.path.insert(0, src_path)


@pytest.fixture
def elastic_props():
    return {"density": 1000.0, "youngs_modulus": 1.0e6, "poisson_ratio": 0.3}


@pytest.fixture
def bingham_props():
    return {
        "density": 1000.0,
        "youngs_modulus": 1.0e6,
        "poisson_ratio": 0.3,
        "tau0": 10.0,
        "mu": 0.5,
        "critical_shear_rate": 1.0e-3,
    }
