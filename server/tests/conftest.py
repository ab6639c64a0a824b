# Ensure the server directory is on sys.path so tests can import main, math_solver and plot3d_solver
import os
import sys

import pytest

PROJECT_ROOT = os.path.dirname(os.path.abspath(__file__))
SERVER_ROOT = os.path.dirname(PROJECT_ROOT)
if SERVER_ROOT not in sys.path:
    sys.path.insert(0, SERVER_ROOT)


@pytest.fixture
def evaluator():
    from evaluator import SymPyEvaluator
    return SymPyEvaluator()
