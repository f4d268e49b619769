"""
Pytest configuration: add project root to sys.path
so 'from enrichsim.xxx import ...' works without installing the package.
"""
import sys
import os

import pytest
import simpy

# Project root
_project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from enrichsim.resources import Global_Index


@pytest.fixture
def env():
    return simpy.Environment()


@pytest.fixture
def indexer():
    return Global_Index()
