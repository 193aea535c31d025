"""
Test configuration for the Wander test suite
"""

import pytest
import sys
from pathlib import Path

# Add the project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from interpreter import create_interpreter
from parsing import create_parser
from registry import ModuleRegistry
from stdlib import common


@pytest.fixture
def parser():
  """Provide a fresh parser instance for each test"""
  return create_parser()


@pytest.fixture
def registry():
  """The common prelude, sealed"""
  return common()


@pytest.fixture
def empty_registry():
  return ModuleRegistry()


@pytest.fixture
def interpreter(registry):
  """An interpreter over the common prelude"""
  return create_interpreter(registry)
