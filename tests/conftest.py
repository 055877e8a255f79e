import ast
import textwrap
from pathlib import Path

import pytest

from source_index import SourceIndex

REPO_ROOT = Path(__file__).resolve().parents[1]


@pytest.fixture
def expr():
    """Parse a single Python expression into its ast node"""
    def _parse(text):
        return ast.parse(textwrap.dedent(text).strip(), mode='eval').body
    return _parse


@pytest.fixture
def make_index():
    """Build a SourceIndex holding one in-memory source file"""
    def _make(source, path='machines.py'):
        index = SourceIndex()
        index.add_source(path, textwrap.dedent(source))
        return index
    return _make
