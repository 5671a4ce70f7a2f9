"""Shared fixtures for the block editor test suite.

Every test runs against an isolated user configuration directory so that
``~/.block_editor`` is never read or written, and with a fresh
``ConfigManager`` singleton.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List

import pytest

# Add project root to path
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from block_editor.config import ConfigManager
from block_editor.core.models import BlockTree
from block_editor.core.models.block_types import ConfigBlockTypeCatalog

# Configure test logging
logging.basicConfig(
    level=logging.DEBUG,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Point the user config directory at a temp dir and reset the singleton."""
    config_dir = tmp_path / "user_config"
    monkeypatch.setenv("BLOCK_EDITOR_CONFIG_DIR", str(config_dir))
    ConfigManager.reset()
    yield config_dir
    ConfigManager.reset()


@pytest.fixture
def catalog():
    return ConfigBlockTypeCatalog()


def sample_blocks() -> List[Dict[str, Any]]:
    """A small document exercising every containment shape.

    Pre-order: h1, cols, a, grp, g1, div, grid, c1, t1
    """
    return [
        {"id": "h1", "type": "heading", "content": {"text": "Title", "level": "h1"}},
        {
            "id": "cols",
            "type": "columns",
            "settings": {"preset": "50-50"},
            "content": {"columns": [
                {"blocks": [{"id": "a", "type": "text", "content": {"text": "A"}}]},
                {"blocks": []},
            ]},
        },
        {
            "id": "grp",
            "type": "group",
            "content": {"inner_blocks": [
                {"id": "g1", "type": "text", "content": {"text": "G1"}},
                {"id": "div", "type": "divider"},
            ]},
        },
        {
            "id": "grid",
            "type": "grid",
            "settings": {"columns": 2},
            "content": {"items": [
                {"inner_blocks": [{"id": "c1", "type": "image"}]},
                {"inner_blocks": []},
            ]},
        },
        {"id": "t1", "type": "text", "content": {"text": "End"}},
    ]


SAMPLE_ORDER = ["h1", "cols", "a", "grp", "g1", "div", "grid", "c1", "t1"]


@pytest.fixture
def sample_dicts():
    return sample_blocks()


@pytest.fixture
def sample_order():
    return list(SAMPLE_ORDER)


@pytest.fixture
def sample_tree(catalog):
    return BlockTree.from_dicts(sample_blocks(), catalog)
