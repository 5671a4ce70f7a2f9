from __future__ import annotations

"""Keyboard navigation order over a block tree.

The linear order is a full depth-first pre-order walk: each block, then its
plain children, then each slot's children in slot order, then each item's
children in item order. It is recomputed on every query because the tree
changes between keystrokes.
"""

import logging
from typing import List, Literal, Optional

from block_editor.core.models import BlockTree
from block_editor.core.models.block_types import BlockTypeCatalog, ConfigBlockTypeCatalog
from block_editor.core.path_resolver import find_block, iter_blocks

__all__ = ["NavigationService"]

logger = logging.getLogger(__name__)

Direction = Literal["up", "down"]


class NavigationService:
    """Answer "what comes before/after this block" questions.

    Parameters
    ----------
    catalog
        Block type metadata lookup used for inline-editability checks.
    """

    def __init__(self, catalog: Optional[BlockTypeCatalog] = None) -> None:
        self._catalog = catalog if catalog is not None else ConfigBlockTypeCatalog()

    def flatten(self, tree: BlockTree) -> List[str]:
        """Return every block id in depth-first pre-order."""
        return [block.id for block, _path in iter_blocks(tree)]

    def neighbor(self, tree: BlockTree, current_id: Optional[str], direction: Direction) -> Optional[str]:
        """Return the id one step *direction* from *current_id*.

        With no current block (or one no longer in the tree) ``down`` gives the
        first block and ``up`` the last. At either end the current id is
        returned unchanged. An empty tree yields None.
        """
        if direction not in ("up", "down"):
            raise ValueError(f"Unsupported navigation direction '{direction}'")
        order = self.flatten(tree)
        if not order:
            return None
        if current_id is None or current_id not in order:
            return order[0] if direction == "down" else order[-1]
        index = order.index(current_id)
        if direction == "up":
            return order[max(0, index - 1)]
        return order[min(len(order) - 1, index + 1)]

    def is_at_boundary(self, tree: BlockTree, current_id: Optional[str], direction: Direction) -> bool:
        """Return True when no block lies *direction* of *current_id*."""
        order = self.flatten(tree)
        if not order or current_id not in order:
            return not order
        index = order.index(current_id)
        return index == 0 if direction == "up" else index == len(order) - 1

    def is_editable(self, tree: BlockTree, block_id: Optional[str]) -> bool:
        """Return True if *block_id* exists and its type supports inline text editing."""
        block = find_block(tree, block_id)
        if block is None:
            return False
        return self._catalog.is_inline_text_editable(block.type)
