from __future__ import annotations

"""High-level editing services operating on a BlockTree.

Services take the tree as their first argument and hold no document state of
their own, apart from the undo/redo stacks.
"""

from .block_editing_service import BlockEditingService, OperationResult  # noqa: F401
from .reorder_service import ReorderService, resolve_order  # noqa: F401
from .navigation_service import NavigationService  # noqa: F401
from .undo_service import UndoService  # noqa: F401

__all__: list[str] = [
    "BlockEditingService",
    "OperationResult",
    "ReorderService",
    "resolve_order",
    "NavigationService",
    "UndoService",
]
