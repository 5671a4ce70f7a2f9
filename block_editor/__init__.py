"""Top-level package for the block tree editor engine.

This package hosts a UI-agnostic implementation of a nested block editor:
locating, mutating, reordering and navigating blocks, plus undo/redo history.
Front-ends should only depend on the public API exposed here rather than
importing internal modules directly.
"""

from .core.models import Block, BlockTree, ContainerRef  # re-export for convenience

__all__: list[str] = [
    "Block",
    "BlockTree",
    "ContainerRef",
]
