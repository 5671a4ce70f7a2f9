"""Addressing types for locating blocks and containers inside a BlockTree.

A :class:`BlockPath` is a transient handle: indices shift on every mutation,
so paths must be recomputed rather than cached across edits.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple


class ContainerKind(str, Enum):
    """Kind of ordered list a path step indexes into."""

    ROOT = "root"
    INNER = "inner_blocks"
    SLOT = "slot"
    ITEM = "item"


@dataclass(frozen=True)
class PathStep:
    """One descent step: which list was entered and the index taken in it.

    ``slot`` carries the slot/item number for ``SLOT`` and ``ITEM`` steps and
    is ``None`` for ``ROOT`` and ``INNER`` steps.
    """

    kind: ContainerKind
    index: int
    slot: Optional[int] = None


@dataclass(frozen=True)
class BlockPath:
    """Ordered steps from the root list to a block."""

    steps: Tuple[PathStep, ...]

    def __len__(self) -> int:
        return len(self.steps)

    @property
    def depth(self) -> int:
        """Nesting depth; top-level blocks have depth 0."""
        return len(self.steps) - 1

    @property
    def index(self) -> int:
        """Index of the block within its sibling list."""
        return self.steps[-1].index

    @property
    def parent(self) -> Optional["BlockPath"]:
        """Path of the owning container block, or None for top-level blocks."""
        if len(self.steps) <= 1:
            return None
        return BlockPath(self.steps[:-1])

    def child(self, kind: ContainerKind, index: int, slot: Optional[int] = None) -> "BlockPath":
        return BlockPath(self.steps + (PathStep(kind, index, slot),))

    @classmethod
    def top_level(cls, index: int) -> "BlockPath":
        return cls((PathStep(ContainerKind.ROOT, index),))


@dataclass(frozen=True)
class ContainerRef:
    """Reference to an ordered child list: the root, an inner list, a slot or an item.

    ``block_id`` of None designates the document root. ``slot`` selects the
    slot/item of a slotted or item container and must be None for plain
    inner lists.
    """

    block_id: Optional[str] = None
    slot: Optional[int] = None

    @classmethod
    def root(cls) -> "ContainerRef":
        return cls()

    @property
    def is_root(self) -> bool:
        return self.block_id is None

    def describe(self) -> str:
        if self.block_id is None:
            return "root"
        if self.slot is None:
            return f"{self.block_id}"
        return f"{self.block_id}[{self.slot}]"
