from __future__ import annotations

"""Locate blocks anywhere in a BlockTree.

All lookups are depth-first pre-order searches over the live tree. At each
container the descent order is fixed: the plain inner list, then every slot
in slot order, then every item in item order. Results are transient handles;
after any mutation they must be recomputed.

Routine misses (unknown id, out-of-range slot) return None. Shape mismatches
(e.g. a slot step applied to a plain inner list) raise
:class:`~block_editor.core.exceptions.StructuralViolation`.
"""

import logging
from typing import TYPE_CHECKING, Iterator, List, NamedTuple, Optional, Set, Tuple

from block_editor.core.exceptions import StructuralViolation
from block_editor.core.models import (
    Block,
    BlockPath,
    BlockTree,
    ContainerKind,
    ContainerRef,
    ItemList,
    PathStep,
    PlainList,
    SlottedList,
)

if TYPE_CHECKING:
    from block_editor.core.models.block_types import BlockTypeCatalog

__all__ = [
    "Location",
    "iter_blocks",
    "resolve_path",
    "read_path",
    "get_sibling_list",
    "find_block",
    "find_parent",
    "locate",
    "resolve_container",
    "child_list",
    "is_descendant",
    "check_tree",
]

logger = logging.getLogger(__name__)


class Location(NamedTuple):
    """Resolved position of a block: its path, owning list, index and container."""

    path: BlockPath
    siblings: List[Block]
    index: int
    parent: Optional[Block]
    container: ContainerRef

    @property
    def block(self) -> Block:
        return self.siblings[self.index]


# ---------------------------------------------------------------------------
# Traversal
# ---------------------------------------------------------------------------

def iter_blocks(tree: BlockTree) -> Iterator[Tuple[Block, BlockPath]]:
    """Yield ``(block, path)`` for every block in depth-first pre-order."""
    yield from _walk(tree.blocks, (), ContainerKind.ROOT, None)


def _walk(
    blocks: List[Block],
    prefix: Tuple[PathStep, ...],
    kind: ContainerKind,
    slot: Optional[int],
) -> Iterator[Tuple[Block, BlockPath]]:
    for index, block in enumerate(blocks):
        path = BlockPath(prefix + (PathStep(kind, index, slot),))
        yield block, path
        yield from _walk_children(block, path)


def _walk_children(block: Block, path: BlockPath) -> Iterator[Tuple[Block, BlockPath]]:
    inner = block.inner
    if inner is None:
        return
    if isinstance(inner, PlainList):
        yield from _walk(inner.blocks, path.steps, ContainerKind.INNER, None)
    elif isinstance(inner, SlottedList):
        for slot_index, slot in enumerate(inner.slots):
            yield from _walk(slot, path.steps, ContainerKind.SLOT, slot_index)
    elif isinstance(inner, ItemList):
        for item_index, item in enumerate(inner.items):
            yield from _walk(item, path.steps, ContainerKind.ITEM, item_index)
    else:
        raise StructuralViolation(
            "Unknown containment payload", block.id,
            expected="PlainList | SlottedList | ItemList", found=type(inner).__name__,
        )


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------

def resolve_path(tree: BlockTree, block_id: str) -> Optional[BlockPath]:
    """Return the path of *block_id*, or None when it is not in the tree."""
    for block, path in iter_blocks(tree):
        if block.id == block_id:
            return path
    return None


def find_block(tree: BlockTree, block_id: Optional[str]) -> Optional[Block]:
    if not block_id:
        return None
    for block, _path in iter_blocks(tree):
        if block.id == block_id:
            return block
    return None


def child_list(block: Block, kind: ContainerKind, slot: Optional[int]) -> List[Block]:
    """Return the child list of *block* addressed by ``(kind, slot)``.

    Raises
    ------
    StructuralViolation
        If the block's containment shape does not match *kind*, or the slot
        index is out of range for a path step.
    """
    inner = block.inner
    if kind is ContainerKind.INNER:
        if not isinstance(inner, PlainList):
            raise StructuralViolation("Expected inner block list", block.id,
                                      expected="PlainList", found=type(inner).__name__)
        return inner.blocks
    if kind is ContainerKind.SLOT:
        if not isinstance(inner, SlottedList):
            raise StructuralViolation("Expected slotted list", block.id,
                                      expected="SlottedList", found=type(inner).__name__)
        lists = inner.slots
    elif kind is ContainerKind.ITEM:
        if not isinstance(inner, ItemList):
            raise StructuralViolation("Expected item list", block.id,
                                      expected="ItemList", found=type(inner).__name__)
        lists = inner.items
    else:
        raise StructuralViolation(f"Container kind '{kind.value}' has no owning block", block.id)
    if slot is None or not 0 <= slot < len(lists):
        raise StructuralViolation(f"Slot {slot} out of range (0..{len(lists) - 1})", block.id)
    return lists[slot]


def read_path(tree: BlockTree, path: BlockPath) -> Block:
    """Follow *path* from the root and return the block it addresses.

    Raises
    ------
    StructuralViolation
        If the path is stale (an index no longer exists) or a step does not
        match the containment shape found at that depth.
    """
    if not path.steps or path.steps[0].kind is not ContainerKind.ROOT:
        raise StructuralViolation("Path must start at the root list")
    current: List[Block] = tree.blocks
    block: Optional[Block] = None
    for step in path.steps:
        if block is not None:
            current = child_list(block, step.kind, step.slot)
        if not 0 <= step.index < len(current):
            raise StructuralViolation(
                f"Stale path: index {step.index} outside list of {len(current)}",
                block.id if block is not None else None,
            )
        block = current[step.index]
    if block is None:
        raise StructuralViolation("Path addresses no block")
    return block


def get_sibling_list(tree: BlockTree, path: BlockPath) -> List[Block]:
    """Return the mutable ordered list that owns the path's last index."""
    parent_path = path.parent
    if parent_path is None:
        return tree.blocks
    parent = read_path(tree, parent_path)
    last = path.steps[-1]
    return child_list(parent, last.kind, last.slot)


def locate(tree: BlockTree, block_id: str) -> Optional[Location]:
    """Resolve *block_id* to its full :class:`Location`, or None when absent."""
    path = resolve_path(tree, block_id)
    if path is None:
        return None
    parent_path = path.parent
    parent = read_path(tree, parent_path) if parent_path is not None else None
    siblings = get_sibling_list(tree, path)
    last = path.steps[-1]
    if parent is None:
        container = ContainerRef.root()
    else:
        container = ContainerRef(parent.id, last.slot)
    return Location(path=path, siblings=siblings, index=last.index, parent=parent, container=container)


def find_parent(tree: BlockTree, block_id: str) -> Optional[Block]:
    """Return the container block owning *block_id* (None for top-level or unknown ids)."""
    location = locate(tree, block_id)
    return location.parent if location is not None else None


def resolve_container(tree: BlockTree, ref: ContainerRef) -> Optional[List[Block]]:
    """Return the ordered child list designated by *ref*.

    Returns None when the owning block does not exist or the slot index is
    outside the container's current slot range.

    Raises
    ------
    StructuralViolation
        If a slot is addressed on a plain inner list, a plain list is
        addressed without a slot on a slotted/item container, or the owning
        block is a leaf.
    """
    if ref.is_root:
        return tree.blocks
    owner = find_block(tree, ref.block_id)
    if owner is None:
        return None
    inner = owner.inner
    if inner is None:
        raise StructuralViolation("Block is not a container", owner.id,
                                  expected="container", found="leaf")
    if isinstance(inner, PlainList):
        if ref.slot is not None:
            raise StructuralViolation("Slot addressed on a plain inner list", owner.id,
                                      expected="SlottedList | ItemList", found="PlainList")
        return inner.blocks
    if ref.slot is None:
        raise StructuralViolation("Slotted container addressed without a slot", owner.id,
                                  expected="PlainList", found=type(inner).__name__)
    lists = inner.child_lists()
    if not 0 <= ref.slot < len(lists):
        logger.debug("Slot %s out of range for %s (%d slots)", ref.slot, owner.id, len(lists))
        return None
    return lists[ref.slot]


def is_descendant(ancestor: Block, block_id: str) -> bool:
    """Return True if *block_id* is *ancestor* itself or anywhere beneath it."""
    if ancestor.id == block_id:
        return True
    stack = list(ancestor.children())
    while stack:
        node = stack.pop()
        if node.id == block_id:
            return True
        stack.extend(node.children())
    return False


def check_tree(tree: BlockTree, catalog: Optional["BlockTypeCatalog"] = None) -> None:
    """Verify id uniqueness and, with a *catalog*, slot/item counts.

    Raises
    ------
    StructuralViolation
        On the first duplicate id, containment shape that disagrees with the
        catalog, or slot/item count that disagrees with the owning settings.
    """
    seen: Set[str] = set()
    for block, _path in iter_blocks(tree):
        if block.id in seen:
            raise StructuralViolation("Duplicate block id", block.id)
        seen.add(block.id)
        if catalog is None or block.inner is None:
            continue
        info = catalog.describe(block.type)
        if info.containment is not None and info.containment is not block.inner.kind:
            raise StructuralViolation(
                "Containment shape does not match block type", block.id,
                expected=info.containment.value, found=block.inner.kind.value,
            )
        expected = info.slot_count(block.settings)
        if expected is not None and len(block.inner.child_lists()) != expected:
            raise StructuralViolation(
                "Slot count out of sync with settings", block.id,
                expected=expected, found=len(block.inner.child_lists()),
            )
