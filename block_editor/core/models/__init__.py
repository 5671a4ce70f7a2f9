from __future__ import annotations

"""Shared data structures used across the block editor core.

This package exposes the block tree and its value objects. It is
intentionally free of UI / I/O code so that the contained objects can be
reused in any context (unit-tests, CLI, GUI, etc.).

The tree is a list of top-level :class:`Block` objects. Container blocks
hold their children in exactly one of three containment shapes:

- :class:`PlainList` -- a single ordered list ("inner blocks"), e.g. group.
- :class:`SlottedList` -- a fixed number of named slots, e.g. columns.
- :class:`ItemList` -- a fixed number of positional items, e.g. grid cells.

Slot and item counts are derived from the owning block's settings through
the block type catalog; they are not stored independently.
"""

from dataclasses import dataclass, field
import logging
from typing import TYPE_CHECKING, Any, Dict, Iterator, List, Optional, Union

from block_editor.core.exceptions import StructuralViolation
from block_editor.core.utils import generate_block_id

from .paths import BlockPath, ContainerKind, ContainerRef, PathStep

if TYPE_CHECKING:
    from .block_types import BlockTypeCatalog

__all__ = [
    "Block",
    "BlockTree",
    "Containment",
    "PlainList",
    "SlottedList",
    "ItemList",
    "BlockPath",
    "PathStep",
    "ContainerKind",
    "ContainerRef",
    "resize_child_lists",
]

logger = logging.getLogger(__name__)

# Keys used by the nested-dict interchange shape handed over by persistence.
INNER_BLOCKS_KEY = "inner_blocks"
COLUMNS_KEY = "columns"
COLUMN_BLOCKS_KEY = "blocks"
ITEMS_KEY = "items"


@dataclass
class PlainList:
    """A single ordered list of child blocks."""

    blocks: List["Block"] = field(default_factory=list)

    kind = ContainerKind.INNER

    def child_lists(self) -> List[List["Block"]]:
        return [self.blocks]


@dataclass
class SlottedList:
    """A fixed number of slots, each holding its own ordered child list."""

    slots: List[List["Block"]] = field(default_factory=list)

    kind = ContainerKind.SLOT

    def child_lists(self) -> List[List["Block"]]:
        return self.slots

    @classmethod
    def empty(cls, count: int) -> "SlottedList":
        return cls([[] for _ in range(max(0, count))])


@dataclass
class ItemList:
    """A fixed number of positional items, each holding its own ordered child list."""

    items: List[List["Block"]] = field(default_factory=list)

    kind = ContainerKind.ITEM

    def child_lists(self) -> List[List["Block"]]:
        return self.items

    @classmethod
    def empty(cls, count: int) -> "ItemList":
        return cls([[] for _ in range(max(0, count))])


Containment = Union[PlainList, SlottedList, ItemList]

_CONTAINMENT_KEYS = (INNER_BLOCKS_KEY, COLUMNS_KEY, ITEMS_KEY)


def resize_child_lists(lists: List[List["Block"]], count: int) -> int:
    """Grow or shrink *lists* in place to *count* entries.

    New entries are empty. When shrinking, the children of the removed
    entries are appended in order to the last kept entry. Returns the number
    of blocks moved that way.
    """
    count = max(1, count)
    if len(lists) < count:
        lists.extend([] for _ in range(count - len(lists)))
        return 0
    overflow = lists[count:]
    del lists[count:]
    moved = 0
    for orphaned in overflow:
        lists[-1].extend(orphaned)
        moved += len(orphaned)
    return moved


@dataclass
class Block:
    """A node of the editable content tree.

    Attributes
    ----------
    id
        Opaque identifier, unique across the whole tree for its lifetime.
    type
        Block type tag looked up in the block type catalog.
    content
        Leaf payload fields (text, level, media id...).
    settings
        Key/value settings; for slotted/item containers these also imply
        the slot/item count.
    inner
        Containment payload for container blocks, None for leaf blocks.
    """

    id: str
    type: str
    content: Dict[str, Any] = field(default_factory=dict)
    settings: Dict[str, Any] = field(default_factory=dict)
    inner: Optional[Containment] = None

    @property
    def is_container(self) -> bool:
        return self.inner is not None

    def children(self) -> Iterator["Block"]:
        """Yield direct children in document order (plain, then slots, then items)."""
        if self.inner is None:
            return
        for child_list in self.inner.child_lists():
            yield from child_list

    # ------------------------------------------------------------------
    # Nested-dict interchange
    # ------------------------------------------------------------------
    @classmethod
    def from_dict(cls, data: Dict[str, Any], catalog: Optional["BlockTypeCatalog"] = None) -> "Block":
        """Build a block (recursively) from the nested-dict shape.

        The populated containment key wins; when several keys are present but
        empty they are checked in fixed priority: ``inner_blocks``, then
        ``columns``, then ``items``. When none is present but *catalog*
        describes the type as a container, an empty containment of the right
        shape is created so the block can accept children.

        With a *catalog*, slot and item lists are padded or merged to the
        count implied by the block's settings.

        Raises
        ------
        StructuralViolation
            If a containment value is not a list, or more than one
            containment key carries entries.
        """
        block_id = data.get("id")
        if not block_id:
            block_id = generate_block_id()
            logger.warning("Block without id of type '%s' assigned id %s", data.get("type"), block_id)
        block_type = str(data.get("type") or "")
        content = dict(data.get("content") or {})
        settings = dict(data.get("settings") or {})

        present: Dict[str, list] = {}
        for key in _CONTAINMENT_KEYS:
            if key not in content:
                continue
            raw = content.pop(key)
            if not isinstance(raw, list):
                raise StructuralViolation(f"{key} must be a list", block_id,
                                          expected="list", found=type(raw).__name__)
            present[key] = raw
        populated = [key for key, raw in present.items() if raw]
        if len(populated) > 1:
            raise StructuralViolation("Block carries more than one populated containment", block_id,
                                      expected="one of " + ", ".join(_CONTAINMENT_KEYS), found=populated)
        chosen = populated[0] if populated else next(iter(present), None)

        inner: Optional[Containment] = None
        if chosen == INNER_BLOCKS_KEY:
            inner = PlainList([cls.from_dict(child, catalog) for child in present[chosen]])
        elif chosen == COLUMNS_KEY:
            inner = SlottedList([
                [cls.from_dict(child, catalog) for child in (col or {}).get(COLUMN_BLOCKS_KEY, [])]
                for col in present[chosen]
            ])
        elif chosen == ITEMS_KEY:
            inner = ItemList([
                [cls.from_dict(child, catalog) for child in (item or {}).get(INNER_BLOCKS_KEY, [])]
                for item in present[chosen]
            ])
        elif catalog is not None:
            inner = catalog.describe(block_type).empty_containment(settings)

        if catalog is not None and isinstance(inner, (SlottedList, ItemList)):
            info = catalog.describe(block_type)
            expected = info.slot_count(settings) if info.containment is inner.kind else None
            if expected is not None and expected != len(inner.child_lists()):
                before = len(inner.child_lists())
                moved = resize_child_lists(inner.child_lists(), expected)
                logger.info("Loaded %s with %d slot(s), settings imply %d (moved %d block(s))",
                            block_id, before, expected, moved)

        return cls(id=str(block_id), type=block_type, content=content, settings=settings, inner=inner)

    def to_dict(self) -> Dict[str, Any]:
        """Return the nested-dict shape of this block and its subtree."""
        content = dict(self.content)
        if isinstance(self.inner, PlainList):
            content[INNER_BLOCKS_KEY] = [b.to_dict() for b in self.inner.blocks]
        elif isinstance(self.inner, SlottedList):
            content[COLUMNS_KEY] = [
                {COLUMN_BLOCKS_KEY: [b.to_dict() for b in slot]} for slot in self.inner.slots
            ]
        elif isinstance(self.inner, ItemList):
            content[ITEMS_KEY] = [
                {INNER_BLOCKS_KEY: [b.to_dict() for b in item]} for item in self.inner.items
            ]
        return {"id": self.id, "type": self.type, "content": content, "settings": dict(self.settings)}


@dataclass
class BlockTree:
    """In-memory document: an ordered list of top-level blocks.

    Attributes
    ----------
    blocks
        Top-level blocks in document order. There is no synthetic root node.
    selected_block_id
        Id of the currently selected block, if any.
    editing_block_id
        Id of the block in inline text editing mode, if any.
    """

    blocks: List[Block] = field(default_factory=list)
    selected_block_id: Optional[str] = None
    editing_block_id: Optional[str] = None

    @classmethod
    def from_dicts(cls, data: List[Dict[str, Any]], catalog: Optional["BlockTypeCatalog"] = None) -> "BlockTree":
        return cls(blocks=[Block.from_dict(item, catalog) for item in (data or [])])

    def to_dicts(self) -> List[Dict[str, Any]]:
        return [b.to_dict() for b in self.blocks]

    def clear_selection(self) -> None:
        self.selected_block_id = None
        self.editing_block_id = None
