from __future__ import annotations

"""Reconcile drag-supplied id orders against real sibling lists.

A drag interaction reports the order it believes the siblings are in. That
order may be partial, stale, or contain ids from elsewhere in the tree.
:func:`resolve_order` turns it into a permutation of the actual siblings:
ids known to the container are taken in the requested order and every
sibling the request did not mention follows in its original relative order.
No block is ever dropped.

Columns are reordered the same way through :meth:`ReorderService.reorder_slots`,
keyed by slot index instead of block id.
"""

import logging
import re
from typing import Any, Callable, Dict, Hashable, Iterable, List, Optional, Set, TypeVar

from block_editor.config import ConfigManager
from block_editor.core.models import Block, BlockTree, ContainerRef, ItemList, SlottedList
from block_editor.core.models.block_types import BlockTypeCatalog, ConfigBlockTypeCatalog
from block_editor.core.path_resolver import find_block, resolve_container

from .block_editing_service import (
    REASON_NOT_FOUND,
    REASON_NOT_SLOTTED,
    OperationResult,
    _structural_guard,
    check_containment,
)

__all__ = ["resolve_order", "ReorderService"]

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Column drag handles report ids shaped like "<block id>-col-<index>".
_SLOT_HANDLE_RE = re.compile(r"-col-(\d+)$")


def _block_id(block: Block) -> str:
    return block.id


def resolve_order(
    siblings: List[T],
    desired_ids: Iterable[Hashable],
    key: Callable[[T], Hashable] = _block_id,
) -> List[T]:
    """Return *siblings* reordered to follow *desired_ids* as far as possible.

    Parameters
    ----------
    siblings
        Current children of one container.
    desired_ids
        Requested order. Unknown ids and repeats are ignored.
    key
        Maps a sibling to the id used in *desired_ids*; block ids by default.

    Returns
    -------
    List
        A new list holding exactly the entries of *siblings*.
    """
    by_id: Dict[Hashable, T] = {key(item): item for item in siblings}
    seen: Set[Hashable] = set()
    result: List[T] = []
    for item_id in desired_ids:
        if item_id in by_id and item_id not in seen:
            result.append(by_id[item_id])
            seen.add(item_id)
    for item in siblings:
        if key(item) not in seen:
            result.append(item)
            seen.add(key(item))
    return result


def _slot_index(entry: Any) -> Optional[int]:
    """Read a slot index from an int, a digit string or a column drag handle id."""
    if isinstance(entry, bool):
        return None
    if isinstance(entry, int):
        return entry
    text = str(entry).strip()
    match = _SLOT_HANDLE_RE.search(text)
    if match:
        return int(match.group(1))
    return int(text) if text.isdigit() else None


class ReorderService:
    """Apply drag-supplied orders to one container's children in place.

    Every reorder entry point (canvas drag-end, layer panel) goes through
    :meth:`reorder` so the never-drop rule holds uniformly.
    """

    def __init__(
        self,
        strict_structure: Optional[bool] = None,
        catalog: Optional[BlockTypeCatalog] = None,
    ) -> None:
        if strict_structure is None:
            strict_structure = bool(ConfigManager().get_editor_settings().get("strict_structure", True))
        self.strict_structure = strict_structure
        self._catalog = catalog if catalog is not None else ConfigBlockTypeCatalog()

    @_structural_guard
    def reorder(self, tree: BlockTree, container: ContainerRef, desired_ids: List[str]) -> OperationResult:
        logger.info("Edit: reorder container=%s ids=%d", container.describe(), len(desired_ids or []))
        siblings = resolve_container(tree, container)
        if siblings is None:
            logger.warning("Edit FAIL: reorder container_not_found container=%s", container.describe())
            return OperationResult(False, f"Container not found: {container.describe()}.", {
                "reason": REASON_NOT_FOUND,
                "block_id": container.block_id,
                "slot": container.slot,
            })

        ordered = resolve_order(siblings, desired_ids or [])
        known = {block.id for block in siblings}
        ignored = [block_id for block_id in (desired_ids or []) if block_id not in known]
        if ignored:
            logger.debug("reorder ignored %d unknown id(s): %s", len(ignored), ignored)

        changed = [b.id for b in ordered] != [b.id for b in siblings]
        if not changed:
            logger.info("Edit noop: reorder container=%s order unchanged", container.describe())
            return OperationResult(True, "Order unchanged.", {
                "container": container,
                "changed": False,
                "ignored_ids": ignored,
            })
        # Slice assignment keeps the list object owned by the container.
        siblings[:] = ordered
        logger.info("Edit OK: reorder container=%s", container.describe())
        return OperationResult(True, "Reordered blocks.", {
            "container": container,
            "changed": True,
            "order": [b.id for b in ordered],
            "ignored_ids": ignored,
        })

    @_structural_guard
    def reorder_slots(self, tree: BlockTree, block_id: str, new_order: List[Any]) -> OperationResult:
        """Reorder the slots (columns) or items of *block_id*.

        *new_order* lists current slot indices, as ints, digit strings or
        column drag handle ids (``"<block id>-col-<index>"``). Slots left out
        follow in their original order. The widths of a dash-separated preset
        move with their slots, so ``"25-75"`` becomes ``"75-25"`` when the two
        columns swap.
        """
        logger.info("Edit: reorder_slots block=%s entries=%d", block_id, len(new_order or []))
        block = find_block(tree, block_id)
        if block is None:
            logger.warning("Edit FAIL: reorder_slots block_not_found block=%s", block_id)
            return OperationResult(False, f"Block not found for id '{block_id}'.", {
                "reason": REASON_NOT_FOUND,
                "block_id": block_id,
            })
        if not isinstance(block.inner, (SlottedList, ItemList)):
            logger.warning("Edit FAIL: reorder_slots not_slotted block=%s", block_id)
            return OperationResult(False, "Block has no slots or items.", {
                "reason": REASON_NOT_SLOTTED,
                "block_id": block_id,
            })
        info = check_containment(self._catalog, block)
        lists = block.inner.child_lists()
        requested = [_slot_index(entry) for entry in (new_order or [])]
        order = resolve_order(list(range(len(lists))), [i for i in requested if i is not None], key=int)
        if order == list(range(len(lists))):
            logger.info("Edit noop: reorder_slots block=%s order unchanged", block_id)
            return OperationResult(True, "Slot order unchanged.", {"block_id": block_id, "changed": False})

        lists[:] = [lists[i] for i in order]
        parts = info.slot_parts(block.settings)
        if parts is not None and len(parts) == len(order):
            block.settings[info.count_setting] = "-".join(parts[i] for i in order)
        logger.info("Edit OK: reorder_slots block=%s order=%s", block_id, order)
        return OperationResult(True, "Reordered slots.", {
            "block_id": block_id,
            "changed": True,
            "order": order,
        })
