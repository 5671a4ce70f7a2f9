from __future__ import annotations

"""Service layer for structural edits on the in-memory block tree.

This module provides a UI-agnostic, testable service that encapsulates every
mutation of a :class:`~block_editor.core.models.BlockTree`: inserting,
deleting, moving, replacing blocks and writing individual fields.

Scope and guarantees:
- Operates purely in-memory on a BlockTree, no file I/O nor UI imports.
- Unknown ids and out-of-range indices never raise. Unknown ids return
  ``OperationResult(success=False, details={"reason": "not_found"})`` and
  leave the tree untouched; indices are clamped into range.
- A broken containment shape raises
  :class:`~block_editor.core.exceptions.StructuralViolation` when
  ``editor.strict_structure`` is enabled (the default). Otherwise it is
  logged and reported as ``reason="structural_violation"``.
- A move is always a removal followed by an insertion inside one call.

Examples
--------
Basic usage:

    service = BlockEditingService(catalog)
    result = service.insert_after(tree, "h1", service.create_block("text"))
    if not result.success:
        print(result.message)

"""

import copy
from dataclasses import dataclass, replace as dc_replace
import functools
import logging
from typing import Any, Callable, Dict, List, Literal, Mapping, Optional

from block_editor.config import ConfigManager
from block_editor.core.exceptions import StructuralViolation
from block_editor.core.models import Block, BlockTree, ContainerRef, ItemList, SlottedList, resize_child_lists
from block_editor.core.models.block_types import (
    COUNT_RULE_DASH_SEPARATED,
    BlockTypeCatalog,
    BlockTypeInfo,
    ConfigBlockTypeCatalog,
)
from block_editor.core.path_resolver import find_block, is_descendant, locate, resolve_container
from block_editor.core.utils import clamp, generate_block_id, set_by_path, split_field_path


__all__ = [
    "OperationResult",
    "BlockEditingService",
    "check_containment",
    "REASON_NOT_FOUND",
    "REASON_BOUNDARY",
    "REASON_INVALID_FIELD",
    "REASON_INVALID_TARGET",
    "REASON_INVALID_DIRECTION",
    "REASON_NOT_SLOTTED",
    "REASON_MIN_SLOTS",
    "REASON_STRUCTURAL",
]

logger = logging.getLogger(__name__)

REASON_NOT_FOUND = "not_found"
REASON_BOUNDARY = "boundary"
REASON_INVALID_FIELD = "invalid_field"
REASON_INVALID_TARGET = "invalid_target"
REASON_INVALID_DIRECTION = "invalid_direction"
REASON_NOT_SLOTTED = "not_slotted"
REASON_MIN_SLOTS = "min_slots"
REASON_STRUCTURAL = "structural_violation"

_FIELD_ROOTS = ("content", "settings")


@dataclass(frozen=True)
class OperationResult:
    """Result of a structural editing operation.

    Attributes
    ----------
    success
        Whether the operation completed successfully.
    message
        Human-readable summary suitable for logs or UI display.
    details
        Optional structured details for diagnostics or caller logic. Failed
        operations carry a ``reason`` key.
    """
    success: bool
    message: str
    details: Optional[Dict[str, Any]] = None

    @property
    def reason(self) -> Optional[str]:
        return (self.details or {}).get("reason")


def _structural_guard(method: Callable[..., OperationResult]) -> Callable[..., OperationResult]:
    """Convert StructuralViolation into a failed result unless running strict."""

    @functools.wraps(method)
    def wrapper(self: "BlockEditingService", *args: Any, **kwargs: Any) -> OperationResult:
        try:
            return method(self, *args, **kwargs)
        except StructuralViolation as exc:
            if self.strict_structure:
                raise
            logger.error("Edit FAIL: %s structural_violation %s", method.__name__, exc)
            return OperationResult(False, str(exc), {"reason": REASON_STRUCTURAL, "block_id": exc.block_id})

    return wrapper


def check_containment(catalog: BlockTypeCatalog, block: Block) -> BlockTypeInfo:
    """Return *block*'s type info, raising when its containment shape disagrees with it."""
    info = catalog.describe(block.type)
    if block.inner is not None and info.containment is not None and info.containment is not block.inner.kind:
        raise StructuralViolation(
            "Containment shape does not match block type", block.id,
            expected=info.containment.value, found=block.inner.kind.value,
        )
    return info


class BlockEditingService:
    """Encapsulates structural edit operations on a block tree.

    Parameters
    ----------
    catalog
        Block type metadata lookup. Defaults to a
        :class:`~block_editor.core.models.block_types.ConfigBlockTypeCatalog`
        built from configuration.
    strict_structure
        Whether containment-shape violations propagate as exceptions. When
        None the ``editor.strict_structure`` setting is used.

    Design principles:
    - No UI dependencies, no disk I/O.
    - No exceptions for expected invalid actions; return OperationResult.
    - Positions are resolved afresh on every call; paths are never cached.
    """

    def __init__(
        self,
        catalog: Optional[BlockTypeCatalog] = None,
        strict_structure: Optional[bool] = None,
    ) -> None:
        self._catalog = catalog if catalog is not None else ConfigBlockTypeCatalog()
        if strict_structure is None:
            strict_structure = bool(ConfigManager().get_editor_settings().get("strict_structure", True))
        self.strict_structure = strict_structure

    @property
    def catalog(self) -> BlockTypeCatalog:
        return self._catalog

    # -------------------------------------------------------------------------
    # Block factory
    # -------------------------------------------------------------------------

    def create_block(
        self,
        block_type: str,
        content: Optional[Mapping[str, Any]] = None,
        settings: Optional[Mapping[str, Any]] = None,
    ) -> Block:
        """Create a detached block with a fresh id.

        Catalog defaults are applied first and overlaid with *content* and
        *settings*. Container types receive an empty containment whose slot
        or item count follows the resulting settings.
        """
        info = self._catalog.describe(block_type)
        block_content = copy.deepcopy(dict(info.default_content))
        block_content.update(copy.deepcopy(dict(content or {})))
        block_settings = copy.deepcopy(dict(info.default_settings))
        block_settings.update(copy.deepcopy(dict(settings or {})))
        block = Block(
            id=generate_block_id(),
            type=block_type,
            content=block_content,
            settings=block_settings,
            inner=info.empty_containment(block_settings),
        )
        logger.debug("Created block %s type=%s container=%s", block.id, block_type, block.is_container)
        return block

    # -------------------------------------------------------------------------
    # Insertion
    # -------------------------------------------------------------------------

    @_structural_guard
    def insert_append(self, tree: BlockTree, container: ContainerRef, block: Block) -> OperationResult:
        """Append *block* to the end of the list designated by *container*."""
        logger.info("Edit: insert_append container=%s block=%s", container.describe(), block.id)
        siblings = resolve_container(tree, container)
        if siblings is None:
            return self._container_not_found("insert_append", container)
        siblings.append(block)
        logger.info("Edit OK: insert_append block=%s index=%d", block.id, len(siblings) - 1)
        return OperationResult(True, "Inserted block.", {
            "block_id": block.id,
            "container": container,
            "index": len(siblings) - 1,
        })

    @_structural_guard
    def insert_at(self, tree: BlockTree, container: ContainerRef, index: int, block: Block) -> OperationResult:
        """Insert *block* at *index* in *container*, clamping the index into ``[0, len]``."""
        logger.info("Edit: insert_at container=%s index=%s block=%s", container.describe(), index, block.id)
        siblings = resolve_container(tree, container)
        if siblings is None:
            return self._container_not_found("insert_at", container)
        position = clamp(int(index), 0, len(siblings))
        if position != index:
            logger.debug("insert_at index %s clamped to %d", index, position)
        siblings.insert(position, block)
        logger.info("Edit OK: insert_at block=%s index=%d", block.id, position)
        return OperationResult(True, "Inserted block.", {
            "block_id": block.id,
            "container": container,
            "index": position,
            "requested_index": index,
        })

    def insert_into(
        self,
        tree: BlockTree,
        container_id: str,
        slot: Optional[int],
        block: Block,
    ) -> OperationResult:
        """Append *block* into a slot/item of *container_id* (``slot=None`` for plain containers)."""
        return self.insert_append(tree, ContainerRef(container_id, slot), block)

    @_structural_guard
    def insert_after(self, tree: BlockTree, block_id: str, block: Block) -> OperationResult:
        """Insert *block* immediately after *block_id* among its siblings."""
        logger.info("Edit: insert_after anchor=%s block=%s", block_id, block.id)
        location = locate(tree, block_id)
        if location is None:
            return self._not_found("insert_after", block_id)
        location.siblings.insert(location.index + 1, block)
        logger.info("Edit OK: insert_after block=%s index=%d", block.id, location.index + 1)
        return OperationResult(True, "Inserted block.", {
            "block_id": block.id,
            "anchor_id": block_id,
            "container": location.container,
            "index": location.index + 1,
        })

    # -------------------------------------------------------------------------
    # Removal and movement
    # -------------------------------------------------------------------------

    @_structural_guard
    def delete(self, tree: BlockTree, block_id: str) -> OperationResult:
        """Remove *block_id* (and its subtree) from its parent list.

        Selection and inline editing state are cleared when they pointed at
        the removed block or anything inside it.
        """
        logger.info("Edit: delete block=%s", block_id)
        location = locate(tree, block_id)
        if location is None:
            return self._not_found("delete", block_id)
        removed = location.siblings.pop(location.index)
        if tree.selected_block_id and is_descendant(removed, tree.selected_block_id):
            tree.selected_block_id = None
        if tree.editing_block_id and is_descendant(removed, tree.editing_block_id):
            tree.editing_block_id = None
        logger.info("Edit OK: delete block=%s index=%d", block_id, location.index)
        return OperationResult(True, "Deleted block.", {
            "block_id": block_id,
            "container": location.container,
            "index": location.index,
        })

    @_structural_guard
    def move_adjacent(
        self,
        tree: BlockTree,
        block_id: str,
        direction: Literal["up", "down"],
    ) -> OperationResult:
        """Swap *block_id* with its previous (``up``) or next (``down``) sibling.

        At either end of the sibling list the call is a no-op and reports
        ``reason="boundary"``.
        """
        logger.info("Edit: move_adjacent direction=%s block=%s", direction, block_id)
        if direction not in ("up", "down"):
            return OperationResult(False, f"Unsupported move direction '{direction}'.", {
                "reason": REASON_INVALID_DIRECTION,
                "allowed": ["up", "down"],
            })
        location = locate(tree, block_id)
        if location is None:
            return self._not_found("move_adjacent", block_id)
        siblings, index = location.siblings, location.index
        target = index - 1 if direction == "up" else index + 1
        if not 0 <= target < len(siblings):
            logger.info("Edit noop: move_adjacent direction=%s boundary block=%s", direction, block_id)
            return OperationResult(False, f"Cannot move {direction} (at boundary).", {
                "reason": REASON_BOUNDARY,
                "block_id": block_id,
            })
        siblings[index], siblings[target] = siblings[target], siblings[index]
        logger.info("Edit OK: move_adjacent direction=%s block=%s index=%d", direction, block_id, target)
        return OperationResult(True, f"Moved block {direction}.", {"block_id": block_id, "index": target})

    @_structural_guard
    def move_to(self, tree: BlockTree, block_id: str, container: ContainerRef, index: int) -> OperationResult:
        """Move *block_id* into *container* at *index*.

        The index is interpreted against the destination list with the moved
        block already removed, and clamped into range. Moving a block into
        itself or any of its descendants is refused.
        """
        logger.info("Edit: move_to block=%s container=%s index=%s", block_id, container.describe(), index)
        location = locate(tree, block_id)
        if location is None:
            return self._not_found("move_to", block_id)
        if container.block_id is not None and is_descendant(location.block, container.block_id):
            logger.warning("Edit FAIL: move_to into_own_subtree block=%s container=%s",
                           block_id, container.describe())
            return OperationResult(False, "Cannot move a block into itself or its descendants.", {
                "reason": REASON_INVALID_TARGET,
                "block_id": block_id,
                "container": container,
            })
        destination = resolve_container(tree, container)
        if destination is None:
            return self._container_not_found("move_to", container)

        moved = location.siblings.pop(location.index)
        position = clamp(int(index), 0, len(destination))
        destination.insert(position, moved)
        logger.info("Edit OK: move_to block=%s container=%s index=%d", block_id, container.describe(), position)
        return OperationResult(True, "Moved block.", {
            "block_id": block_id,
            "from_container": location.container,
            "from_index": location.index,
            "container": container,
            "index": position,
        })

    @_structural_guard
    def replace(self, tree: BlockTree, block_id: str, new_block: Block) -> OperationResult:
        """Substitute *new_block* for *block_id* at the same position.

        The replacement always carries an id distinct from the replaced block;
        a fresh id is assigned when *new_block* reuses it. A selection inside
        the replaced subtree moves to the replacement and inline editing ends.
        """
        logger.info("Edit: replace block=%s type=%s", block_id, new_block.type)
        location = locate(tree, block_id)
        if location is None:
            return self._not_found("replace", block_id)
        if new_block.id == block_id:
            new_block = dc_replace(new_block, id=generate_block_id())
            logger.debug("replace: assigned fresh id %s", new_block.id)
        old = location.siblings[location.index]
        location.siblings[location.index] = new_block
        if tree.selected_block_id and is_descendant(old, tree.selected_block_id):
            tree.selected_block_id = new_block.id
        if tree.editing_block_id and is_descendant(old, tree.editing_block_id):
            tree.editing_block_id = None
        logger.info("Edit OK: replace block=%s new=%s", block_id, new_block.id)
        return OperationResult(True, "Replaced block.", {
            "block_id": new_block.id,
            "replaced_id": block_id,
            "container": location.container,
            "index": location.index,
        })

    # -------------------------------------------------------------------------
    # Field updates
    # -------------------------------------------------------------------------

    @_structural_guard
    def update_field(self, tree: BlockTree, block_id: str, field_path: str, value: Any) -> OperationResult:
        """Write *value* at a dotted *field_path* rooted at ``content`` or ``settings``.

        Intermediate mappings are created as needed. Writing the settings of a
        slotted or item container re-synchronises its slot/item population.
        """
        logger.info("Edit: update_field block=%s field=%s", block_id, field_path)
        try:
            keys = split_field_path(field_path)
        except ValueError as exc:
            return self._invalid_field(block_id, field_path, str(exc))
        if keys[0] not in _FIELD_ROOTS or len(keys) < 2:
            return self._invalid_field(
                block_id, field_path, f"field path must start with one of {list(_FIELD_ROOTS)} and name a key",
            )
        block = find_block(tree, block_id)
        if block is None:
            return self._not_found("update_field", block_id)

        resync = keys[0] == "settings" and isinstance(block.inner, (SlottedList, ItemList))
        if resync:
            # Refuse before writing so a failed call leaves the block untouched.
            self._check_containment(block)
        target: Dict[str, Any] = block.content if keys[0] == "content" else block.settings
        set_by_path(target, keys[1:], copy.deepcopy(value))
        details: Dict[str, Any] = {"block_id": block_id, "field": field_path}
        if resync:
            details["sync"] = self._resync(block)
        logger.info("Edit OK: update_field block=%s field=%s", block_id, field_path)
        return OperationResult(True, "Updated field.", details)

    @_structural_guard
    def sync_container(self, tree: BlockTree, block_id: str) -> OperationResult:
        """Reconcile a slotted/item container with the count implied by its settings.

        Missing slots are added empty. When the count shrinks, children of the
        removed slots are appended to the last remaining slot in order; no
        block is ever dropped.
        """
        logger.info("Edit: sync_container block=%s", block_id)
        block = find_block(tree, block_id)
        if block is None:
            return self._not_found("sync_container", block_id)
        if not isinstance(block.inner, (SlottedList, ItemList)):
            return OperationResult(False, "Block has no slots or items to sync.", {
                "reason": REASON_NOT_SLOTTED,
                "block_id": block_id,
            })
        sync = self._resync(block)
        changed = sync["before"] != sync["after"]
        if changed:
            logger.info("Edit OK: sync_container block=%s %d -> %d", block_id, sync["before"], sync["after"])
        else:
            logger.info("Edit noop: sync_container block=%s already in sync", block_id)
        return OperationResult(True, "Container synchronised." if changed else "Container already in sync.",
                               dict(sync, block_id=block_id, changed=changed))

    @_structural_guard
    def delete_slot(self, tree: BlockTree, block_id: str, slot: int) -> OperationResult:
        """Remove one slot (column) or item of *block_id*.

        The count setting is rewritten to match: the slot's width is dropped
        from a dash-separated preset (``"25-50-25"`` minus slot 1 gives
        ``"25-25"``) and an integer count is decremented. Children of the
        removed slot move to the end of the preceding slot, or to the front of
        the following one when slot 0 is removed, so document order is kept.
        Containers at their minimum slot count report ``reason="min_slots"``.
        """
        logger.info("Edit: delete_slot block=%s slot=%s", block_id, slot)
        block = find_block(tree, block_id)
        if block is None:
            return self._not_found("delete_slot", block_id)
        if not isinstance(block.inner, (SlottedList, ItemList)):
            return self._not_slotted("delete_slot", block_id)
        info = self._check_containment(block)
        lists: List[List[Block]] = block.inner.child_lists()
        if not 0 <= slot < len(lists):
            return self._container_not_found("delete_slot", ContainerRef(block_id, slot))
        if not info.count_setting:
            logger.warning("Edit FAIL: delete_slot fixed_count block=%s", block_id)
            return OperationResult(False, f"Slot count of '{block.type}' is not configurable.", {
                "reason": REASON_INVALID_TARGET,
                "block_id": block_id,
            })
        if len(lists) <= max(1, info.count_min):
            logger.info("Edit noop: delete_slot min_slots block=%s count=%d", block_id, len(lists))
            return OperationResult(False, "Container is already at its minimum slot count.", {
                "reason": REASON_MIN_SLOTS,
                "block_id": block_id,
                "count": len(lists),
            })

        new_value = self._count_setting_without(info, block.settings, slot, len(lists))
        removed = lists.pop(slot)
        if slot > 0:
            into = slot - 1
            lists[into].extend(removed)
        else:
            into = 0
            lists[0][:0] = removed
        block.settings[info.count_setting] = new_value
        sync = self._resync(block)
        logger.info("Edit OK: delete_slot block=%s slot=%d moved=%d into=%d", block_id, slot, len(removed), into)
        return OperationResult(True, "Deleted slot.", {
            "block_id": block_id,
            "slot": slot,
            "into": into,
            "moved": len(removed),
            "setting": {info.count_setting: new_value},
            "sync": sync,
        })

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _check_containment(self, block: Block) -> BlockTypeInfo:
        return check_containment(self._catalog, block)

    def _resync(self, block: Block) -> Dict[str, int]:
        if not isinstance(block.inner, (SlottedList, ItemList)):
            raise StructuralViolation("Block has no slots or items to sync", block.id,
                                      expected="SlottedList or ItemList", found=type(block.inner).__name__)
        info = self._check_containment(block)
        expected = info.slot_count(block.settings)
        lists: List[List[Block]] = block.inner.child_lists()
        before = len(lists)
        if expected is None or expected == before:
            return {"before": before, "after": before, "moved": 0}
        moved = resize_child_lists(lists, expected)
        if moved:
            logger.info("Resync %s: moved %d block(s) from removed slots into slot %d",
                        block.id, moved, expected - 1)
        return {"before": before, "after": len(lists), "moved": moved}

    @staticmethod
    def _count_setting_without(info: BlockTypeInfo, settings: Dict[str, Any], slot: int, count: int) -> Any:
        """Return the count setting value describing *count* - 1 slots with *slot* removed."""
        if info.count_rule != COUNT_RULE_DASH_SEPARATED:
            return count - 1
        parts = info.slot_parts(settings) or []
        if len(parts) == count:
            del parts[slot]
            return "-".join(parts)
        # The preset does not describe the current slots; fall back to equal widths.
        remaining = count - 1
        return "-".join([str(100 // remaining)] * remaining)

    def _not_slotted(self, operation: str, block_id: str) -> OperationResult:
        logger.warning("Edit FAIL: %s not_slotted block=%s", operation, block_id)
        return OperationResult(False, "Block has no slots or items.", {
            "reason": REASON_NOT_SLOTTED,
            "block_id": block_id,
        })

    def _not_found(self, operation: str, block_id: str) -> OperationResult:
        logger.warning("Edit FAIL: %s block_not_found block=%s", operation, block_id)
        return OperationResult(False, f"Block not found for id '{block_id}'.", {
            "reason": REASON_NOT_FOUND,
            "block_id": block_id,
        })

    def _container_not_found(self, operation: str, container: ContainerRef) -> OperationResult:
        logger.warning("Edit FAIL: %s container_not_found container=%s", operation, container.describe())
        return OperationResult(False, f"Container not found: {container.describe()}.", {
            "reason": REASON_NOT_FOUND,
            "block_id": container.block_id,
            "slot": container.slot,
        })

    def _invalid_field(self, block_id: str, field_path: str, message: str) -> OperationResult:
        logger.warning("Edit FAIL: update_field invalid_field block=%s field=%s", block_id, field_path)
        return OperationResult(False, f"Invalid field '{field_path}': {message}.", {
            "reason": REASON_INVALID_FIELD,
            "block_id": block_id,
            "field": field_path,
        })
