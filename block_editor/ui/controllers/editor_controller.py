from __future__ import annotations

"""Editing session controller.

Coordinates user actions (clicks, keystrokes, drag-ends) with the engine
services for a single block tree. The controller is the tree's only writer:
each edit takes a snapshot, runs one service call, and commits the snapshot
to history only when the call succeeded. Listeners and the persistence
callback are notified afterwards.
"""

import copy
from dataclasses import dataclass
import logging
from typing import Any, Callable, Dict, List, Literal, Optional

from block_editor.config import ConfigManager
from block_editor.core.models import Block, BlockTree, ContainerRef
from block_editor.core.models.block_types import BlockTypeCatalog, ConfigBlockTypeCatalog
from block_editor.core.path_resolver import find_block
from block_editor.core.services.block_editing_service import BlockEditingService, OperationResult
from block_editor.core.services.navigation_service import NavigationService
from block_editor.core.services.reorder_service import ReorderService
from block_editor.core.services.undo_service import UndoService

__all__ = ["EditorController", "EditorStatus"]

logger = logging.getLogger(__name__)

Direction = Literal["up", "down"]

REASON_NO_SELECTION = "no_selection"


@dataclass(frozen=True)
class EditorStatus:
    """State pushed to the presentation layer after every change."""

    selected_block_id: Optional[str]
    can_undo: bool
    can_redo: bool


StatusListener = Callable[[EditorStatus], None]
CommitCallback = Callable[[List[Dict[str, Any]]], None]


class EditorController:
    """Controller for one editing session over a :class:`BlockTree`.

    Parameters
    ----------
    tree : BlockTree
        The document being edited. Owned exclusively by this controller.
    editing_service : BlockEditingService
        Performs insert/delete/move/replace/update operations.
    reorder_service : ReorderService
        Applies drag-supplied orders.
    navigation_service : NavigationService
        Linear keyboard order and editability checks.
    undo_service : UndoService
        Snapshot history.
    on_commit : callable, optional
        Receives a point-in-time copy of the blocks (nested dicts) after each
        committed change, undo or redo.

    Notes
    -----
    Routine failures (unknown ids, no selection, boundaries) are returned as
    unsuccessful results, never raised.
    """

    def __init__(
        self,
        tree: BlockTree,
        editing_service: BlockEditingService,
        reorder_service: ReorderService,
        navigation_service: NavigationService,
        undo_service: UndoService,
        on_commit: Optional[CommitCallback] = None,
    ) -> None:
        # Dependencies
        self.tree: BlockTree = tree
        self.editing_service: BlockEditingService = editing_service
        self.reorder_service: ReorderService = reorder_service
        self.navigation_service: NavigationService = navigation_service
        self.undo_service: UndoService = undo_service
        self.on_commit: Optional[CommitCallback] = on_commit

        settings = ConfigManager().get_editor_settings()
        self.default_block_type: str = str(settings.get("default_block_type") or "text")
        self.inline_text_field: str = str(settings.get("inline_text_field") or "text")

        self._listeners: List[StatusListener] = []
        self._dirty: bool = False

    @classmethod
    def from_dicts(
        cls,
        blocks: Optional[List[Dict[str, Any]]] = None,
        catalog: Optional[BlockTypeCatalog] = None,
        on_commit: Optional[CommitCallback] = None,
    ) -> "EditorController":
        """Build a controller with default services around nested-dict *blocks*."""
        catalog = catalog if catalog is not None else ConfigBlockTypeCatalog()
        return cls(
            tree=BlockTree.from_dicts(blocks or [], catalog),
            editing_service=BlockEditingService(catalog),
            reorder_service=ReorderService(catalog=catalog),
            navigation_service=NavigationService(catalog),
            undo_service=UndoService(),
            on_commit=on_commit,
        )

    # ---------------------------------------------------------------------------------
    # Status and listeners
    # ---------------------------------------------------------------------------------

    @property
    def status(self) -> EditorStatus:
        return EditorStatus(
            selected_block_id=self.tree.selected_block_id,
            can_undo=self.undo_service.can_undo(),
            can_redo=self.undo_service.can_redo(),
        )

    @property
    def is_dirty(self) -> bool:
        return self._dirty

    def mark_saved(self) -> None:
        self._dirty = False

    def subscribe(self, listener: StatusListener) -> Callable[[], None]:
        """Register *listener* for status updates; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _notify(self) -> None:
        status = self.status
        for listener in list(self._listeners):
            listener(status)

    def _commit(self) -> None:
        self._dirty = True
        if self.on_commit is not None:
            self.on_commit(copy.deepcopy(self.tree.to_dicts()))
        self._notify()

    # ---------------------------------------------------------------------------------
    # Internal helpers
    # ---------------------------------------------------------------------------------

    def _recorded_edit(self, mutate: Callable[[], OperationResult]) -> OperationResult:
        """Execute a mutating operation with a pre-mutation undo snapshot.

        - Captures the tree before mutation.
        - Executes the provided callable.
        - On success pushes the captured snapshot and commits.
        - Returns the original result.

        Results reporting ``changed=False`` are successful no-ops and leave
        history untouched.
        """
        snapshot = self.undo_service.capture(self.tree)
        result = mutate()
        if not result.success:
            logger.debug("Edit not recorded: %s", result.message)
            return result
        if not (result.details or {}).get("changed", True):
            return result
        self.undo_service.push(snapshot)
        self._commit()
        return result

    def _no_selection(self) -> OperationResult:
        return OperationResult(False, "No block selected.", {"reason": REASON_NO_SELECTION})

    def _exists(self, block_id: Optional[str]) -> bool:
        return find_block(self.tree, block_id) is not None

    # ---------------------------------------------------------------------------------
    # Selection
    # ---------------------------------------------------------------------------------

    def select_block(self, block_id: str) -> bool:
        """Select *block_id* and leave inline editing."""
        if not self._exists(block_id):
            logger.debug("select_block: unknown block %s", block_id)
            return False
        self.tree.selected_block_id = block_id
        self.tree.editing_block_id = None
        self._notify()
        return True

    def deselect_all(self) -> None:
        self.tree.clear_selection()
        self._notify()

    def start_inline_edit(self, block_id: str) -> bool:
        """Select *block_id* and enter inline editing on it."""
        if not self._exists(block_id):
            return False
        self.tree.selected_block_id = block_id
        self.tree.editing_block_id = block_id
        self._notify()
        return True

    # ---------------------------------------------------------------------------------
    # Insertion
    # ---------------------------------------------------------------------------------

    def insert_block(
        self,
        block_type: str,
        container: Optional[ContainerRef] = None,
        index: Optional[int] = None,
    ) -> OperationResult:
        """Create a *block_type* block and insert it, appending when *index* is None.

        The new block becomes the selection.
        """
        if not isinstance(block_type, str) or not block_type:
            return OperationResult(False, "Block type is required.", {"reason": "invalid_type"})
        block = self.editing_service.create_block(block_type)
        target = container if container is not None else ContainerRef.root()

        def _mutate() -> OperationResult:
            if index is None:
                result = self.editing_service.insert_append(self.tree, target, block)
            else:
                result = self.editing_service.insert_at(self.tree, target, index, block)
            if result.success:
                self.tree.selected_block_id = block.id
                self.tree.editing_block_id = None
            return result

        return self._recorded_edit(_mutate)

    def insert_block_with_content(self, block_type: str, text: str = "") -> OperationResult:
        """Append a *block_type* block at the root, seeding its inline text when given."""
        if not isinstance(block_type, str) or not block_type:
            return OperationResult(False, "Block type is required.", {"reason": "invalid_type"})
        content = {self.inline_text_field: text} if text else None
        block = self.editing_service.create_block(block_type, content=content)
        return self._recorded_edit(
            lambda: self.editing_service.insert_append(self.tree, ContainerRef.root(), block)
        )

    def insert_block_after(self, block_id: str, text: Optional[str] = None) -> OperationResult:
        """Split-style insert: save *block_id*'s text, add a default block after it, edit the new one.

        Both writes form a single history entry.
        """
        block = self.editing_service.create_block(self.default_block_type)

        def _mutate() -> OperationResult:
            result = self.editing_service.insert_after(self.tree, block_id, block)
            if not result.success:
                return result
            if text is not None:
                self.editing_service.update_field(
                    self.tree, block_id, f"content.{self.inline_text_field}", text
                )
            self.tree.selected_block_id = block.id
            self.tree.editing_block_id = block.id
            return result

        return self._recorded_edit(_mutate)

    # ---------------------------------------------------------------------------------
    # Removal, movement, replacement
    # ---------------------------------------------------------------------------------

    def delete_block(self, block_id: str) -> OperationResult:
        return self._recorded_edit(lambda: self.editing_service.delete(self.tree, block_id))

    def delete_selected(self) -> OperationResult:
        """Delete the current selection (keyboard Delete/Backspace)."""
        if self.tree.selected_block_id is None:
            return self._no_selection()
        return self.delete_block(self.tree.selected_block_id)

    def move_block_up(self, block_id: str) -> OperationResult:
        return self._recorded_edit(lambda: self.editing_service.move_adjacent(self.tree, block_id, "up"))

    def move_block_down(self, block_id: str) -> OperationResult:
        return self._recorded_edit(lambda: self.editing_service.move_adjacent(self.tree, block_id, "down"))

    def move_block_to(self, block_id: str, container: ContainerRef, index: int) -> OperationResult:
        return self._recorded_edit(
            lambda: self.editing_service.move_to(self.tree, block_id, container, index)
        )

    def replace_block(self, block_id: str, new_block: Block) -> OperationResult:
        return self._recorded_edit(lambda: self.editing_service.replace(self.tree, block_id, new_block))

    # ---------------------------------------------------------------------------------
    # Field updates
    # ---------------------------------------------------------------------------------

    def save_inline_edit(self, block_id: str, text: str) -> OperationResult:
        """Store *text* as the block's inline text and leave editing mode."""
        result = self._recorded_edit(
            lambda: self.editing_service.update_field(
                self.tree, block_id, f"content.{self.inline_text_field}", text
            )
        )
        if result.success and self.tree.editing_block_id == block_id:
            self.tree.editing_block_id = None
        return result

    def update_block_setting(self, key: str, value: Any, block_id: Optional[str] = None) -> OperationResult:
        """Write a dotted settings *key* on *block_id*, or on the selection when omitted."""
        target = block_id or self.tree.selected_block_id
        if target is None:
            return self._no_selection()
        return self._recorded_edit(
            lambda: self.editing_service.update_field(self.tree, target, f"settings.{key}", value)
        )

    # ---------------------------------------------------------------------------------
    # Reordering
    # ---------------------------------------------------------------------------------

    def reorder_blocks(
        self,
        ordered_ids: List[str],
        parent_id: Optional[str] = None,
        slot: Optional[int] = None,
    ) -> OperationResult:
        """Apply a canvas drag-end order to the root, an inner list, a slot or an item."""
        container = ContainerRef(parent_id, slot)
        return self._recorded_edit(
            lambda: self.reorder_service.reorder(self.tree, container, list(ordered_ids or []))
        )

    def reorder_layers(self, ordered_ids: List[str]) -> OperationResult:
        """Apply a layer-panel order to the top-level blocks."""
        return self.reorder_blocks(ordered_ids)

    def reorder_slots(self, block_id: str, new_order: List[Any]) -> OperationResult:
        """Apply a column drag order (slot indices or column handle ids) to *block_id*."""
        return self._recorded_edit(
            lambda: self.reorder_service.reorder_slots(self.tree, block_id, list(new_order or []))
        )

    def move_slot(self, block_id: str, slot: int, direction: Literal["left", "right"]) -> OperationResult:
        """Swap column *slot* with its left or right neighbour."""
        block = find_block(self.tree, block_id)
        if block is None or block.inner is None:
            return self.reorder_slots(block_id, [])
        count = len(block.inner.child_lists())
        target = slot - 1 if direction == "left" else slot + 1
        if direction not in ("left", "right") or not 0 <= slot < count or not 0 <= target < count:
            logger.info("Edit noop: move_slot direction=%s boundary block=%s slot=%s", direction, block_id, slot)
            return OperationResult(False, f"Cannot move column {direction}.", {
                "reason": "boundary",
                "block_id": block_id,
            })
        order = list(range(count))
        order[slot], order[target] = order[target], order[slot]
        return self.reorder_slots(block_id, order)

    def delete_slot(self, block_id: str, slot: int) -> OperationResult:
        """Remove column *slot* of *block_id*, keeping its blocks."""
        return self._recorded_edit(lambda: self.editing_service.delete_slot(self.tree, block_id, slot))

    # ---------------------------------------------------------------------------------
    # Keyboard navigation
    # ---------------------------------------------------------------------------------

    def _focus(self, block_id: str) -> None:
        self.tree.selected_block_id = block_id
        if self.navigation_service.is_editable(self.tree, block_id):
            self.tree.editing_block_id = block_id
        else:
            self.tree.editing_block_id = None

    def navigate(self, direction: Direction) -> Optional[str]:
        """Move the selection one step in document order.

        Editable targets enter inline editing. Returns the new selection, or
        None when the tree is empty.
        """
        target = self.navigation_service.neighbor(self.tree, self.tree.selected_block_id, direction)
        if target is None:
            return None
        self._focus(target)
        self._notify()
        return target

    def save_and_navigate(self, block_id: str, text: str, direction: Direction) -> Optional[str]:
        """Save the inline text of *block_id*, then move one step *direction*.

        Moving down past the last block clears the selection and returns None,
        handing focus back to the typing area. Moving up from the first block
        stays on it.
        """
        self.save_inline_edit(block_id, text)
        if not self._exists(block_id):
            return self.navigate(direction)
        if direction == "down" and self.navigation_service.is_at_boundary(self.tree, block_id, "down"):
            self.tree.clear_selection()
            self._notify()
            return None
        target = self.navigation_service.neighbor(self.tree, block_id, direction)
        if target is None:
            return None
        self._focus(target)
        self._notify()
        return target

    # ---------------------------------------------------------------------------------
    # History
    # ---------------------------------------------------------------------------------

    def _after_history_change(self) -> None:
        if self.tree.selected_block_id and not self._exists(self.tree.selected_block_id):
            self.tree.selected_block_id = None
        if self.tree.editing_block_id and not self._exists(self.tree.editing_block_id):
            self.tree.editing_block_id = None
        self._commit()

    def undo(self) -> bool:
        if not self.undo_service.undo(self.tree):
            return False
        logger.info("Undo applied")
        self._after_history_change()
        return True

    def redo(self) -> bool:
        if not self.undo_service.redo(self.tree):
            return False
        logger.info("Redo applied")
        self._after_history_change()
        return True
