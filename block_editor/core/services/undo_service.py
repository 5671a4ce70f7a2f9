from __future__ import annotations

"""Undo/redo snapshot management for a BlockTree.

This service is UI-agnostic and performs pure in-memory history tracking of
the full top-level block list. Snapshots are deep copies, so once taken they
are immune to later mutation of the live tree, and restoring a snapshot hands
the tree a fresh copy so the stored entry stays untouched.

Design principles
-----------------
- No UI imports and no I/O (filesystem/console).
- Snapshots are immutable once stored.
- Redo stack is cleared on every new snapshot push (standard undo/redo behavior).
- Memory usage controlled by a max_history policy (trim oldest first).

Callers record the state *before* a mutation. ``undo`` then exchanges the
current tree with the top of the undo stack, and ``redo`` does the reverse.
"""

import copy
from dataclasses import dataclass
import logging
from typing import List, Optional, Tuple

from block_editor.config import ConfigManager
from block_editor.core.models import Block, BlockTree

__all__ = ["UndoService", "DEFAULT_MAX_HISTORY"]

logger = logging.getLogger(__name__)

DEFAULT_MAX_HISTORY = 50


@dataclass(frozen=True)
class _Snapshot:
    """Immutable in-memory snapshot of a BlockTree's block list.

    Attributes
    ----------
    blocks :
        Deep copy of the top-level blocks at capture time.
    """

    blocks: Tuple[Block, ...]

    def restore_into(self, tree: BlockTree) -> None:
        tree.blocks = copy.deepcopy(list(self.blocks))


class UndoService:
    """Manage undo/redo stacks for :class:`BlockTree`.

    Parameters
    ----------
    max_history : int, optional
        Maximum number of undo snapshots to keep. Oldest entries are discarded
        when the capacity is exceeded. When None the
        ``editor.max_history_states`` setting is used (default 50). Values
        below 1 are coerced to 1.

    Notes
    -----
    - Push operations clear the redo stack.
    - Undo/redo on an empty stack is a no-op returning False.

    Examples
    --------
    >>> svc = UndoService(max_history=10)
    >>> svc.record_snapshot(tree)    # before mutating tree
    >>> changed = svc.undo(tree)     # restores the recorded state
    >>> redo_ok = svc.redo(tree)     # and back again
    """

    def __init__(self, max_history: Optional[int] = None) -> None:
        if max_history is None:
            max_history = ConfigManager().get_editor_settings().get("max_history_states", DEFAULT_MAX_HISTORY)
        self._max_history: int = max(1, int(max_history))
        self._undo_stack: List[_Snapshot] = []
        self._redo_stack: List[_Snapshot] = []

    @property
    def max_history(self) -> int:
        return self._max_history

    @property
    def undo_depth(self) -> int:
        return len(self._undo_stack)

    @property
    def redo_depth(self) -> int:
        return len(self._redo_stack)

    # --------------------------------------------------------------------- API

    def capture(self, tree: BlockTree) -> _Snapshot:
        """Return an immutable snapshot of *tree* without touching the stacks.

        Callers that only want to record a state when an edit succeeds take a
        snapshot first and :meth:`push` it afterwards.
        """
        return _Snapshot(blocks=tuple(copy.deepcopy(tree.blocks)))

    def push(self, snapshot: _Snapshot) -> None:
        """Push a previously captured snapshot onto the undo stack.

        The redo stack is cleared and the undo stack trimmed to capacity.
        """
        self._undo_stack.append(snapshot)
        # New user action invalidates redo history
        self._redo_stack.clear()
        self._trim(self._undo_stack)

    def record_snapshot(self, tree: BlockTree) -> None:
        """Capture the current state of *tree* and push it onto the undo stack."""
        self.push(self.capture(tree))

    def undo(self, tree: BlockTree) -> bool:
        """Restore the most recently recorded state into *tree*.

        The current state is pushed onto the redo stack first.
        """
        if not self._undo_stack:
            logger.debug("Undo: nothing to undo")
            return False
        self._redo_stack.append(self.capture(tree))
        self._trim(self._redo_stack)
        self._undo_stack.pop().restore_into(tree)
        logger.debug("Undo: restored state (undo=%d redo=%d)", self.undo_depth, self.redo_depth)
        return True

    def redo(self, tree: BlockTree) -> bool:
        """Re-apply a state that was previously undone."""
        if not self._redo_stack:
            logger.debug("Redo: nothing to redo")
            return False
        self._undo_stack.append(self.capture(tree))
        self._trim(self._undo_stack)
        self._redo_stack.pop().restore_into(tree)
        logger.debug("Redo: restored state (undo=%d redo=%d)", self.undo_depth, self.redo_depth)
        return True

    def can_undo(self) -> bool:
        """Return True if an undo operation is currently possible."""
        return bool(self._undo_stack)

    def can_redo(self) -> bool:
        """Return True if a redo operation is currently possible."""
        return bool(self._redo_stack)

    def clear(self) -> None:
        """Clear both undo and redo histories."""
        self._undo_stack.clear()
        self._redo_stack.clear()

    # --------------------------------------------------------------- Internals

    def _trim(self, stack: List[_Snapshot]) -> None:
        overflow = len(stack) - self._max_history
        if overflow > 0:
            del stack[0:overflow]
