from __future__ import annotations

"""Exception classes for the block tree engine.

Routine failures (unknown ids, out-of-range indices) are never raised; the
services report them through ``OperationResult``. The exceptions below are
reserved for conditions that indicate corrupted data or programming errors
upstream and should surface loudly.
"""

from typing import Any, Optional


class BlockEditorError(Exception):
    """Base exception for all block editor errors."""

    def __init__(self, message: str, block_id: Optional[str] = None,
                 cause: Optional[Exception] = None) -> None:
        super().__init__(message)
        self.block_id = block_id
        self.cause = cause

    def __str__(self) -> str:
        if self.block_id:
            return f"[Block: {self.block_id}] {super().__str__()}"
        return super().__str__()


class StructuralViolation(BlockEditorError):
    """Raised when a containment-shape assumption is broken.

    Examples are a slot index addressed on a plain inner list, a slotted
    container whose slot count disagrees with its settings, or duplicate
    block ids in one tree.
    """

    def __init__(self, message: str, block_id: Optional[str] = None,
                 expected: Any = None, found: Any = None,
                 cause: Optional[Exception] = None) -> None:
        super().__init__(message, block_id, cause)
        self.expected = expected
        self.found = found


class BlockTypeRegistrationError(BlockEditorError):
    """Raised when a block type is registered with an invalid name or config."""

    def __init__(self, block_type: str, message: str) -> None:
        self.block_type = block_type
        super().__init__(f"Block type '{block_type}': {message}")
