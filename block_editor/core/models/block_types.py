from __future__ import annotations

"""Block type metadata lookup.

The engine never hardcodes knowledge about particular block types. Whether a
type is a container, which containment shape it uses, how its slot/item count
follows from its settings and whether it supports inline text editing are all
answered by a :class:`BlockTypeCatalog` injected into the services.

:class:`ConfigBlockTypeCatalog` is the default implementation, backed by the
``block_types`` configuration section (packaged ``block_types.yml`` merged with
user overrides).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
import logging
import re
from typing import Any, Dict, List, Mapping, Optional

from block_editor.core.exceptions import BlockTypeRegistrationError
from block_editor.core.utils import clamp

from . import Containment, ItemList, PlainList, SlottedList
from .paths import ContainerKind

__all__ = ["BlockTypeInfo", "BlockTypeCatalog", "ConfigBlockTypeCatalog"]

logger = logging.getLogger(__name__)

_TYPE_NAME_RE = re.compile(r"^[a-zA-Z0-9_-]+$")

_CONTAINMENT_NAMES = {
    "plain": ContainerKind.INNER,
    "inner_blocks": ContainerKind.INNER,
    "slotted": ContainerKind.SLOT,
    "slots": ContainerKind.SLOT,
    "items": ContainerKind.ITEM,
}

COUNT_RULE_DASH_SEPARATED = "dash_separated"
COUNT_RULE_INTEGER = "integer"


@dataclass(frozen=True)
class BlockTypeInfo:
    """Metadata describing one block type.

    Attributes
    ----------
    type
        Block type tag.
    containment
        ``INNER``, ``SLOT`` or ``ITEM`` for containers, None for leaf blocks.
    inline_editable
        Whether the block supports inline text focus during navigation.
    default_content, default_settings
        Field values applied to newly created blocks.
    count_setting, count_rule, count_default, count_min, count_max
        How the slot/item count of a SLOT/ITEM container derives from its
        settings. ``dash_separated`` counts the parts of a preset such as
        ``"33-33-33"``; ``integer`` reads an integer clamped to the bounds.
    """

    type: str
    name: str = ""
    category: str = "text"
    containment: Optional[ContainerKind] = None
    inline_editable: bool = False
    default_content: Mapping[str, Any] = field(default_factory=dict)
    default_settings: Mapping[str, Any] = field(default_factory=dict)
    count_setting: Optional[str] = None
    count_rule: str = COUNT_RULE_INTEGER
    count_default: Any = 1
    count_min: int = 1
    count_max: int = 12

    @property
    def is_container(self) -> bool:
        return self.containment is not None

    def slot_count(self, settings: Mapping[str, Any]) -> Optional[int]:
        """Return the slot/item count implied by *settings*, or None if not slotted."""
        if self.containment not in (ContainerKind.SLOT, ContainerKind.ITEM):
            return None
        raw = settings.get(self.count_setting, self.count_default) if self.count_setting else self.count_default
        count = self._count_from(raw)
        if count is None:
            count = self._count_from(self.count_default)
        if count is None:
            count = self.count_min
        return clamp(count, max(1, self.count_min), max(1, self.count_max))

    def _count_from(self, raw: Any) -> Optional[int]:
        if raw is None or raw == "":
            return None
        if self.count_rule == COUNT_RULE_DASH_SEPARATED:
            parts = [p for p in str(raw).split("-") if p.strip()]
            return len(parts) or None
        try:
            return int(raw)
        except (TypeError, ValueError):
            return None

    def slot_parts(self, settings: Mapping[str, Any]) -> Optional[List[str]]:
        """Return the per-slot parts of a dash-separated count setting.

        ``{"preset": "25-75"}`` gives ``["25", "75"]``. Returns None for the
        integer rule or when the setting holds nothing to split.
        """
        if self.count_rule != COUNT_RULE_DASH_SEPARATED or not self.count_setting:
            return None
        raw = settings.get(self.count_setting, self.count_default)
        if raw is None or raw == "":
            return None
        return [p.strip() for p in str(raw).split("-") if p.strip()] or None

    def empty_containment(self, settings: Mapping[str, Any]) -> Optional[Containment]:
        """Return a fresh, correctly shaped empty containment for this type."""
        if self.containment is ContainerKind.INNER:
            return PlainList()
        if self.containment is ContainerKind.SLOT:
            return SlottedList.empty(self.slot_count(settings) or 0)
        if self.containment is ContainerKind.ITEM:
            return ItemList.empty(self.slot_count(settings) or 0)
        return None

    @classmethod
    def from_config(cls, block_type: str, config: Mapping[str, Any]) -> "BlockTypeInfo":
        """Build type info from a ``block_types`` configuration entry."""
        containment_name = config.get("containment")
        containment: Optional[ContainerKind] = None
        if containment_name:
            containment = _CONTAINMENT_NAMES.get(str(containment_name).lower())
            if containment is None:
                raise BlockTypeRegistrationError(
                    block_type,
                    f"unknown containment '{containment_name}' (expected one of {sorted(_CONTAINMENT_NAMES)})",
                )
        count = config.get("count") or {}
        defaults = config.get("defaults") or {}
        return cls(
            type=block_type,
            name=str(config.get("name") or block_type),
            category=str(config.get("category") or "text"),
            containment=containment,
            inline_editable=bool(config.get("inline_editable", False)),
            default_content=dict(defaults.get("content") or {}),
            default_settings=dict(defaults.get("settings") or {}),
            count_setting=count.get("setting"),
            count_rule=str(count.get("rule") or COUNT_RULE_INTEGER),
            count_default=count.get("default", 1),
            count_min=int(count.get("min", 1)),
            count_max=int(count.get("max", 12)),
        )


class BlockTypeCatalog(ABC):
    """Read-only metadata lookup consumed by the engine services."""

    @abstractmethod
    def describe(self, block_type: str) -> BlockTypeInfo:
        """Return metadata for *block_type*; unknown types describe as plain leaves."""

    def is_inline_text_editable(self, block_type: str) -> bool:
        return self.describe(block_type).inline_editable


class ConfigBlockTypeCatalog(BlockTypeCatalog):
    """Block type catalog populated from configuration and runtime registration.

    Parameters
    ----------
    definitions
        Mapping of type name -> configuration entry. When None the
        ``block_types`` section of :class:`~block_editor.config.ConfigManager`
        is used.
    """

    def __init__(self, definitions: Optional[Mapping[str, Mapping[str, Any]]] = None) -> None:
        self._types: Dict[str, BlockTypeInfo] = {}
        if definitions is None:
            from block_editor.config import ConfigManager

            definitions = ConfigManager().get_block_types()
        for block_type, config in (definitions or {}).items():
            self.register(block_type, config or {})
        logger.debug("Block type catalog loaded: %d types", len(self._types))

    def register(self, block_type: str, config: Mapping[str, Any]) -> "ConfigBlockTypeCatalog":
        """Register (or replace) a block type.

        Raises
        ------
        BlockTypeRegistrationError
            If the type name is empty or contains characters other than
            letters, digits, hyphens and underscores, or the entry is invalid.
        """
        if not isinstance(block_type, str) or not block_type.strip():
            raise BlockTypeRegistrationError(str(block_type), "type cannot be empty")
        if not _TYPE_NAME_RE.match(block_type):
            raise BlockTypeRegistrationError(
                block_type,
                "contains invalid characters; only letters, digits, hyphens and underscores are allowed",
            )
        self._types[block_type] = BlockTypeInfo.from_config(block_type, config)
        return self

    def unregister(self, block_type: str) -> "ConfigBlockTypeCatalog":
        self._types.pop(block_type, None)
        return self

    def has(self, block_type: str) -> bool:
        return block_type in self._types

    def types(self) -> List[str]:
        return list(self._types)

    def describe(self, block_type: str) -> BlockTypeInfo:
        info = self._types.get(block_type)
        if info is None:
            logger.debug("Unknown block type '%s' described as leaf", block_type)
            return BlockTypeInfo(type=block_type, name=block_type)
        return info
