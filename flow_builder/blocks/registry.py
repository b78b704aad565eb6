"""
Block Registry.

Manages registration and lookup of block types.
"""

from functools import lru_cache
from typing import Any, Dict, List, Optional

import structlog

from ..config import BlockStatus, BlockType, DataType
from ..models import BlockDefinition
from .definitions import ALL_BLOCKS

logger = structlog.get_logger()


class BlockRegistry:
    """
    Registry for block type definitions.

    Provides lookup of block types and decides whether a block's
    configuration is complete.
    """

    def __init__(self):
        """Initialize registry with all block definitions."""
        self._blocks: Dict[BlockType, BlockDefinition] = {}

        for block_def in ALL_BLOCKS:
            self.register(block_def)

        logger.debug("block_types_registered", count=len(self._blocks))

    def register(self, block_def: BlockDefinition) -> None:
        """Register a block definition."""
        if block_def.type in self._blocks:
            logger.warning("block_type_overwritten", block_type=block_def.type.value)

        self._blocks[block_def.type] = block_def

    def get(self, block_type: BlockType) -> Optional[BlockDefinition]:
        """Get block definition by type."""
        return self._blocks.get(block_type)

    def get_by_name(self, type_name: str) -> Optional[BlockDefinition]:
        """Get block definition by type name string."""
        try:
            return self.get(BlockType(type_name))
        except ValueError:
            return None

    def list_all(self) -> List[BlockDefinition]:
        """List all registered block definitions."""
        return list(self._blocks.values())

    def list_creatable(self) -> List[BlockDefinition]:
        """List block types the assistant may add."""
        return [d for d in self._blocks.values() if not d.singleton]

    def label_for(self, block_type: BlockType) -> str:
        """Human readable label for a block type."""
        block_def = self.get(block_type)
        return block_def.label if block_def else block_type.value

    def is_singleton(self, block_type: BlockType) -> bool:
        block_def = self.get(block_type)
        return bool(block_def and block_def.singleton)

    def is_configured(self, block_type: BlockType, config: Optional[Dict[str, Any]]) -> bool:
        """
        Check whether every required config field is filled in.

        Strings must be non-blank, arrays non-empty, and booleans True
        (an integration is only usable once it is connected).
        """
        block_def = self.get(block_type)
        if block_def is None:
            return False

        config = config or {}
        for config_field in block_def.required_fields:
            value = config.get(config_field.name)
            if config_field.data_type == DataType.BOOLEAN:
                if value is not True:
                    return False
            elif config_field.data_type == DataType.ARRAY:
                if not isinstance(value, list) or not value:
                    return False
            elif value is None or not str(value).strip():
                return False

        return True

    def status_for(self, block_type: BlockType, config: Optional[Dict[str, Any]]) -> BlockStatus:
        """Readiness status derived from the config."""
        if self.is_configured(block_type, config):
            return BlockStatus.READY
        return BlockStatus.PENDING


@lru_cache
def get_block_registry() -> BlockRegistry:
    """Get the singleton block registry."""
    return BlockRegistry()
