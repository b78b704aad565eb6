"""
Block Types and Registry.

This module provides the block type definitions and registry
for the bot flow builder.
"""

from .registry import BlockRegistry, get_block_registry
from .definitions import ALL_BLOCKS, BOUNDARY_BLOCKS, CONVERSATION_BLOCKS, INTEGRATION_BLOCKS, AI_BLOCKS

__all__ = [
    "BlockRegistry",
    "get_block_registry",
    "ALL_BLOCKS",
    "BOUNDARY_BLOCKS",
    "CONVERSATION_BLOCKS",
    "INTEGRATION_BLOCKS",
    "AI_BLOCKS",
]
