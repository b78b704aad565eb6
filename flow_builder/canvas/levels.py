"""
Graph Level Assignment.

Assigns every block reachable from the start block a level equal to the
longest path found from start, so parallel branches land on the same level.
"""

from typing import Dict, List, Optional, Set

from ..config import BlockType
from ..models import Block

DEFAULT_START_ID = "start"


def build_adjacency(blocks: List[Block]) -> Dict[str, List[str]]:
    """Map each block id to the targets of its outgoing connections."""
    return {block.id: block.target_ids for block in blocks}


def find_start_id(blocks: List[Block]) -> Optional[str]:
    """Id of the start block, by type first and then by the conventional id."""
    for block in blocks:
        if block.type == BlockType.START:
            return block.id

    if any(block.id == DEFAULT_START_ID for block in blocks):
        return DEFAULT_START_ID
    return None


def assign_levels(
    blocks: List[Block],
    start_id: Optional[str] = None,
) -> Dict[str, int]:
    """
    Assign a level to each block reachable from start.

    Depth-first from the start block. A block's subtree is explored only on
    its first visit; reaching an already visited block again can raise its
    own level but does not push the increase down to its descendants, so
    diamonds may leave descendants one level short.

    Args:
        blocks: Full block list with connections
        start_id: Override for the start block id

    Returns:
        Mapping of block id to level, in first-visit order
    """
    start_id = start_id or find_start_id(blocks)
    if start_id is None:
        return {}

    graph = build_adjacency(blocks)
    levels: Dict[str, int] = {}
    visited: Set[str] = set()

    def visit(block_id: str, level: int) -> None:
        levels[block_id] = max(levels.get(block_id, 0), level)

        if block_id in visited:
            return
        visited.add(block_id)

        for target_id in graph.get(block_id, []):
            # Dangling connections never receive a level
            if target_id in graph:
                visit(target_id, level + 1)

    visit(start_id, 0)
    return levels


def group_by_level(levels: Dict[str, int]) -> Dict[int, List[str]]:
    """Group block ids by level, keeping first-visit order within a level."""
    groups: Dict[int, List[str]] = {}
    for block_id, level in levels.items():
        groups.setdefault(level, []).append(block_id)
    return groups


def branch_levels(groups: Dict[int, List[str]]) -> List[int]:
    """Levels shared by more than one block."""
    return sorted(level for level, ids in groups.items() if len(ids) > 1)
