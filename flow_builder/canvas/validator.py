"""
Flow Validator.

Validates bot structure, connections, and block configurations.
"""

from typing import Dict, List, Set

import structlog

from ..blocks import get_block_registry
from ..config import BlockType, get_settings
from ..models import Block, ValidationIssue, ValidationResult
from .levels import assign_levels, build_adjacency, find_start_id

logger = structlog.get_logger()


class FlowValidator:
    """
    Validates bot flow structure and configuration.

    Checks:
    - Singleton boundary blocks (one start, one end)
    - Structural integrity (ids, dangling connections)
    - Agent outputs referenced by connections
    - Reachability from start
    - Pending configuration
    """

    def __init__(self):
        """Initialize validator."""
        self.settings = get_settings()
        self.registry = get_block_registry()

    def validate(self, blocks: List[Block]) -> ValidationResult:
        """
        Validate a block list.

        Args:
            blocks: Blocks to validate

        Returns:
            ValidationResult with issues found
        """
        issues: List[ValidationIssue] = []

        issues.extend(self._validate_structure(blocks))
        issues.extend(self._validate_boundaries(blocks))
        issues.extend(self._validate_connections(blocks))
        issues.extend(self._validate_reachability(blocks))
        issues.extend(self._validate_configuration(blocks))

        valid = all(i.severity != "error" for i in issues)

        logger.debug(
            "flow_validated",
            valid=valid,
            issue_count=len(issues),
        )

        return ValidationResult(valid=valid, issues=issues)

    def _validate_structure(self, blocks: List[Block]) -> List[ValidationIssue]:
        """Validate ids and size limits."""
        issues = []

        seen_ids: Set[str] = set()
        for block in blocks:
            if block.id in seen_ids:
                issues.append(
                    ValidationIssue(
                        severity="error",
                        message=f"Duplicate block ID: {block.id}",
                        block_id=block.id,
                    )
                )
            seen_ids.add(block.id)

        seen_conn_ids: Set[str] = set()
        for block in blocks:
            for conn in block.connections:
                if conn.id in seen_conn_ids:
                    issues.append(
                        ValidationIssue(
                            severity="error",
                            message=f"Duplicate connection ID: {conn.id}",
                            block_id=block.id,
                            connection_id=conn.id,
                        )
                    )
                seen_conn_ids.add(conn.id)

        max_blocks = self.settings.canvas.max_blocks_per_bot
        if len(blocks) > max_blocks:
            issues.append(
                ValidationIssue(
                    severity="error",
                    message=f"Bot exceeds maximum blocks ({len(blocks)} > {max_blocks})",
                )
            )

        return issues

    def _validate_boundaries(self, blocks: List[Block]) -> List[ValidationIssue]:
        """Exactly one start without incoming edges, one end without outgoing."""
        issues = []

        for block_type in (BlockType.START, BlockType.END):
            matching = [b for b in blocks if b.type == block_type]
            if not matching:
                issues.append(
                    ValidationIssue(
                        severity="error",
                        message=f"Bot is missing its {block_type.value} block",
                    )
                )
            for extra in matching[1:]:
                issues.append(
                    ValidationIssue(
                        severity="error",
                        message=f"Bot has more than one {block_type.value} block",
                        block_id=extra.id,
                    )
                )

        start_ids = {b.id for b in blocks if b.type == BlockType.START}
        for block in blocks:
            for conn in block.connections:
                if conn.target_block_id in start_ids:
                    issues.append(
                        ValidationIssue(
                            severity="error",
                            message="Start block cannot have incoming connections",
                            block_id=conn.target_block_id,
                            connection_id=conn.id,
                        )
                    )

        for block in blocks:
            if block.type == BlockType.END and block.connections:
                issues.append(
                    ValidationIssue(
                        severity="error",
                        message="End block cannot have outgoing connections",
                        block_id=block.id,
                    )
                )

        return issues

    def _validate_connections(self, blocks: List[Block]) -> List[ValidationIssue]:
        """Validate connection endpoints and agent outputs."""
        issues = []
        block_ids = {b.id for b in blocks}

        for block in blocks:
            for conn in block.connections:
                if conn.source_block_id != block.id:
                    issues.append(
                        ValidationIssue(
                            severity="error",
                            message=f"Connection source {conn.source_block_id} does not match owning block",
                            block_id=block.id,
                            connection_id=conn.id,
                        )
                    )

                if conn.target_block_id not in block_ids:
                    issues.append(
                        ValidationIssue(
                            severity="error",
                            message=f"Connection target block not found: {conn.target_block_id}",
                            block_id=block.id,
                            connection_id=conn.id,
                        )
                    )

                if conn.target_block_id == block.id:
                    issues.append(
                        ValidationIssue(
                            severity="warning",
                            message="Block has a connection to itself",
                            block_id=block.id,
                            connection_id=conn.id,
                        )
                    )

            issues.extend(self._validate_outputs(block))

        return issues

    def _validate_outputs(self, block: Block) -> List[ValidationIssue]:
        """Validate outgoing connection count and agent output ids."""
        issues = []
        block_def = self.registry.get(block.type)
        if block_def is None:
            return issues

        if block.type == BlockType.AI_AGENT:
            declared = {
                o.get("id") for o in block.config.get("outputs") or [] if isinstance(o, dict)
            }
            for conn in block.connections:
                if conn.source_output_id is None:
                    continue
                if conn.source_output_id not in declared:
                    issues.append(
                        ValidationIssue(
                            severity="error",
                            message=f"Connection references undeclared output: {conn.source_output_id}",
                            block_id=block.id,
                            connection_id=conn.id,
                        )
                    )
            if declared and len(block.connections) > len(declared):
                issues.append(
                    ValidationIssue(
                        severity="warning",
                        message="Agent has more connections than declared outputs",
                        block_id=block.id,
                    )
                )
        elif block_def.max_outputs >= 0 and len(block.connections) > block_def.max_outputs:
            issues.append(
                ValidationIssue(
                    severity="warning",
                    message=(
                        f"{block_def.label} block has too many outgoing connections "
                        f"({len(block.connections)} > {block_def.max_outputs})"
                    ),
                    block_id=block.id,
                )
            )

        return issues

    def _validate_reachability(self, blocks: List[Block]) -> List[ValidationIssue]:
        """Warn about blocks that cannot be reached from start."""
        issues = []
        if find_start_id(blocks) is None:
            return issues

        reachable = assign_levels(blocks)
        for block in blocks:
            if block.type == BlockType.START:
                continue
            if block.id not in reachable:
                issues.append(
                    ValidationIssue(
                        severity="warning",
                        message="Block is not reachable from the start block",
                        block_id=block.id,
                    )
                )

        issues.extend(self._detect_loops(blocks, build_adjacency(blocks)))
        return issues

    def _detect_loops(
        self,
        blocks: List[Block],
        graph: Dict[str, List[str]],
    ) -> List[ValidationIssue]:
        """Detect cycles, which the array-order preview cannot represent."""
        issues = []
        visited: Set[str] = set()
        rec_stack: Set[str] = set()

        def dfs(block_id: str) -> bool:
            visited.add(block_id)
            rec_stack.add(block_id)

            for neighbor in graph.get(block_id, []):
                if neighbor not in graph:
                    continue
                if neighbor not in visited:
                    if dfs(neighbor):
                        return True
                elif neighbor in rec_stack:
                    issues.append(
                        ValidationIssue(
                            severity="warning",
                            message="Connection loop detected",
                            block_id=neighbor,
                        )
                    )
                    return True

            rec_stack.remove(block_id)
            return False

        for block_id in graph:
            if block_id not in visited:
                dfs(block_id)

        return issues

    def _validate_configuration(self, blocks: List[Block]) -> List[ValidationIssue]:
        """Report blocks still waiting for configuration."""
        issues = []

        for block in blocks:
            if not block.is_ready:
                issues.append(
                    ValidationIssue(
                        severity="info",
                        message=f"{self.registry.label_for(block.type)} block needs configuration",
                        block_id=block.id,
                    )
                )

        return issues

    def quick_validate(self, blocks: List[Block]) -> bool:
        """
        Quick validation for basic errors.

        Returns True if the flow has one start, one end and no dangling
        connections.
        """
        if sum(1 for b in blocks if b.type == BlockType.START) != 1:
            return False
        if sum(1 for b in blocks if b.type == BlockType.END) != 1:
            return False

        block_ids = {b.id for b in blocks}
        return all(
            conn.target_block_id in block_ids
            for block in blocks
            for conn in block.connections
        )
