"""
Flow Simulator.

Replays a bot conversation over a block list in array order, without any
network or AI calls, so builders can check their flow.
"""

import copy
import re
from typing import Any, Dict, Iterable, List, Optional

import structlog

from ..config import (
    BlockType,
    PreviewConfig,
    PreviewState,
    StepOutcome,
    TranscriptRole,
    get_settings,
)
from ..models import Block, PreviewSnapshot, StepResult, TranscriptEntry

logger = structlog.get_logger()

PLACEHOLDER_PATTERN = re.compile(r"\{([^{}]+)\}")


def interpolate(template: str, variables: Dict[str, str]) -> str:
    """Replace every {name} with its collected value; unknown names stay literal."""

    def replacer(match: "re.Match[str]") -> str:
        name = match.group(1)
        if name in variables:
            return str(variables[name])
        return match.group(0)

    return PLACEHOLDER_PATTERN.sub(replacer, template)


class FlowSimulator:
    """
    State machine for a preview conversation.

    States: idle -> advancing -> (awaiting_input <-> advancing) -> complete.
    Each call to step() visits exactly one block. The only suspension point
    is an ask-question block, which waits for submit_answer(). Blocks that
    are pending, unconfigured or of an unknown type are skipped.
    """

    def __init__(
        self,
        blocks: List[Block],
        config: Optional[PreviewConfig] = None,
    ):
        """Snapshot the block list; later edits do not affect the session."""
        self.config = config or get_settings().preview
        self.blocks: List[Block] = copy.deepcopy(list(blocks))

        self.state = PreviewState.IDLE
        self.current_block_index = 0
        self.transcript: List[TranscriptEntry] = []
        self.collected_variables: Dict[str, str] = {}
        self.execution_path: List[Dict[str, Any]] = []
        self.generation = 0

        self._index_by_id = {b.id: i for i, b in enumerate(self.blocks)}

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def awaiting_input(self) -> bool:
        return self.state == PreviewState.AWAITING_INPUT

    @property
    def is_complete(self) -> bool:
        return self.state == PreviewState.COMPLETE

    @property
    def current_block(self) -> Optional[Block]:
        if 0 <= self.current_block_index < len(self.blocks):
            return self.blocks[self.current_block_index]
        return None

    def snapshot(self) -> PreviewSnapshot:
        """Copy of the observable state."""
        return PreviewSnapshot(
            state=self.state,
            current_block_index=self.current_block_index,
            transcript=list(self.transcript),
            collected_variables=dict(self.collected_variables),
            generation=self.generation,
        )

    # -------------------------------------------------------------------------
    # Control
    # -------------------------------------------------------------------------

    def start(self) -> None:
        """Leave idle and begin at the first block."""
        if self.state == PreviewState.IDLE:
            self.state = PreviewState.ADVANCING
            self.current_block_index = 0

    def restart(self) -> None:
        """Discard all progress and start again from the top."""
        self.transcript = []
        self.collected_variables = {}
        self.execution_path = []
        self.current_block_index = 0
        self.generation += 1
        self.state = PreviewState.ADVANCING

        logger.debug("simulator_restarted", generation=self.generation)

    def run_until_blocked(self) -> List[StepResult]:
        """Step until the flow waits for input or completes."""
        results = []
        while self.state == PreviewState.ADVANCING:
            result = self.step()
            if result is None:
                break
            results.append(result)
        return results

    def submit_answer(self, text: str) -> bool:
        """
        Answer the pending question.

        Ignored unless awaiting input, and for blank text.

        Returns:
            True if the answer was accepted
        """
        if self.state != PreviewState.AWAITING_INPUT:
            return False

        answer = (text or "").strip()
        if not answer:
            return False

        block = self.current_block
        self._emit(TranscriptRole.USER, answer, block)

        variable_name = block.config.get("variableName") if block else None
        if variable_name:
            self.collected_variables[variable_name] = answer

        self.current_block_index += 1
        self.state = PreviewState.ADVANCING
        return True

    # -------------------------------------------------------------------------
    # Stepping
    # -------------------------------------------------------------------------

    def step(self) -> Optional[StepResult]:
        """
        Visit the block at the current index.

        Returns:
            StepResult, or None when the simulator is not advancing
        """
        if self.state != PreviewState.ADVANCING:
            return None

        index = self.current_block_index
        if index >= len(self.blocks):
            self.state = PreviewState.COMPLETE
            return self._record(StepResult(index=index, outcome=StepOutcome.COMPLETED))

        block = self.blocks[index]
        if not block.is_ready:
            return self._advance(block, StepOutcome.SKIPPED)

        handler = {
            BlockType.START: self._visit_start,
            BlockType.SEND_MESSAGE: self._visit_message,
            BlockType.ASK_QUESTION: self._visit_question,
            BlockType.EXTERNAL_INTEGRATION: self._visit_integration,
            BlockType.AI_AGENT: self._visit_agent,
            BlockType.END: self._visit_end,
        }.get(block.type)

        if handler is None:
            return self._advance(block, StepOutcome.SKIPPED)

        return handler(block)

    def _visit_start(self, block: Block) -> StepResult:
        return self._advance(block, StepOutcome.PASSED)

    def _visit_message(self, block: Block) -> StepResult:
        message = block.config.get("message")
        if not message:
            return self._advance(block, StepOutcome.SKIPPED)

        entry = self._emit(TranscriptRole.BOT, interpolate(message, self.collected_variables), block)
        return self._advance(block, StepOutcome.EMITTED, entry)

    def _visit_question(self, block: Block) -> StepResult:
        question = block.config.get("question")
        if not question:
            return self._advance(block, StepOutcome.SKIPPED)

        entry = self._emit(TranscriptRole.BOT, question, block)
        self.state = PreviewState.AWAITING_INPUT
        return self._record(
            StepResult(
                index=self.current_block_index,
                outcome=StepOutcome.AWAITING_INPUT,
                block_id=block.id,
                block_type=block.type,
                entry=entry,
            )
        )

    def _visit_integration(self, block: Block) -> StepResult:
        if block.config.get("connected") is not True:
            return self._advance(block, StepOutcome.SKIPPED)

        # Generic wording; the end user never sees which CRM is behind it
        entry = self._emit(TranscriptRole.BOT, self.config.integration_ack_message, block)
        return self._advance(block, StepOutcome.EMITTED, entry)

    def _visit_agent(self, block: Block) -> StepResult:
        # No decision logic is available: follow the first declared output
        next_index = self._first_route_index(block)
        return self._advance(block, StepOutcome.PASSED, next_index=next_index)

    def _visit_end(self, block: Block) -> StepResult:
        entry = self._emit(TranscriptRole.BOT, self.config.closing_message, block)
        self.state = PreviewState.COMPLETE
        return self._record(
            StepResult(
                index=self.current_block_index,
                outcome=StepOutcome.COMPLETED,
                block_id=block.id,
                block_type=block.type,
                entry=entry,
            )
        )

    def _first_route_index(self, block: Block) -> Optional[int]:
        """Array index of the first output's target, if it lies ahead."""
        if not block.connections:
            return None

        outputs = block.config.get("outputs") or []
        first_output = outputs[0].get("id") if outputs and isinstance(outputs[0], dict) else None

        connection = next(
            (c for c in block.connections if first_output and c.source_output_id == first_output),
            block.connections[0],
        )
        target_index = self._index_by_id.get(connection.target_block_id)
        if target_index is None or target_index <= self.current_block_index:
            return None
        return target_index

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _advance(
        self,
        block: Block,
        outcome: StepOutcome,
        entry: Optional[TranscriptEntry] = None,
        next_index: Optional[int] = None,
    ) -> StepResult:
        result = StepResult(
            index=self.current_block_index,
            outcome=outcome,
            block_id=block.id,
            block_type=block.type,
            entry=entry,
        )
        self.current_block_index = (
            next_index if next_index is not None else self.current_block_index + 1
        )
        return self._record(result)

    def _record(self, result: StepResult) -> StepResult:
        self.execution_path.append(
            {
                "index": result.index,
                "block_id": result.block_id,
                "block_type": getattr(result.block_type, "value", result.block_type),
                "outcome": result.outcome.value,
            }
        )
        return result

    def _emit(
        self,
        role: TranscriptRole,
        content: str,
        block: Optional[Block],
    ) -> TranscriptEntry:
        entry = TranscriptEntry(role=role, content=content, block_id=block.id if block else None)
        self.transcript.append(entry)
        return entry


def replay(
    blocks: List[Block],
    answers: Iterable[str] = (),
    config: Optional[PreviewConfig] = None,
) -> FlowSimulator:
    """
    Run a whole preview synchronously, answering questions in order.

    Stops early, still awaiting input, if the answers run out.
    """
    simulator = FlowSimulator(blocks, config)
    simulator.start()
    simulator.run_until_blocked()

    for answer in answers:
        if not simulator.awaiting_input:
            break
        simulator.submit_answer(answer)
        simulator.run_until_blocked()

    return simulator
