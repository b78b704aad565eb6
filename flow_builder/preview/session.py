"""
Preview Sessions.

Runs a flow simulator in the background with display delays between bot
turns, and keeps track of the open previews.
"""

import asyncio
import uuid
from typing import Callable, Dict, List, Optional

import structlog

from ..config import BlockType, PreviewConfig, PreviewState, StepOutcome, get_settings
from ..exceptions import PreviewLimitError, PreviewSessionNotFoundError
from ..models import Block, PreviewSnapshot, TranscriptEntry
from .simulator import FlowSimulator

logger = structlog.get_logger()

TranscriptListener = Callable[[TranscriptEntry], None]


class PreviewSession:
    """
    A running preview conversation.

    The runner task steps the simulator until it waits for input or
    completes. Every runner is bound to the generation it was started
    with; once a restart or close changes that, the runner stops without
    touching the transcript.
    """

    def __init__(
        self,
        blocks: List[Block],
        config: Optional[PreviewConfig] = None,
    ):
        self.id = str(uuid.uuid4())
        self.config = config or get_settings().preview
        self.simulator = FlowSimulator(blocks, self.config)

        self._task: Optional[asyncio.Task] = None
        self._listeners: List[TranscriptListener] = []
        self._closed = False

    @property
    def state(self) -> PreviewState:
        return self.simulator.state

    @property
    def generation(self) -> int:
        return self.simulator.generation

    @property
    def closed(self) -> bool:
        return self._closed

    def snapshot(self) -> PreviewSnapshot:
        return self.simulator.snapshot()

    def subscribe(self, listener: TranscriptListener) -> Callable[[], None]:
        """
        Receive every transcript entry as it is appended.

        Returns:
            Callable that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def start(self) -> None:
        """Begin the conversation."""
        if self._closed or self.simulator.state != PreviewState.IDLE:
            return
        self.simulator.start()
        self._launch()

    async def restart(self) -> None:
        """Drop the transcript and variables and run again from the first block."""
        if self._closed:
            return
        await self._cancel_runner()
        self.simulator.restart()
        self._launch()

        logger.info("preview_restarted", session_id=self.id, generation=self.generation)

    async def close(self) -> None:
        """Stop the runner and drop listeners."""
        self._closed = True
        await self._cancel_runner()
        self._listeners.clear()

        logger.info("preview_closed", session_id=self.id)

    def submit_answer(self, text: str) -> bool:
        """
        Answer the pending question and resume the runner.

        Returns:
            True if the answer was accepted
        """
        if self._closed:
            return False

        accepted = self.simulator.submit_answer(text)
        if not accepted:
            logger.debug("preview_answer_ignored", session_id=self.id, state=self.state.value)
            return False

        self._notify(self.simulator.transcript[-1])
        self._launch(delay_first=True)
        return True

    async def wait_until_settled(self) -> PreviewSnapshot:
        """Wait for the runner to reach input, completion or cancellation."""
        while self._task is not None and not self._task.done():
            await asyncio.wait([self._task])
        return self.snapshot()

    # -------------------------------------------------------------------------
    # Runner
    # -------------------------------------------------------------------------

    def _launch(self, delay_first: bool = False) -> None:
        self._task = asyncio.create_task(self._run(self.generation, delay_first))

    def _is_stale(self, generation: int) -> bool:
        return self._closed or generation != self.simulator.generation

    async def _run(self, generation: int, delay_first: bool = False) -> None:
        if delay_first:
            await asyncio.sleep(self.config.step_delay_ms / 1000)

        while not self._is_stale(generation):
            result = self.simulator.step()
            if result is None:
                return

            if result.entry is not None:
                self._notify(result.entry)

            if result.outcome in (StepOutcome.AWAITING_INPUT, StepOutcome.COMPLETED):
                return

            if result.outcome == StepOutcome.SKIPPED:
                continue

            delay_ms = (
                self.config.start_delay_ms
                if result.block_type == BlockType.START
                else self.config.step_delay_ms
            )
            await asyncio.sleep(delay_ms / 1000)

    async def _cancel_runner(self) -> None:
        task, self._task = self._task, None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    def _notify(self, entry: TranscriptEntry) -> None:
        for listener in list(self._listeners):
            try:
                listener(entry)
            except Exception as e:
                logger.error(
                    "preview_listener_error",
                    session_id=self.id,
                    error=str(e),
                )


class PreviewManager:
    """
    Tracks open preview sessions.

    Features:
    - Session limit from configuration
    - Lookup by id
    - Cleanup on shutdown
    """

    def __init__(self, config: Optional[PreviewConfig] = None):
        self.config = config or get_settings().preview
        self._sessions: Dict[str, PreviewSession] = {}
        self._lock = asyncio.Lock()
        self._max_sessions = self.config.max_sessions

    @property
    def active_count(self) -> int:
        return len(self._sessions)

    async def start_preview(self, blocks: List[Block]) -> PreviewSession:
        """
        Open a preview over a snapshot of the given blocks.

        Raises:
            PreviewLimitError: If the session limit is reached
        """
        async with self._lock:
            if len(self._sessions) >= self._max_sessions:
                logger.warning(
                    "max_previews_reached",
                    current=len(self._sessions),
                    max=self._max_sessions,
                )
                raise PreviewLimitError(self._max_sessions)

            session = PreviewSession(blocks, self.config)
            self._sessions[session.id] = session

        session.start()

        logger.info(
            "preview_started",
            session_id=session.id,
            block_count=len(blocks),
            total_active=len(self._sessions),
        )
        return session

    async def get_session(self, session_id: str) -> PreviewSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise PreviewSessionNotFoundError(session_id)
        return session

    async def submit_answer(self, session_id: str, text: str) -> bool:
        session = await self.get_session(session_id)
        return session.submit_answer(text)

    async def restart_preview(self, session_id: str) -> PreviewSession:
        session = await self.get_session(session_id)
        await session.restart()
        return session

    async def close_preview(self, session_id: str) -> None:
        async with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is None:
            raise PreviewSessionNotFoundError(session_id)
        await session.close()

    async def close_all(self) -> None:
        """Close every open preview."""
        async with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()

        for session in sessions:
            await session.close()

        logger.info("previews_closed", count=len(sessions))
