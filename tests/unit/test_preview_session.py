"""
Unit Tests for Preview Sessions

Tests for the background runner, restarts and the session manager.
"""

import asyncio

import pytest

from flow_builder.config import PreviewConfig, PreviewState
from flow_builder.exceptions import PreviewLimitError, PreviewSessionNotFoundError
from flow_builder.preview import PreviewManager, PreviewSession

CLOSING = "Thank you for chatting with us! This conversation has ended."


class TestPreviewSession:
    """Tests for PreviewSession."""

    @pytest.mark.asyncio
    async def test_runs_to_first_question(self, linear_blocks, instant_preview_config):
        """Test the runner stops at the first question."""
        session = PreviewSession(linear_blocks, instant_preview_config)
        session.start()

        snapshot = await session.wait_until_settled()

        assert snapshot.awaiting_input
        assert [e.content for e in snapshot.transcript] == ["Welcome!", "What is your name?"]

    @pytest.mark.asyncio
    async def test_answer_resumes_runner(self, linear_blocks, instant_preview_config):
        """Test an answer resumes the conversation to the end."""
        session = PreviewSession(linear_blocks, instant_preview_config)
        session.start()
        await session.wait_until_settled()

        assert session.submit_answer("Ann")
        snapshot = await session.wait_until_settled()

        assert snapshot.is_complete
        assert snapshot.collected_variables == {"name": "Ann"}
        assert snapshot.transcript[-1].content == CLOSING

    @pytest.mark.asyncio
    async def test_blank_answer_does_not_resume(self, linear_blocks, instant_preview_config):
        """Test a blank answer leaves the session waiting."""
        session = PreviewSession(linear_blocks, instant_preview_config)
        session.start()
        await session.wait_until_settled()

        assert not session.submit_answer("")
        snapshot = await session.wait_until_settled()

        assert snapshot.state == PreviewState.AWAITING_INPUT

    @pytest.mark.asyncio
    async def test_listeners_receive_entries_in_order(self, linear_blocks, instant_preview_config):
        """Test subscribers see every appended entry once, in order."""
        session = PreviewSession(linear_blocks, instant_preview_config)
        received = []
        session.subscribe(received.append)

        session.start()
        await session.wait_until_settled()
        session.submit_answer("Ann")
        snapshot = await session.wait_until_settled()

        assert [e.id for e in received] == [e.id for e in snapshot.transcript]

    @pytest.mark.asyncio
    async def test_unsubscribe(self, linear_blocks, instant_preview_config):
        """Test an unsubscribed listener stops receiving entries."""
        session = PreviewSession(linear_blocks, instant_preview_config)
        received = []
        unsubscribe = session.subscribe(received.append)
        unsubscribe()

        session.start()
        await session.wait_until_settled()

        assert received == []

    @pytest.mark.asyncio
    async def test_display_delays_between_bot_turns(self, linear_blocks):
        """Test the runner pauses after bot turns."""
        config = PreviewConfig(start_delay_ms=10, step_delay_ms=200)
        session = PreviewSession(linear_blocks, config)
        session.start()

        await asyncio.sleep(0.1)
        assert [e.content for e in session.snapshot().transcript] == ["Welcome!"]

        snapshot = await session.wait_until_settled()
        assert snapshot.awaiting_input

    @pytest.mark.asyncio
    async def test_display_delay_after_answer(self, linear_blocks):
        """Test the next bot turn waits a display delay after the user answers."""
        config = PreviewConfig(start_delay_ms=0, step_delay_ms=200)
        session = PreviewSession(linear_blocks, config)
        session.start()
        await session.wait_until_settled()

        assert session.submit_answer("Ann")
        await asyncio.sleep(0.05)
        assert [e.content for e in session.snapshot().transcript][-1] == "Ann"

        snapshot = await session.wait_until_settled()
        assert snapshot.transcript[3].content == "Thanks, Ann!"
        assert snapshot.is_complete

    @pytest.mark.asyncio
    async def test_restart_during_answer_delay(self, linear_blocks):
        """Test a restart while the answer delay runs drops the pending turn."""
        config = PreviewConfig(start_delay_ms=0, step_delay_ms=100)
        session = PreviewSession(linear_blocks, config)
        session.start()
        await session.wait_until_settled()
        session.submit_answer("Ann")

        await session.restart()
        snapshot = await session.wait_until_settled()

        assert "Thanks, Ann!" not in [e.content for e in snapshot.transcript]
        assert snapshot.collected_variables == {}

    @pytest.mark.asyncio
    async def test_restart_discards_stale_runner(self, linear_blocks):
        """Test a restart mid-run never mixes old output into the new transcript."""
        config = PreviewConfig(start_delay_ms=0, step_delay_ms=50)
        session = PreviewSession(linear_blocks, config)
        session.start()
        await asyncio.sleep(0.01)

        await session.restart()
        snapshot = await session.wait_until_settled()

        assert snapshot.generation == 1
        assert [e.content for e in snapshot.transcript] == ["Welcome!", "What is your name?"]

    @pytest.mark.asyncio
    async def test_restart_after_completion(self, linear_blocks, instant_preview_config):
        """Test restarting a finished preview replays it from the top."""
        session = PreviewSession(linear_blocks, instant_preview_config)
        session.start()
        await session.wait_until_settled()
        session.submit_answer("Ann")
        await session.wait_until_settled()

        await session.restart()
        snapshot = await session.wait_until_settled()

        assert snapshot.awaiting_input
        assert snapshot.collected_variables == {}
        assert len(snapshot.transcript) == 2

    @pytest.mark.asyncio
    async def test_close_stops_runner(self, linear_blocks):
        """Test a closed session appends nothing more."""
        config = PreviewConfig(start_delay_ms=0, step_delay_ms=50)
        session = PreviewSession(linear_blocks, config)
        session.start()
        await asyncio.sleep(0.01)

        await session.close()
        count = len(session.snapshot().transcript)
        await asyncio.sleep(0.1)

        assert session.closed
        assert len(session.snapshot().transcript) == count
        assert not session.submit_answer("Ann")


class TestPreviewManager:
    """Tests for PreviewManager."""

    @pytest.mark.asyncio
    async def test_start_and_answer(self, linear_blocks, instant_preview_config):
        """Test answers are routed to the right session."""
        manager = PreviewManager(instant_preview_config)
        session = await manager.start_preview(linear_blocks)
        await session.wait_until_settled()

        assert await manager.submit_answer(session.id, "Ann")
        snapshot = await session.wait_until_settled()

        assert snapshot.is_complete
        assert manager.active_count == 1

    @pytest.mark.asyncio
    async def test_unknown_session(self, instant_preview_config):
        """Test unknown ids raise PreviewSessionNotFoundError."""
        manager = PreviewManager(instant_preview_config)

        with pytest.raises(PreviewSessionNotFoundError):
            await manager.get_session("missing")
        with pytest.raises(PreviewSessionNotFoundError):
            await manager.submit_answer("missing", "hi")
        with pytest.raises(PreviewSessionNotFoundError):
            await manager.close_preview("missing")

    @pytest.mark.asyncio
    async def test_restart_preview(self, linear_blocks, instant_preview_config):
        """Test restart through the manager bumps the generation."""
        manager = PreviewManager(instant_preview_config)
        session = await manager.start_preview(linear_blocks)
        await session.wait_until_settled()

        restarted = await manager.restart_preview(session.id)
        await restarted.wait_until_settled()

        assert restarted is session
        assert session.generation == 1

    @pytest.mark.asyncio
    async def test_close_preview(self, linear_blocks, instant_preview_config):
        """Test closed sessions are forgotten."""
        manager = PreviewManager(instant_preview_config)
        session = await manager.start_preview(linear_blocks)

        await manager.close_preview(session.id)

        assert session.closed
        with pytest.raises(PreviewSessionNotFoundError):
            await manager.get_session(session.id)

    @pytest.mark.asyncio
    async def test_session_limit(self, linear_blocks):
        """Test the configured session limit is enforced."""
        manager = PreviewManager(PreviewConfig(start_delay_ms=0, step_delay_ms=0, max_sessions=1))
        await manager.start_preview(linear_blocks)

        with pytest.raises(PreviewLimitError):
            await manager.start_preview(linear_blocks)

        await manager.close_all()
        assert manager.active_count == 0
