"""Shared pytest fixtures for testing."""

import os
from typing import Any, Dict, Iterable, List, Optional

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

# Set test environment before the settings are first read
os.environ["PREVIEW_START_DELAY_MS"] = "0"
os.environ["PREVIEW_STEP_DELAY_MS"] = "0"
os.environ["LOG_JSON"] = "false"

from flow_builder.config import PreviewConfig  # noqa: E402
from flow_builder.models import Block, Bot, blocks_from_dicts  # noqa: E402
from flow_builder.templates import build_template  # noqa: E402


def block_dict(
    block_id: str,
    block_type: str,
    targets: Iterable[Any] = (),
    status: str = "ready",
    config: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Build a block in wire format.

    ``targets`` holds target ids, or ``(target_id, output_id)`` pairs for
    agent outputs.
    """
    connections = []
    for n, target in enumerate(targets):
        output_id = None
        if isinstance(target, tuple):
            target, output_id = target
        conn = {"id": f"{block_id}-c{n}", "sourceBlockId": block_id, "targetBlockId": target}
        if output_id:
            conn["sourceOutputId"] = output_id
        connections.append(conn)

    return {
        "id": block_id,
        "type": block_type,
        "status": status,
        "config": config or {},
        "connections": connections,
    }


def make_blocks(*items: Dict[str, Any]) -> List[Block]:
    return blocks_from_dicts(list(items))


# =============================================================================
# Flow Fixtures
# =============================================================================


@pytest.fixture
def make_block():
    """Factory for wire format blocks."""
    return block_dict


@pytest.fixture
def make_flow():
    """Factory turning wire format blocks into a block list."""
    return make_blocks


@pytest.fixture
def linear_blocks() -> List[Block]:
    """start -> welcome -> name question -> thanks -> end."""
    return make_blocks(
        block_dict("start", "start", ["welcome"]),
        block_dict("welcome", "send-message", ["q_name"], config={"message": "Welcome!"}),
        block_dict(
            "q_name",
            "ask-question",
            ["thanks"],
            config={"question": "What is your name?", "variableName": "name"},
        ),
        block_dict("thanks", "send-message", ["end"], config={"message": "Thanks, {name}!"}),
        block_dict("end", "end"),
    )


@pytest.fixture
def branching_blocks() -> List[Block]:
    """start fans out to two messages that both lead to end."""
    return make_blocks(
        block_dict("start", "start", ["a", "b"]),
        block_dict("a", "send-message", ["end"], config={"message": "A"}),
        block_dict("b", "send-message", ["end"], config={"message": "B"}),
        block_dict("end", "end"),
    )


@pytest.fixture
def real_estate_blocks() -> List[Block]:
    """Lead generation template blocks."""
    return build_template("real-estate-lead-generation")


@pytest.fixture
def empty_bot() -> Bot:
    """Bot with only start and end."""
    return Bot(id="bot-1", name="Test bot", blocks=build_template("empty"))


@pytest.fixture
def lead_bot() -> Bot:
    """Bot built from the lead generation template."""
    return Bot(
        id="bot-2",
        name="Lead bot",
        blocks=build_template("real-estate-lead-generation"),
        template_id="real-estate-lead-generation",
    )


@pytest.fixture
def instant_preview_config() -> PreviewConfig:
    """Preview config without display delays."""
    return PreviewConfig(start_delay_ms=0, step_delay_ms=0)


# =============================================================================
# API Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def async_client():
    """HTTP client against the ASGI app."""
    from flow_builder.main import app

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
