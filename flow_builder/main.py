"""
Flow Builder Service.

Backend for the visual chatbot flow builder.

API Endpoints:
- Layout: Auto-layout for arbitrary block lists
- Bots: Create bots and apply assistant tool calls to them
- Blocks: Available block types
- Templates: Starting flows
- Previews: Simulated conversations over a bot's blocks
"""

import asyncio
import time
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

import structlog
from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .blocks import get_block_registry
from .canvas import CanvasManager, describe_layout, compute_layout
from .config import get_settings
from .exceptions import (
    BotNotFoundError,
    PreviewLimitError,
    PreviewSessionNotFoundError,
    TemplateNotFoundError,
)
from .logging_config import configure_logging
from .models import (
    AnswerRequest,
    ApplyActionsRequest,
    ApplyActionsResponse,
    BlockConfigRequest,
    CreateBotRequest,
    LayoutRequest,
    LayoutResponse,
    PreviewResponse,
    StartPreviewRequest,
    ValidateBotResponse,
    blocks_from_dicts,
    blocks_to_dicts,
)
from .preview import PreviewManager, PreviewSession
from .suggestions import generate_contextual_suggestions, get_empty_state_suggestions
from .templates import build_template, list_templates

logger = structlog.get_logger()

settings = get_settings()

# Service metadata
SERVICE_NAME = settings.service_name
SERVICE_VERSION = __version__
START_TIME = time.time()

# Global instances
canvas_manager = CanvasManager()
preview_manager = PreviewManager(settings.preview)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    configure_logging()
    logger.info("service_starting", service=SERVICE_NAME, version=SERVICE_VERSION)

    yield

    logger.info("service_stopping", service=SERVICE_NAME)
    await preview_manager.close_all()


# Create FastAPI app
app = FastAPI(
    title="Flow Builder Service",
    description="Visual chatbot flow builder with auto-layout and conversation preview",
    version=SERVICE_VERSION,
    lifespan=lifespan,
    docs_url="/docs" if settings.enable_docs else None,
    redoc_url="/redoc" if settings.enable_docs else None,
)

cors_origins = (
    [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
    if settings.cors_origins
    else ["http://localhost:3000", "http://localhost:3001", "http://127.0.0.1:3000"]
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
)


def _parse_blocks(items: List[Dict[str, Any]], lenient: bool = False):
    try:
        return blocks_from_dicts(items, lenient=lenient)
    except (KeyError, ValueError, TypeError, AttributeError) as e:
        raise HTTPException(status_code=400, detail=f"Invalid block list: {e}")


def _preview_response(session: PreviewSession, accepted: Optional[bool] = None) -> Dict[str, Any]:
    return {
        "session_id": session.id,
        **session.snapshot().to_dict(),
        "accepted": accepted,
    }


# =============================================================================
# Health & Info
# =============================================================================


@app.get("/health")
async def health_check() -> Dict[str, Any]:
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "uptime_seconds": time.time() - START_TIME,
    }


@app.get("/info")
async def get_info() -> Dict[str, Any]:
    """Get service information."""
    registry = get_block_registry()
    return {
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "block_types": len(registry.list_all()),
        "templates": len(list_templates()),
        "active_previews": preview_manager.active_count,
    }


# =============================================================================
# Layout API
# =============================================================================


@app.post("/layout", response_model=LayoutResponse)
async def layout_blocks(request: LayoutRequest) -> Dict[str, Any]:
    """Position a block list and report its levels."""
    blocks = _parse_blocks(request.blocks)
    plan = describe_layout(blocks)

    return {
        "blocks": blocks_to_dicts(compute_layout(blocks, settings.layout)),
        "levels": plan.levels,
        "branch_levels": plan.branch_levels,
    }


# =============================================================================
# Bots API
# =============================================================================


@app.post("/bots")
async def create_bot(request: CreateBotRequest) -> Dict[str, Any]:
    """Create a bot, empty or from a template."""
    try:
        bot = await canvas_manager.create_bot(name=request.name, template_id=request.template_id)
    except TemplateNotFoundError as e:
        raise HTTPException(status_code=400, detail=e.message)

    return bot.to_dict()


@app.get("/bots")
async def list_bots() -> Dict[str, Any]:
    """List bots."""
    bots = await canvas_manager.list_bots()
    return {"bots": [b.to_dict() for b in bots], "total": len(bots)}


@app.get("/bots/{bot_id}")
async def get_bot(bot_id: str) -> Dict[str, Any]:
    """Get a bot by ID."""
    try:
        bot = await canvas_manager.get_bot(bot_id)
    except BotNotFoundError:
        raise HTTPException(status_code=404, detail="Bot not found")

    return bot.to_dict()


@app.delete("/bots/{bot_id}")
async def delete_bot(bot_id: str) -> Dict[str, Any]:
    """Delete a bot."""
    try:
        await canvas_manager.delete_bot(bot_id)
    except BotNotFoundError:
        raise HTTPException(status_code=404, detail="Bot not found")

    return {"deleted": True, "bot_id": bot_id}


@app.post("/bots/{bot_id}/actions", response_model=ApplyActionsResponse)
async def apply_actions(bot_id: str, request: ApplyActionsRequest) -> Dict[str, Any]:
    """Apply assistant tool calls to a bot."""
    try:
        result = await canvas_manager.apply_actions(bot_id, request.actions)
        bot = await canvas_manager.get_bot(bot_id)
    except BotNotFoundError:
        raise HTTPException(status_code=404, detail="Bot not found")

    suggestions = generate_contextual_suggestions(bot.blocks, result.last_action_type)
    return {
        "bot": bot.to_dict(),
        "result": result.to_dict(),
        "suggestions": [s.to_dict() for s in suggestions],
    }


@app.post("/bots/{bot_id}/blocks/{block_id}/config")
async def submit_block_config(
    bot_id: str,
    block_id: str,
    request: BlockConfigRequest,
) -> Dict[str, Any]:
    """Submit a block's configuration form."""
    try:
        result = await canvas_manager.submit_form(bot_id, block_id, request.config)
        bot = await canvas_manager.get_bot(bot_id)
    except BotNotFoundError:
        raise HTTPException(status_code=404, detail="Bot not found")

    return {"bot": bot.to_dict(), "result": result.to_dict()}


@app.post("/bots/{bot_id}/validate", response_model=ValidateBotResponse)
async def validate_bot(bot_id: str) -> Dict[str, Any]:
    """Validate a bot's flow."""
    try:
        result = await canvas_manager.validate_bot(bot_id)
    except BotNotFoundError:
        raise HTTPException(status_code=404, detail="Bot not found")

    return {
        "valid": result.valid,
        "errors": [i.to_dict() for i in result.errors],
        "warnings": [i.to_dict() for i in result.warnings],
        "infos": [i.to_dict() for i in result.infos],
    }


@app.get("/bots/{bot_id}/suggestions")
async def get_suggestions(bot_id: str) -> Dict[str, Any]:
    """Follow-up prompts for the bot's current state."""
    try:
        bot = await canvas_manager.get_bot(bot_id)
    except BotNotFoundError:
        raise HTTPException(status_code=404, detail="Bot not found")

    # Only start and end on the canvas
    if len(bot.blocks) <= 2:
        suggestions = get_empty_state_suggestions()
    else:
        suggestions = generate_contextual_suggestions(bot.blocks)

    return {"suggestions": [s.to_dict() for s in suggestions]}


# =============================================================================
# Blocks & Templates API
# =============================================================================


@app.get("/blocks/types")
async def list_block_types(creatable: bool = False) -> Dict[str, Any]:
    """List available block types."""
    registry = get_block_registry()
    definitions = registry.list_creatable() if creatable else registry.list_all()
    return {"blocks": [d.to_dict() for d in definitions]}


@app.get("/blocks/types/{block_type}")
async def get_block_type(block_type: str) -> Dict[str, Any]:
    """Get details for a specific block type."""
    block_def = get_block_registry().get_by_name(block_type)

    if not block_def:
        raise HTTPException(status_code=404, detail="Block type not found")

    return block_def.to_dict()


@app.get("/templates")
async def get_templates(category: Optional[str] = None) -> Dict[str, Any]:
    """List available bot templates."""
    templates = list_templates()

    if category:
        templates = [t for t in templates if t["category"] == category]

    return {"templates": templates}


@app.get("/templates/{template_id}")
async def get_template(template_id: str) -> Dict[str, Any]:
    """Get a template with its laid out blocks."""
    template = next((t for t in list_templates() if t["id"] == template_id), None)

    if not template:
        raise HTTPException(status_code=404, detail="Template not found")

    return {**template, "blocks": blocks_to_dicts(build_template(template_id))}


# =============================================================================
# Previews API
# =============================================================================


@app.post("/previews", response_model=PreviewResponse)
async def start_preview(request: StartPreviewRequest) -> Dict[str, Any]:
    """Start a preview from a stored bot or an explicit block list."""
    if request.bot_id:
        try:
            bot = await canvas_manager.get_bot(request.bot_id)
        except BotNotFoundError:
            raise HTTPException(status_code=404, detail="Bot not found")
        blocks = bot.blocks
    elif request.blocks is not None:
        blocks = _parse_blocks(request.blocks, lenient=True)
    else:
        raise HTTPException(status_code=400, detail="Either bot_id or blocks is required")

    try:
        session = await preview_manager.start_preview(blocks)
    except PreviewLimitError as e:
        raise HTTPException(status_code=429, detail=e.message)

    await session.wait_until_settled()
    return _preview_response(session)


@app.get("/previews/{session_id}", response_model=PreviewResponse)
async def get_preview(session_id: str) -> Dict[str, Any]:
    """Get the current preview state."""
    try:
        session = await preview_manager.get_session(session_id)
    except PreviewSessionNotFoundError:
        raise HTTPException(status_code=404, detail="Preview not found")

    return _preview_response(session)


@app.post("/previews/{session_id}/answer", response_model=PreviewResponse)
async def answer_preview(session_id: str, request: AnswerRequest) -> Dict[str, Any]:
    """Answer the pending question."""
    try:
        session = await preview_manager.get_session(session_id)
        accepted = await preview_manager.submit_answer(session_id, request.text)
    except PreviewSessionNotFoundError:
        raise HTTPException(status_code=404, detail="Preview not found")

    await session.wait_until_settled()
    return _preview_response(session, accepted=accepted)


@app.post("/previews/{session_id}/restart", response_model=PreviewResponse)
async def restart_preview(session_id: str) -> Dict[str, Any]:
    """Restart the preview from the first block."""
    try:
        session = await preview_manager.restart_preview(session_id)
    except PreviewSessionNotFoundError:
        raise HTTPException(status_code=404, detail="Preview not found")

    await session.wait_until_settled()
    return _preview_response(session)


@app.delete("/previews/{session_id}")
async def close_preview(session_id: str) -> Dict[str, Any]:
    """Close a preview."""
    try:
        await preview_manager.close_preview(session_id)
    except PreviewSessionNotFoundError:
        raise HTTPException(status_code=404, detail="Preview not found")

    return {"closed": True, "session_id": session_id}


# =============================================================================
# WebSocket for Live Previews
# =============================================================================


@app.websocket("/ws/previews/{session_id}")
async def websocket_preview(websocket: WebSocket, session_id: str):
    """
    WebSocket for a live preview.

    Protocol:
    - Server sends the current snapshot, then {"type": "entry", ...} for
      every new transcript entry
    - Client sends: {"action": "answer", "text": "..."} or {"action": "restart"}
    """
    await websocket.accept()

    try:
        session = await preview_manager.get_session(session_id)
    except PreviewSessionNotFoundError:
        await websocket.send_json({"type": "error", "detail": "Preview not found"})
        await websocket.close(code=4404)
        return

    queue: asyncio.Queue = asyncio.Queue()
    unsubscribe = session.subscribe(queue.put_nowait)

    async def forward_entries() -> None:
        while True:
            entry = await queue.get()
            await websocket.send_json({"type": "entry", "entry": entry.to_dict()})

    await websocket.send_json({"type": "snapshot", **_preview_response(session)})
    sender = asyncio.create_task(forward_entries())

    logger.info("preview_websocket_connected", session_id=session_id)

    try:
        while True:
            data = await websocket.receive_json()
            action = data.get("action")

            if action == "answer":
                accepted = session.submit_answer(str(data.get("text", "")))
                await websocket.send_json({"type": "answer", "accepted": accepted})
            elif action == "restart":
                await session.restart()
                await websocket.send_json({"type": "restarted", "generation": session.generation})
            else:
                await websocket.send_json({"type": "error", "detail": f"Unknown action: {action}"})

    except WebSocketDisconnect:
        logger.info("preview_websocket_disconnected", session_id=session_id)

    finally:
        unsubscribe()
        sender.cancel()
        try:
            await sender
        except asyncio.CancelledError:
            pass


# =============================================================================
# Main
# =============================================================================


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "flow_builder.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
