"""
Bot Templates.

Starting block lists for new bots.
"""

from typing import Any, Callable, Dict, List

from .exceptions import TemplateNotFoundError
from .models import Block, blocks_from_dicts


REAL_ESTATE_USE_CASE = (
    "I want a lead generation AI Agent for my real estate company (XYZ Real Estate). "
    "It should capture essential details about the property clients are looking for, "
    "such as name, email, budget and property type. Once all information is collected, "
    "the AI Agent should send the data to HubSpot (to create or update a contact with "
    "all captured fields)."
)


def _link(source: str, target: str, conn_id: str, **extra: Any) -> Dict[str, Any]:
    return {"id": conn_id, "sourceBlockId": source, "targetBlockId": target, **extra}


def _empty_blocks() -> List[Dict[str, Any]]:
    return [
        {
            "id": "start",
            "type": "start",
            "status": "ready",
            "connections": [_link("start", "end", "c1")],
        },
        {"id": "end", "type": "end", "status": "ready"},
    ]


def _real_estate_blocks() -> List[Dict[str, Any]]:
    questions = [
        ("q1", "May I have your full name?", "name"),
        ("q2", "What is your email address?", "email"),
        ("q3", "What is your budget range?", "budget"),
        ("q4", "What type of property are you looking for?", "property_type"),
    ]
    chain = ["msg1"] + [q[0] for q in questions] + ["agent1"]

    blocks: List[Dict[str, Any]] = [
        {
            "id": "start",
            "type": "start",
            "status": "ready",
            "connections": [_link("start", "msg1", "c1")],
        },
        {
            "id": "msg1",
            "type": "send-message",
            "status": "ready",
            "config": {
                "message": (
                    "Hello! Welcome to XYZ Real Estate. I'm here to help you find your "
                    "perfect property. Let me gather some information to match you with "
                    "the best options."
                ),
            },
            "connections": [_link("msg1", "q1", "c2")],
        },
    ]

    for index, (block_id, question, variable) in enumerate(questions):
        target = chain[chain.index(block_id) + 1]
        blocks.append(
            {
                "id": block_id,
                "type": "ask-question",
                "status": "ready",
                "config": {"question": question, "variableName": variable},
                "connections": [_link(block_id, target, f"c{index + 3}")],
            }
        )

    blocks.extend(
        [
            {
                "id": "agent1",
                "type": "ai-agent",
                "status": "ready",
                "config": {
                    "agentName": "Lead Qualifier",
                    "agentPrompt": (
                        "Analyze if this lead is qualified for our real estate services "
                        "based on their budget and property preferences. Consider them "
                        "qualified if they have a realistic budget (>$100k) and clear "
                        "property needs."
                    ),
                    "outputs": [
                        {"id": "qualified", "label": "Qualified"},
                        {"id": "not_qualified", "label": "Not Qualified"},
                    ],
                },
                "connections": [
                    _link("agent1", "hubspot1", "c8a", sourceOutputId="qualified", label="Qualified"),
                    _link(
                        "agent1",
                        "msg_nurture",
                        "c8b",
                        sourceOutputId="not_qualified",
                        label="Not Qualified",
                    ),
                ],
            },
            {
                "id": "hubspot1",
                "type": "external-integration",
                "status": "pending",
                "config": {"provider": "hubspot"},
                "connections": [_link("hubspot1", "msg_qualified", "c9")],
            },
            {
                "id": "msg_qualified",
                "type": "send-message",
                "status": "ready",
                "config": {
                    "message": (
                        "Perfect! Your information has been sent to our team at XYZ Real "
                        "Estate. One of our agents will contact you within 24 hours with "
                        "property options that match your criteria."
                    ),
                },
                "connections": [_link("msg_qualified", "end", "c10")],
            },
            {
                "id": "msg_nurture",
                "type": "send-message",
                "status": "ready",
                "config": {
                    "message": (
                        "Thank you for your interest in XYZ Real Estate! While we don't have "
                        "properties matching your current criteria, we'd love to stay in "
                        "touch. Our team will add you to our newsletter for future "
                        "opportunities that may fit your needs."
                    ),
                },
                "connections": [_link("msg_nurture", "end", "c11")],
            },
            {"id": "end", "type": "end", "status": "ready"},
        ]
    )
    return blocks


TEMPLATES: Dict[str, Dict[str, Any]] = {
    "empty": {
        "id": "empty",
        "name": "Empty bot",
        "description": "Start and End blocks only",
        "category": "blank",
    },
    "real-estate-lead-generation": {
        "id": "real-estate-lead-generation",
        "name": "Real Estate Lead Generation",
        "description": "Capture name, email, budget and property type, qualify the lead and hand it to the CRM",
        "category": "sales",
        "use_case": REAL_ESTATE_USE_CASE,
    },
}

_BUILDERS: Dict[str, Callable[[], List[Dict[str, Any]]]] = {
    "empty": _empty_blocks,
    "real-estate-lead-generation": _real_estate_blocks,
}


def list_templates() -> List[Dict[str, Any]]:
    """Template metadata, without blocks."""
    return list(TEMPLATES.values())


def build_template(template_id: str) -> List[Block]:
    """Fresh, laid out block list for a template."""
    builder = _BUILDERS.get(template_id)
    if builder is None:
        raise TemplateNotFoundError(template_id)
    from .canvas.layout import compute_layout

    return compute_layout(blocks_from_dicts(builder()))
