"""
Unit Tests for the Block Editor

Tests for applying assistant tool calls to a bot.
"""

from flow_builder.canvas.editor import BlockEditor
from flow_builder.canvas.levels import assign_levels
from flow_builder.config import BlockStatus, BlockType, NoticeKind, NoticeVariant
from flow_builder.models import AddBlockCall, RemoveBlockCall


def ids(bot):
    return [b.id for b in bot.blocks]


def count(bot, block_type):
    return sum(1 for b in bot.blocks if b.type == block_type)


class TestAddBlock:
    """Tests for add_block."""

    def test_inserts_before_end(self, empty_bot):
        """Test a new block goes between start and end by default."""
        result = BlockEditor(empty_bot).add_block(BlockType.SEND_MESSAGE)

        new_id = result.added_block_ids[0]
        assert ids(empty_bot) == ["start", new_id, "end"]
        assert empty_bot.find_block(new_id).status == BlockStatus.PENDING
        assert result.notices[0].kind == NoticeKind.TOAST
        assert result.notices[0].message == "send-message block added ready for configuration."

    def test_rewires_connections(self, empty_bot):
        """Test start -> new -> end after inserting."""
        result = BlockEditor(empty_bot).add_block(BlockType.SEND_MESSAGE)
        new_id = result.added_block_ids[0]

        assert empty_bot.find_block("start").target_ids == [new_id]
        assert empty_bot.find_block(new_id).target_ids == ["end"]
        assert set(assign_levels(empty_bot.blocks)) == {"start", new_id, "end"}

    def test_suggested_config_is_ready(self, empty_bot):
        """Test a block added with suggested values is ready."""
        result = BlockEditor(empty_bot).add_block(
            BlockType.ASK_QUESTION,
            config={"question": "Email?", "variableName": "email"},
        )

        block = empty_bot.find_block(result.added_block_ids[0])
        assert block.status == BlockStatus.READY
        assert block.config["variableName"] == "email"
        assert "with suggested values" in result.notices[0].message

    def test_after_directive(self, lead_bot):
        """Test after_block_id places the block right after the target."""
        result = BlockEditor(lead_bot).add_block(
            BlockType.ASK_QUESTION,
            config={"question": "Phone?", "variableName": "phone"},
            after_block_id="q2",
        )
        new_id = result.added_block_ids[0]

        assert ids(lead_bot).index(new_id) == ids(lead_bot).index("q2") + 1
        assert lead_bot.find_block("q2").target_ids == [new_id]
        assert lead_bot.find_block(new_id).target_ids == ["q3"]

    def test_after_directive_at_branch_end(self, lead_bot):
        """Test inserting after a branch tail splices into that branch's own edge."""
        result = BlockEditor(lead_bot).add_block(
            BlockType.SEND_MESSAGE,
            config={"message": "hi"},
            after_block_id="msg_qualified",
        )
        new_id = result.added_block_ids[0]

        assert lead_bot.find_block("msg_qualified").target_ids == [new_id]
        assert lead_bot.find_block(new_id).target_ids == ["end"]
        assert lead_bot.find_block("msg_nurture").target_ids == ["end"]
        assert new_id in assign_levels(lead_bot.blocks)

    def test_after_agent_keeps_other_outputs(self, lead_bot):
        """Test inserting after an agent only takes over its first output."""
        result = BlockEditor(lead_bot).add_block(BlockType.SEND_MESSAGE, after_block_id="agent1")
        new_id = result.added_block_ids[0]

        assert lead_bot.find_block("agent1").target_ids == [new_id, "msg_nurture"]
        assert lead_bot.find_block(new_id).target_ids == ["hubspot1"]

    def test_before_directive(self, lead_bot):
        """Test before_block_id places the block right before the target."""
        result = BlockEditor(lead_bot).add_block(BlockType.SEND_MESSAGE, before_block_id="q1")
        new_id = result.added_block_ids[0]

        assert ids(lead_bot).index(new_id) == ids(lead_bot).index("q1") - 1
        assert lead_bot.find_block("msg1").target_ids == [new_id]

    def test_unknown_directive_falls_back_to_before_end(self, empty_bot):
        """Test an unresolvable position inserts before end."""
        result = BlockEditor(empty_bot).add_block(BlockType.SEND_MESSAGE, after_block_id="missing")

        assert ids(empty_bot)[1] == result.added_block_ids[0]

    def test_after_end_is_ignored(self, empty_bot):
        """Test nothing can be placed after the end block."""
        BlockEditor(empty_bot).add_block(BlockType.SEND_MESSAGE, after_block_id="end")

        assert ids(empty_bot)[-1] == "end"

    def test_before_start_is_ignored(self, empty_bot):
        """Test nothing can be placed before the start block."""
        BlockEditor(empty_bot).add_block(BlockType.SEND_MESSAGE, before_block_id="start")

        assert ids(empty_bot)[0] == "start"

    def test_rejects_singletons(self, empty_bot):
        """Test start and end cannot be added."""
        editor = BlockEditor(empty_bot)

        for block_type in (BlockType.START, BlockType.END):
            result = editor.add_block(block_type)

            assert result.rejected == 1
            assert result.notices[0].variant == NoticeVariant.DESTRUCTIVE
            assert result.notices[0].message == "Start and End blocks already exist in your bot."

        assert count(empty_bot, BlockType.START) == 1
        assert count(empty_bot, BlockType.END) == 1

    def test_layout_recomputed(self, empty_bot):
        """Test blocks are repositioned after an insert."""
        BlockEditor(empty_bot).add_block(BlockType.SEND_MESSAGE)

        positions = [(b.position["x"], b.position["y"]) for b in empty_bot.blocks]
        assert positions == [(100, 100), (500, 100), (500, 400)]

    def test_agent_insert_uses_first_output(self, empty_bot):
        """Test an inserted agent connects onward through its first output."""
        result = BlockEditor(empty_bot).add_block(
            BlockType.AI_AGENT,
            config={
                "agentName": "Qualifier",
                "agentPrompt": "Qualify",
                "outputs": [{"id": "ok", "label": "OK"}],
            },
        )
        agent = empty_bot.find_block(result.added_block_ids[0])

        assert agent.connections[0].source_output_id == "ok"
        assert agent.connections[0].label == "OK"


class TestUpdateBlock:
    """Tests for update_block."""

    def test_merges_config_and_recomputes_status(self, lead_bot):
        """Test connecting the integration makes it ready."""
        editor = BlockEditor(lead_bot)

        result = editor.update_block("hubspot1", {"connected": True})

        block = lead_bot.find_block("hubspot1")
        assert result.applied == 1
        assert block.config == {"provider": "hubspot", "connected": True}
        assert block.status == BlockStatus.READY

    def test_incomplete_config_is_pending(self, lead_bot):
        """Test blanking a required field makes the block pending."""
        BlockEditor(lead_bot).update_block("q1", {"question": "  "})

        assert lead_bot.find_block("q1").status == BlockStatus.PENDING

    def test_missing_block(self, lead_bot):
        """Test an unknown id produces a chat notice."""
        result = BlockEditor(lead_bot).update_block("nope", {"message": "x"})

        assert result.rejected == 1
        assert result.notices[0].kind == NoticeKind.CHAT
        assert result.notices[0].message == 'Block with ID "nope" not found.'

    def test_show_form(self, lead_bot):
        """Test show_form opens the block's form."""
        result = BlockEditor(lead_bot).update_block("hubspot1", {}, show_form=True)

        assert lead_bot.view_state.active_form_block_id == "hubspot1"
        assert any("HubSpot block on the canvas" in n.message for n in result.notices)

    def test_submit_form_hides_form(self, lead_bot):
        """Test a submitted form is closed and remembered as hidden."""
        editor = BlockEditor(lead_bot)
        editor.show_form("hubspot1")

        editor.submit_form("hubspot1", {"connected": True})

        assert lead_bot.view_state.active_form_block_id is None
        assert "hubspot1" in lead_bot.view_state.hidden_form_ids


class TestRemoveBlock:
    """Tests for remove_block."""

    def test_bridges_connections(self, linear_blocks, empty_bot):
        """Test predecessors are reconnected to the removed block's successor."""
        empty_bot.blocks = linear_blocks

        result = BlockEditor(empty_bot).remove_block("q_name")

        assert result.removed_block_ids == ["q_name"]
        assert "q_name" not in ids(empty_bot)
        assert empty_bot.find_block("welcome").target_ids == ["thanks"]
        assert result.notices[0].message == "Question block has been removed."

    def test_cannot_remove_singletons(self, empty_bot):
        """Test start and end are protected."""
        result = BlockEditor(empty_bot).remove_blocks(["start", "end"])

        assert result.rejected == 2
        assert ids(empty_bot) == ["start", "end"]
        assert result.notices[0].message == (
            "Cannot remove the start block. Start and End blocks are required for every bot."
        )
        assert result.notices[1].message.startswith("Cannot remove the end block.")

    def test_each_id_independent(self, lead_bot):
        """Test a missing id does not stop the others."""
        result = BlockEditor(lead_bot).remove_blocks(["missing", "q3"])

        assert result.applied == 1
        assert result.rejected == 1
        assert "q3" not in ids(lead_bot)
        assert lead_bot.find_block("q2").target_ids == ["q4"]

    def test_closes_open_form(self, lead_bot):
        """Test removing the block with the open form closes it."""
        editor = BlockEditor(lead_bot)
        editor.show_form("q1")

        editor.remove_block("q1")

        assert lead_bot.view_state.active_form_block_id is None

    def test_remove_branch_target(self, lead_bot):
        """Test removing a branch target keeps the agent connected onward."""
        BlockEditor(lead_bot).remove_block("msg_nurture")

        agent = lead_bot.find_block("agent1")
        assert [c.target_block_id for c in agent.connections] == ["hubspot1", "end"]


class TestToolCalls:
    """Tests for apply_tool_calls."""

    def test_raw_and_typed_calls(self, empty_bot):
        """Test raw dictionaries and models are both accepted."""
        result = BlockEditor(empty_bot).apply_tool_calls(
            [
                {"type": "add_block", "blockType": "send-message", "config": {"message": "Hi"}},
                AddBlockCall(block_type=BlockType.ASK_QUESTION),
            ]
        )

        assert result.applied == 2
        assert result.last_action_type == "add_block"
        assert len(empty_bot.blocks) == 4

    def test_malformed_call_is_rejected(self, empty_bot):
        """Test invalid tool calls are counted and skipped."""
        result = BlockEditor(empty_bot).apply_tool_calls(
            [{"type": "add_block"}, {"type": "teleport"}]
        )

        assert result.rejected == 2
        assert ids(empty_bot) == ["start", "end"]

    def test_hubspot_alias(self, empty_bot):
        """Test the hubspot block type name maps to the integration block."""
        result = BlockEditor(empty_bot).apply_tool_calls(
            [{"type": "add_block", "blockType": "hubspot"}]
        )

        block = empty_bot.find_block(result.added_block_ids[0])
        assert block.type == BlockType.EXTERNAL_INTEGRATION

    def test_flow_complete_notice_once(self, lead_bot):
        """Test the flow complete notice appears only the first time."""
        editor = BlockEditor(lead_bot)

        first = editor.apply_tool_calls(
            [{"type": "update_block", "blockId": "hubspot1", "config": {"connected": True}}]
        )
        second = editor.apply_tool_calls(
            [{"type": "update_block", "blockId": "q1", "config": {"question": "Name?"}}]
        )

        assert any(n.title == "Flow complete" for n in first.notices)
        assert not any(n.title == "Flow complete" for n in second.notices)

    def test_show_form_call(self, lead_bot):
        """Test show_form opens the form with a chat notice."""
        result = BlockEditor(lead_bot).apply_tool_calls(
            [{"type": "show_form", "blockId": "q1", "blockType": "ask-question"}]
        )

        assert lead_bot.view_state.active_form_block_id == "q1"
        assert result.notices[0].message == (
            "I've opened the configuration form for the Question block on the canvas. "
            "Please configure it there."
        )

    def test_singleton_invariant_over_batch(self, lead_bot):
        """Test no batch of edits changes the start/end count."""
        BlockEditor(lead_bot).apply_tool_calls(
            [
                {"type": "add_block", "blockType": "start"},
                {"type": "remove_block", "blockIds": ["end", "msg1"]},
                RemoveBlockCall(block_ids=["start"]),
                {"type": "add_block", "blockType": "end"},
            ]
        )

        assert count(lead_bot, BlockType.START) == 1
        assert count(lead_bot, BlockType.END) == 1
        assert "msg1" not in ids(lead_bot)
