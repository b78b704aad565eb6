"""
Unit Tests for Graph Level Assignment

Tests for level assignment, grouping and branch detection.
"""

from flow_builder.canvas.levels import (
    assign_levels,
    branch_levels,
    build_adjacency,
    find_start_id,
    group_by_level,
)


class TestAdjacency:
    """Tests for adjacency and start lookup."""

    def test_build_adjacency(self, branching_blocks):
        """Test targets are listed in connection order."""
        graph = build_adjacency(branching_blocks)

        assert graph == {"start": ["a", "b"], "a": ["end"], "b": ["end"], "end": []}

    def test_find_start_by_type(self, make_block, make_flow):
        """Test the start block is found by type before id."""
        blocks = make_flow(
            make_block("entry", "start", ["end"]),
            make_block("end", "end"),
        )

        assert find_start_id(blocks) == "entry"

    def test_find_start_missing(self, make_block, make_flow):
        """Test no start block yields None."""
        assert find_start_id(make_flow(make_block("end", "end"))) is None


class TestAssignLevels:
    """Tests for assign_levels."""

    def test_linear_chain(self, linear_blocks):
        """Test each block is one level below its predecessor."""
        levels = assign_levels(linear_blocks)

        assert levels == {"start": 0, "welcome": 1, "q_name": 2, "thanks": 3, "end": 4}

    def test_siblings_share_level(self, branching_blocks):
        """Test parallel branches land on the same level."""
        levels = assign_levels(branching_blocks)

        assert levels["a"] == levels["b"] == 1
        assert levels["end"] == 2

    def test_level_monotonic_over_connections(self, real_estate_blocks):
        """Test level(target) >= level(source) + 1 on a tree-like flow."""
        levels = assign_levels(real_estate_blocks)

        for block in real_estate_blocks:
            for target_id in block.target_ids:
                assert levels[target_id] >= levels[block.id] + 1

    def test_longer_path_raises_revisited_level(self, make_block, make_flow):
        """Test a revisited block takes the maximum level seen."""
        blocks = make_flow(
            make_block("start", "start", ["join", "a"]),
            make_block("a", "send-message", ["b"], config={"message": "a"}),
            make_block("b", "send-message", ["join"], config={"message": "b"}),
            make_block("join", "end"),
        )

        levels = assign_levels(blocks)

        assert levels["join"] == 3

    def test_diamond_does_not_repropagate(self, make_block, make_flow):
        """Test descendants of a revisited block keep their first-visit level."""
        blocks = make_flow(
            make_block("start", "start", ["a", "b"]),
            make_block("a", "send-message", ["c"], config={"message": "a"}),
            make_block("b", "send-message", ["x"], config={"message": "b"}),
            make_block("x", "send-message", ["c"], config={"message": "x"}),
            make_block("c", "send-message", ["d"], config={"message": "c"}),
            make_block("d", "end"),
        )

        levels = assign_levels(blocks)

        # c is raised through the longer path, d is not re-explored
        assert levels["c"] == 3
        assert levels["d"] == 3

    def test_unreachable_blocks_have_no_level(self, make_block, make_flow):
        """Test blocks not reachable from start are left out."""
        blocks = make_flow(
            make_block("start", "start", ["end"]),
            make_block("orphan", "send-message", ["end"], config={"message": "hi"}),
            make_block("end", "end"),
        )

        levels = assign_levels(blocks)

        assert "orphan" not in levels
        assert set(levels) == {"start", "end"}

    def test_dangling_target_is_ignored(self, make_block, make_flow):
        """Test a connection to a missing block gets no level."""
        blocks = make_flow(
            make_block("start", "start", ["ghost", "end"]),
            make_block("end", "end"),
        )

        levels = assign_levels(blocks)

        assert "ghost" not in levels
        assert levels["end"] == 1

    def test_cycle_terminates(self, make_block, make_flow):
        """Test a loop does not recurse forever."""
        blocks = make_flow(
            make_block("start", "start", ["a"]),
            make_block("a", "send-message", ["b"], config={"message": "a"}),
            make_block("b", "send-message", ["a", "end"], config={"message": "b"}),
            make_block("end", "end"),
        )

        levels = assign_levels(blocks)

        assert levels["a"] == 3
        assert levels["b"] == 2
        assert levels["end"] == 3

    def test_empty_and_startless(self, make_block, make_flow):
        """Test no start block yields an empty mapping."""
        assert assign_levels([]) == {}
        assert assign_levels(make_flow(make_block("end", "end"))) == {}


class TestGrouping:
    """Tests for level groups."""

    def test_group_keeps_visit_order(self, branching_blocks):
        """Test groups list blocks in first-visit order."""
        groups = group_by_level(assign_levels(branching_blocks))

        assert groups == {0: ["start"], 1: ["a", "b"], 2: ["end"]}

    def test_branch_levels(self, real_estate_blocks):
        """Test the agent's two outputs form the only branch level."""
        groups = group_by_level(assign_levels(real_estate_blocks))

        assert branch_levels(groups) == [7]
        assert groups[7] == ["hubspot1", "msg_nurture"]
