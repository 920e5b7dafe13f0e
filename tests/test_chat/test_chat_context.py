"""Tests for chat context building and transcript types."""

from narration_engine.chat import (
    ChatMessage,
    ChatRequest,
    ChatRole,
    ToolCallRecord,
    ToolCallStatus,
    build_simulation_context,
)
from narration_engine.timeline import MatchContext, RoundContext
from tests.factories import make_snapshot, make_snapshots


class TestBuildSimulationContext:
    """Tests for build_simulation_context."""

    def test_bounded_excerpts(self):
        """Test snapshots and events are capped."""
        snapshots = make_snapshots(30)
        events = [{"type": "kill", "time_ms": i} for i in range(50)]
        context = RoundContext.from_snapshots(snapshots, map_name="bind")

        result = build_simulation_context(snapshots, context, events=events)

        assert len(result.snapshots) == 20
        assert len(result.events) == 30
        assert result.snapshots[1] == {"time_ms": 500, "phase": "combat"}

    def test_custom_limits(self):
        """Test limits can be tuned."""
        snapshots = make_snapshots(5)
        result = build_simulation_context(
            snapshots, RoundContext(), snapshot_limit=2, event_limit=0, events=[{"a": 1}]
        )
        assert len(result.snapshots) == 2
        assert result.events == []

    def test_spike_state_included(self):
        """Test spike_planted appears in excerpts when known."""
        snapshot = make_snapshot(time_ms=40000, phase="post_plant", spike_planted=True)
        result = build_simulation_context([snapshot], RoundContext())
        assert result.snapshots[0]["spike_planted"] is True

    def test_current_position_and_roster(self):
        """Test the active index, narration and roster are attached."""
        snapshots = make_snapshots(3)
        context = RoundContext.from_snapshots(
            snapshots,
            map_name="haven",
            attack_team="C9",
            defense_team="100T",
            match_context=MatchContext(teams=("C9", "100T"), tournament="Champions"),
        )

        result = build_simulation_context(
            snapshots,
            context,
            final_state={"winner": "attack"},
            current_index=2,
            current_narration="Spike down on C",
        )

        assert result.map_name == "haven"
        assert result.attack_team == "C9"
        assert result.current_moment_index == 2
        assert result.current_narration == "Spike down on C"
        assert result.final_state == {"winner": "attack"}
        assert [p["id"] for p in result.player_roster] == ["p1", "p2"]
        assert result.match_context["tournament"] == "Champions"

    def test_serializes_into_request(self):
        """Test the bundle nests inside a ChatRequest body."""
        result = build_simulation_context(make_snapshots(1), RoundContext(map_name="lotus"))
        body = ChatRequest(message="hi", simulation_context=result).model_dump(exclude_none=True)
        assert body["simulation_context"]["map_name"] == "lotus"
        assert "match_context" not in body["simulation_context"]


class TestChatMessage:
    """Tests for ChatMessage."""

    def test_user_message(self):
        """Test user messages are not streaming."""
        message = ChatMessage.user("hello")
        assert message.role is ChatRole.USER
        assert message.streaming is False

    def test_placeholder(self):
        """Test assistant placeholders start empty and streaming."""
        message = ChatMessage.assistant_placeholder()
        assert message.role is ChatRole.ASSISTANT
        assert message.content == ""
        assert message.streaming is True

    def test_ids_are_unique(self):
        """Test each message gets its own id."""
        assert ChatMessage.user("a").id != ChatMessage.user("a").id

    def test_rendered_tool_calls_last_status_wins(self):
        """Test rendering keeps first-seen order with the latest status."""
        message = ChatMessage.assistant_placeholder()
        message.tool_calls = [
            ToolCallRecord("a", ToolCallStatus.COMPLETE),
            ToolCallRecord("b"),
            ToolCallRecord("a"),
        ]
        rendered = message.rendered_tool_calls()
        assert [(c.name, c.status) for c in rendered] == [
            ("a", ToolCallStatus.PENDING),
            ("b", ToolCallStatus.PENDING),
        ]

    def test_copy_is_detached(self):
        """Test copies do not share tool call records."""
        message = ChatMessage.assistant_placeholder()
        message.tool_calls.append(ToolCallRecord("a"))
        copy = message.copy()
        copy.tool_calls[0].status = ToolCallStatus.COMPLETE
        assert message.tool_calls[0].status is ToolCallStatus.PENDING
        assert copy.id == message.id
