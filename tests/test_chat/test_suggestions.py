"""Tests for suggested chat prompts."""

from narration_engine.chat import suggest_prompts
from narration_engine.timeline import NameResolver, RoundContext
from tests.factories import make_player, make_snapshot


def _context() -> RoundContext:
    return RoundContext(map_name="split", attack_team="Cloud9", defense_team="Sentinels")


class TestSuggestPrompts:
    """Tests for suggest_prompts."""

    def test_what_if_for_dead_players(self):
        """Test dead players get what-if prompts with resolved names."""
        snapshot = make_snapshot(
            players=[
                make_player("p1", "attack", is_alive=False),
                make_player("p2", "defense", is_alive=True),
            ]
        )
        prompts = suggest_prompts(snapshot, _context(), resolver=NameResolver({"p1": "TenZ"}))

        assert prompts[0].kind == "what_if"
        assert prompts[0].label == "What if TenZ survived?"
        assert "TenZ" in prompts[0].text

    def test_at_most_three_what_ifs(self):
        """Test what-if prompts are capped at three."""
        snapshot = make_snapshot(
            players=[make_player(f"p{i}", "defense", is_alive=False) for i in range(5)]
        )
        prompts = suggest_prompts(snapshot, _context())
        assert [p.kind for p in prompts].count("what_if") == 3

    def test_attack_wins_when_attacker_alive(self):
        """Test the outcome prompt names attack when an attacker survives."""
        snapshot = make_snapshot(
            players=[make_player("p1", "attack"), make_player("p2", "defense", is_alive=False)]
        )
        outcome = [p for p in suggest_prompts(snapshot, _context()) if p.kind == "outcome"][0]
        assert outcome.label == "Why did attack win?"

    def test_spike_plant_counts_as_attack_win(self):
        """Test a planted spike means attack even with no attackers alive."""
        snapshot = make_snapshot(players=[make_player("p1", "attack", is_alive=False)])
        prompts = suggest_prompts(snapshot, _context(), final_state={"spike_planted": True})
        outcome = [p for p in prompts if p.kind == "outcome"][0]
        assert "attack" in outcome.label

    def test_defense_wins(self):
        """Test defense wins when every attacker is dead and no spike is down."""
        snapshot = make_snapshot(players=[make_player("p1", "attack", is_alive=False)])
        outcome = [p for p in suggest_prompts(snapshot, _context()) if p.kind == "outcome"][0]
        assert outcome.label == "Why did defense win?"

    def test_tendencies_prompt(self):
        """Test the last prompt asks about the defending team on this map."""
        prompts = suggest_prompts(make_snapshot(), _context())
        assert prompts[-1].kind == "tendencies"
        assert prompts[-1].label == "Sentinels tendencies"
        assert "split" in prompts[-1].text

    def test_no_snapshot(self):
        """Test an empty round still offers outcome and tendencies."""
        prompts = suggest_prompts(None, RoundContext(map_name="", defense_team=""))
        assert [p.kind for p in prompts] == ["outcome", "tendencies"]
        assert prompts[0].label == "Why did defense win?"
        assert "the opponent" in prompts[1].text
        assert "this map" in prompts[1].text
