"""Tests for delegation marker extraction."""

from __future__ import annotations

from conductor.core.teams.delegation import Delegation, IntentExtractor, MarkerDelegationExtractor


class TestMarkerDelegationExtractor:
    def setup_method(self) -> None:
        self.extractor = MarkerDelegationExtractor()

    def test_satisfies_protocol(self) -> None:
        assert isinstance(self.extractor, IntentExtractor)

    def test_single_marker(self) -> None:
        text = "Plan ready. [DELEGATE: researcher | find three sources on tides]"
        assert self.extractor.extract(text) == [Delegation(agent_id="researcher", task="find three sources on tides")]

    def test_multiple_markers(self) -> None:
        text = "[DELEGATE: a | first]\nthen\n[DELEGATE:b|second]"
        assert [(d.agent_id, d.task) for d in self.extractor.extract(text)] == [("a", "first"), ("b", "second")]

    def test_no_marker(self) -> None:
        assert self.extractor.extract("Nothing to hand off.") == []

    def test_malformed_markers_ignored(self) -> None:
        text = "[DELEGATE: missing-pipe] [DELEGATE:  | no agent] [DELEGATE: ok | fine]"
        assert self.extractor.extract(text) == [Delegation(agent_id="ok", task="fine")]
