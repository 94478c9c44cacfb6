"""
Tests for match preview generation.
"""
from types import SimpleNamespace

from pitchside.analysis import (
    ClaudeAnalysisGenerator,
    NullAnalysisGenerator,
    get_analysis_generator,
)
from tests.fakes import make_match


class StubMessages:
    def __init__(self, text):
        self.text = text
        self.prompts = []

    def create(self, model, max_tokens, messages):
        self.prompts.append(messages[0]["content"])
        return SimpleNamespace(content=[SimpleNamespace(text=self.text)])


def test_claude_generator_returns_stripped_text():
    messages = StubMessages("  <p>Title race on the line.</p>\n")
    generator = ClaudeAnalysisGenerator(api_key="test", client=SimpleNamespace(messages=messages))

    text = generator.generate(make_match(1, "Arsenal FC", "Chelsea FC"))

    assert text == "<p>Title race on the line.</p>"
    assert "Arsenal FC vs Chelsea FC" in messages.prompts[0]
    assert "Premier League" in messages.prompts[0]


def test_no_key_means_null_generator(monkeypatch):
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
    generator = get_analysis_generator()
    assert isinstance(generator, NullAnalysisGenerator)
    assert generator.is_available is False
    assert generator.generate(make_match(1, "A", "B")) == ""
