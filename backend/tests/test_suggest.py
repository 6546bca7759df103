"""
Tests for suggest.py - parsing Claude's answer and wrapping API failures.
Uses a stub client instead of the real Anthropic API.
"""
import asyncio
import pytest
import sys
import os
from types import SimpleNamespace

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import anthropic
import httpx

import config
from suggest import SuggestionError, TimelineSuggester, parse_suggestion, strip_code_fence

ANSWER = '{"suggested_timeline": "9:00 AM - 10:30 AM", "estimated_duration": "1 hour 30 minutes", "reasoning": "Deep work early."}'


class StubMessages:
    def __init__(self, text=None, error=None):
        self.text = text
        self.error = error
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return SimpleNamespace(content=[SimpleNamespace(type="text", text=self.text)])


class StubClient:
    def __init__(self, text=None, error=None):
        self.messages = StubMessages(text, error)


class TestParseSuggestion:
    """Tests for turning model text into a TimelineSuggestion."""

    def test_plain_json(self):
        result = parse_suggestion(ANSWER)
        assert result.suggested_timeline == "9:00 AM - 10:30 AM"
        assert result.estimated_duration == "1 hour 30 minutes"
        assert result.reasoning == "Deep work early."

    def test_fenced_json(self):
        result = parse_suggestion(f"```json\n{ANSWER}\n```")
        assert result.estimated_duration == "1 hour 30 minutes"

    def test_strip_code_fence_leaves_plain_text(self):
        assert strip_code_fence("  {}  ") == "{}"

    @pytest.mark.parametrize("text", [
        "Sure! Here is your plan.",
        "[1, 2, 3]",
        '{"suggested_timeline": "9-10"}',
    ])
    def test_garbage_raises(self, text):
        with pytest.raises(SuggestionError):
            parse_suggestion(text)


class TestTimelineSuggester:
    """Tests for the Claude call wrapper."""

    def test_sends_prompt_and_parses(self):
        client = StubClient(text=ANSWER)
        suggester = TimelineSuggester(client=client, model="test-model", max_tokens=100)

        result = asyncio.run(suggester.suggest("Write report. Details: Q4.", "User is planning tasks."))

        assert result.reasoning == "Deep work early."
        call = client.messages.calls[0]
        assert call["model"] == "test-model"
        assert call["max_tokens"] == 100
        assert "Today's date is:" in call["system"]
        assert "Task Description: Write report. Details: Q4." in call["messages"][0]["content"]
        assert "User History: User is planning tasks." in call["messages"][0]["content"]

    def test_api_error_raises_suggestion_error(self):
        request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
        client = StubClient(error=anthropic.APIConnectionError(request=request))
        suggester = TimelineSuggester(client=client)

        with pytest.raises(SuggestionError):
            asyncio.run(suggester.suggest("task", "history"))

    def test_empty_answer_raises(self):
        suggester = TimelineSuggester(client=StubClient(text="   "))
        with pytest.raises(SuggestionError):
            asyncio.run(suggester.suggest("task", "history"))

    def test_missing_api_key(self, monkeypatch):
        monkeypatch.setattr(config, "ANTHROPIC_API_KEY", "your-api-key-here")
        suggester = TimelineSuggester()

        assert suggester.client is None
        with pytest.raises(SuggestionError, match="API key not configured"):
            asyncio.run(suggester.suggest("task", "history"))
