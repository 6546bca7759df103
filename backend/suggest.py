import json
import logging
from datetime import datetime

import anthropic
from pydantic import ValidationError

import config
from models import TimelineSuggestion
from prompts import SUGGEST_TIMELINE_MESSAGE, SUGGEST_TIMELINE_PROMPT

logger = logging.getLogger(__name__)


class SuggestionError(Exception):
    """The suggestion service could not produce a usable answer."""


def strip_code_fence(text: str) -> str:
    """Remove a surrounding ```json ... ``` block if the model added one."""
    text = text.strip()
    if text.startswith("```"):
        lines = text.split("\n")
        lines = lines[1:]  # Remove first line (```json)
        if lines and lines[-1].strip() == "```":
            lines = lines[:-1]  # Remove last line (```)
        text = "\n".join(lines)
    return text


def parse_suggestion(text: str) -> TimelineSuggestion:
    """Parse the model's JSON answer into a TimelineSuggestion."""
    try:
        parsed = json.loads(strip_code_fence(text))
    except json.JSONDecodeError as e:
        raise SuggestionError("Failed to parse AI response") from e
    if not isinstance(parsed, dict):
        raise SuggestionError("AI response is not a JSON object")
    try:
        return TimelineSuggestion.model_validate(parsed)
    except ValidationError as e:
        raise SuggestionError(f"AI response has unexpected shape: {e.error_count()} errors") from e


class TimelineSuggester:
    """Asks Claude for a timeline, duration and reasoning for one task."""

    def __init__(self, client: anthropic.AsyncAnthropic | None = None, model: str | None = None,
                 max_tokens: int | None = None):
        self.model = model or config.PLANNER_MODEL
        self.max_tokens = max_tokens or config.PLANNER_MAX_TOKENS
        if client is None and config.api_key_configured():
            client = anthropic.AsyncAnthropic(api_key=config.ANTHROPIC_API_KEY)
        self.client = client

    async def suggest(self, task_description: str, user_history: str) -> TimelineSuggestion:
        if self.client is None:
            raise SuggestionError("API key not configured")

        today = datetime.now().strftime("%Y-%m-%d")
        try:
            response = await self.client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                system=SUGGEST_TIMELINE_PROMPT.format(today=today),
                messages=[{
                    "role": "user",
                    "content": SUGGEST_TIMELINE_MESSAGE.format(
                        task_description=task_description,
                        user_history=user_history,
                    ),
                }]
            )
        except anthropic.APIError as e:
            raise SuggestionError(f"API error: {e}") from e

        text = "".join(block.text for block in response.content if getattr(block, "type", None) == "text")
        if not text.strip():
            raise SuggestionError("Empty AI response")
        logger.debug("Claude response: %s", text)
        return parse_suggestion(text)
