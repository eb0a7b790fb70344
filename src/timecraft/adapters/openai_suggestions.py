"""OpenAI adapter - generates task title suggestions via chat completions."""

import json
import logging
import time

from openai import OpenAI, OpenAIError

from timecraft.core.suggestions import SUGGESTION_COUNT, Suggestion, SuggestionSet
from timecraft.core.tasks import Task
from timecraft.errors import SuggestionError

logger = logging.getLogger(__name__)

RESPONSE_FORMAT_HINT = f"""Reply ONLY with JSON in this format, with exactly {SUGGESTION_COUNT} suggestions:
{{
  "suggestions": [
    {{"new_title": "Optimized title", "reason": "Why this is better", "estimated_duration": 30}}
  ]
}}"""


class OpenAISuggestionService:
    """
    OpenAI chat-completions adapter.

    Implements SuggestionService protocol. One request per task; a short
    pause after each call keeps serial batches under the rate limit.
    """

    def __init__(
        self,
        api_key: str = "",
        model: str = "gpt-4o-mini",
        system_prompt: str = "",
        task_prompt: str = "",
        client: OpenAI | None = None,
        pause: float = 0.5,
        timeout: float = 60.0,
    ):
        self.model = model
        self.system_prompt = system_prompt
        self.task_prompt = task_prompt
        self.pause = pause
        self._client = client or OpenAI(api_key=api_key, timeout=timeout)

    def build_prompt(self, task: Task, context_text: str) -> str:
        """Compile the user prompt for one task."""
        return f"""{self.task_prompt}

Task to optimize:
"{task.content}"

Context - all my other tasks and upcoming appointments (for relationships and understanding):
{context_text}

{RESPONSE_FORMAT_HINT}"""

    def generate(self, task: Task, context_text: str) -> SuggestionSet:
        """Generate a suggestion set. Raises SuggestionError on failure."""
        try:
            completion = self._client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": self.system_prompt},
                    {"role": "user", "content": self.build_prompt(task, context_text)},
                ],
                temperature=0.7,
                max_tokens=800,
                response_format={"type": "json_object"},
            )
        except OpenAIError as e:
            raise SuggestionError(f"OpenAI request failed: {e}")
        finally:
            if self.pause:
                time.sleep(self.pause)

        content = completion.choices[0].message.content or ""
        return parse_suggestions(task.id, content)


def parse_suggestions(task_id: str, content: str) -> SuggestionSet:
    """Parse the model's JSON reply into a SuggestionSet, keeping the first five."""
    try:
        payload = json.loads(content)
    except json.JSONDecodeError as e:
        raise SuggestionError(f"Model reply is not JSON: {e}")

    raw = payload.get("suggestions") if isinstance(payload, dict) else None
    if not isinstance(raw, list):
        raise SuggestionError("Model reply has no 'suggestions' list")

    suggestions = []
    for item in raw:
        if not isinstance(item, dict) or not item.get("new_title"):
            logger.debug(f"Ignoring malformed suggestion for task {task_id}: {item!r}")
            continue
        try:
            duration = int(item.get("estimated_duration", 0))
        except (TypeError, ValueError):
            duration = 0
        suggestions.append(
            Suggestion(
                new_title=str(item["new_title"]).strip(),
                reason=str(item.get("reason", "")).strip(),
                estimated_duration_minutes=duration,
            )
        )

    if len(suggestions) < SUGGESTION_COUNT:
        raise SuggestionError(
            f"Expected {SUGGESTION_COUNT} suggestions for task {task_id}, got {len(suggestions)}"
        )
    return SuggestionSet(task_id=task_id, suggestions=tuple(suggestions[:SUGGESTION_COUNT]))
