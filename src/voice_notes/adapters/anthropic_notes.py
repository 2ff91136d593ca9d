import logging

import anthropic

from voice_notes.config import NOTES_SYSTEM_PROMPT

logger = logging.getLogger(__name__)


class AnthropicNoteGenerator:
    def __init__(
        self,
        api_key: str,
        model: str = "claude-sonnet-4-5",
        system_prompt: str = NOTES_SYSTEM_PROMPT,
        max_tokens: int = 1000,
        temperature: float = 0.7,
        client: anthropic.AsyncAnthropic | None = None,
    ) -> None:
        self._client = client or anthropic.AsyncAnthropic(api_key=api_key or None)
        self._model = model.removeprefix("anthropic/")
        self._system_prompt = system_prompt
        self._max_tokens = max_tokens
        self._temperature = temperature

    async def generate(self, transcript: str) -> str:
        try:
            response = await self._client.messages.create(
                model=self._model,
                max_tokens=self._max_tokens,
                temperature=self._temperature,
                system=self._system_prompt,
                messages=[{"role": "user", "content": transcript}],
            )
        except anthropic.APIStatusError as exc:
            logger.error("Anthropic API error: %s %s", exc.status_code, exc.message)
            raise
        return "".join(block.text for block in response.content if block.type == "text")
