import logging

from openai import AsyncOpenAI

from voice_notes.config import NOTES_SYSTEM_PROMPT

logger = logging.getLogger(__name__)


class OpenAINoteGenerator:
    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4",
        system_prompt: str = NOTES_SYSTEM_PROMPT,
        max_tokens: int = 1000,
        temperature: float = 0.7,
        client: AsyncOpenAI | None = None,
    ) -> None:
        self._client = client or AsyncOpenAI(api_key=api_key)
        self._model = model.removeprefix("openai/")
        self._system_prompt = system_prompt
        self._max_tokens = max_tokens
        self._temperature = temperature

    async def generate(self, transcript: str) -> str:
        response = await self._client.chat.completions.create(
            model=self._model,
            messages=[
                {"role": "system", "content": self._system_prompt},
                {"role": "user", "content": transcript},
            ],
            max_tokens=self._max_tokens,
            temperature=self._temperature,
        )
        notes = response.choices[0].message.content or ""
        logger.debug("OpenAI returned %d characters of notes", len(notes))
        return notes
