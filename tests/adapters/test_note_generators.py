from types import SimpleNamespace

import pytest

from voice_notes.adapters.anthropic_notes import AnthropicNoteGenerator
from voice_notes.adapters.openai_notes import OpenAINoteGenerator
from voice_notes.config import NOTES_SYSTEM_PROMPT


class FakeOpenAICompletions:
    def __init__(self, content: str | None) -> None:
        self._content = content
        self.calls: list[dict] = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        message = SimpleNamespace(content=self._content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class FakeAnthropicMessages:
    def __init__(self, blocks: list) -> None:
        self._blocks = blocks
        self.calls: list[dict] = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        return SimpleNamespace(content=self._blocks)


class TestOpenAINoteGenerator:
    @pytest.mark.asyncio
    async def test_sends_prompt_and_transcript(self):
        completions = FakeOpenAICompletions("## TODO\n- [ ] Buy milk")
        client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
        generator = OpenAINoteGenerator(api_key="sk-test", client=client)

        notes = await generator.generate("buy milk ")

        assert notes == "## TODO\n- [ ] Buy milk"
        call = completions.calls[0]
        assert call["model"] == "gpt-4"
        assert call["max_tokens"] == 1000
        assert call["temperature"] == 0.7
        assert call["messages"] == [
            {"role": "system", "content": NOTES_SYSTEM_PROMPT},
            {"role": "user", "content": "buy milk "},
        ]

    @pytest.mark.asyncio
    async def test_empty_content_becomes_empty_string(self):
        completions = FakeOpenAICompletions(None)
        client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
        generator = OpenAINoteGenerator(api_key="sk-test", model="openai/gpt-4o", client=client)

        assert await generator.generate("hello") == ""
        assert completions.calls[0]["model"] == "gpt-4o"


class TestAnthropicNoteGenerator:
    @pytest.mark.asyncio
    async def test_joins_text_blocks(self):
        messages = FakeAnthropicMessages([
            SimpleNamespace(type="text", text="## TODO\n"),
            SimpleNamespace(type="tool_use", text="ignored"),
            SimpleNamespace(type="text", text="- [ ] Call mom"),
        ])
        generator = AnthropicNoteGenerator(
            api_key="sk-ant",
            model="anthropic/claude-sonnet-4-5",
            client=SimpleNamespace(messages=messages),
        )

        notes = await generator.generate("call mom ")

        assert notes == "## TODO\n- [ ] Call mom"
        call = messages.calls[0]
        assert call["model"] == "claude-sonnet-4-5"
        assert call["system"] == NOTES_SYSTEM_PROMPT
        assert call["messages"] == [{"role": "user", "content": "call mom "}]
