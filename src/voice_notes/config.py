from typing import Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

NOTES_SYSTEM_PROMPT = """
You are a productivity assistant. Given a raw transcript of spoken input with note-making intent, convert it into well-structured markdown notes similar to Notion.

- Extract tasks and represent them as checkboxes in the format: - [ ] Task
- If there are ideas, discussion points, or decisions, format them as bullet points or headings.
- Group related points using proper headings like ## TODO, ## Ideas, ## Notes, etc.
- Use natural grouping and clarity.
- If the transcript is unclear or contains errors, do your best to interpret the intended meaning.

Transcript:
"""


class VoiceNotesConfig(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="VOICE_NOTES_", populate_by_name=True)

    assemblyai_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("ASSEMBLYAI_API_KEY", "VOICE_NOTES_ASSEMBLYAI_API_KEY"),
    )
    assemblyai_api_key_file: str = ""
    streaming_url: str = "wss://streaming.assemblyai.com/v3/ws"
    format_turns: bool = True

    notes_engine: Literal["openai", "anthropic"] = "openai"
    openai_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("OPENAI_API_KEY", "VOICE_NOTES_OPENAI_API_KEY"),
    )
    openai_api_key_file: str = ""
    anthropic_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("ANTHROPIC_API_KEY", "VOICE_NOTES_ANTHROPIC_API_KEY"),
    )
    anthropic_api_key_file: str = ""
    model: str = "gpt-4"
    anthropic_model: str = "claude-sonnet-4-5"
    max_tokens: int = 1000
    temperature: float = 0.7
    system_prompt: str = NOTES_SYSTEM_PROMPT

    capture_device: str = ""
    sample_rate: int = 16000
    channels: int = 1
    frame_duration_ms: int = 50
    capture_gain: float = 1.0

    output_dir: str = "."
    log_file: str = ""
    shutdown_grace_seconds: float = 2.0

    server_host: str = "127.0.0.1"
    server_port: int = Field(
        default=3000,
        validation_alias=AliasChoices("PORT", "VOICE_NOTES_SERVER_PORT"),
    )
    db_path: str = "db.json"

    notes_api_url: str = ""
    notes_api_token: str = ""

    def read_secret(self, path: str) -> str:
        if not path:
            return ""
        try:
            with open(path) as f:
                return f.read().strip()
        except FileNotFoundError:
            return ""

    def resolve_assemblyai_key(self) -> str:
        return self.assemblyai_api_key or self.read_secret(self.assemblyai_api_key_file)

    def resolve_openai_key(self) -> str:
        return self.openai_api_key or self.read_secret(self.openai_api_key_file)

    def resolve_anthropic_key(self) -> str:
        return self.anthropic_api_key or self.read_secret(self.anthropic_api_key_file)

    def required_credentials(self) -> dict[str, str]:
        credentials = {"ASSEMBLYAI_API_KEY": self.resolve_assemblyai_key()}
        if self.notes_engine == "anthropic":
            credentials["ANTHROPIC_API_KEY"] = self.resolve_anthropic_key()
        else:
            credentials["OPENAI_API_KEY"] = self.resolve_openai_key()
        return credentials
