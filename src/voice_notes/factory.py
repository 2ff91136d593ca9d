import logging

from voice_notes.adapters.assemblyai_stt import AssemblyAIStreamingChannel
from voice_notes.adapters.file_artifacts import FileArtifactStore
from voice_notes.adapters.notes_api_client import NotesApiClient
from voice_notes.adapters.terminal_display import TerminalDisplay
from voice_notes.config import VoiceNotesConfig
from voice_notes.domain.controller import SessionController
from voice_notes.domain.session import Session
from voice_notes.ports.audio import AudioSourcePort
from voice_notes.ports.notes import NoteGeneratorPort, TranscriptUploaderPort
from voice_notes.server.app import create_app
from voice_notes.server.store import JsonNoteStore

logger = logging.getLogger(__name__)


def create_capture(config: VoiceNotesConfig) -> AudioSourcePort:
    from voice_notes.adapters.sounddevice_audio import SounddeviceCapture

    return SounddeviceCapture(
        device=config.capture_device,
        sample_rate=config.sample_rate,
        channels=config.channels,
        frame_duration_ms=config.frame_duration_ms,
        gain=config.capture_gain,
    )


def create_channel(config: VoiceNotesConfig) -> AssemblyAIStreamingChannel:
    return AssemblyAIStreamingChannel(
        api_key=config.resolve_assemblyai_key(),
        sample_rate=config.sample_rate,
        format_turns=config.format_turns,
        base_url=config.streaming_url,
    )


def create_note_generator(config: VoiceNotesConfig) -> NoteGeneratorPort:
    if config.notes_engine == "anthropic":
        from voice_notes.adapters.anthropic_notes import AnthropicNoteGenerator

        return AnthropicNoteGenerator(
            api_key=config.resolve_anthropic_key(),
            model=config.anthropic_model,
            system_prompt=config.system_prompt,
            max_tokens=config.max_tokens,
            temperature=config.temperature,
        )

    from voice_notes.adapters.openai_notes import OpenAINoteGenerator

    return OpenAINoteGenerator(
        api_key=config.resolve_openai_key(),
        model=config.model,
        system_prompt=config.system_prompt,
        max_tokens=config.max_tokens,
        temperature=config.temperature,
    )


def create_uploader(config: VoiceNotesConfig) -> TranscriptUploaderPort | None:
    if not config.notes_api_url:
        return None
    logger.info("Transcripts will be uploaded to %s", config.notes_api_url)
    return NotesApiClient(base_url=config.notes_api_url, token=config.notes_api_token)


def create_controller(config: VoiceNotesConfig) -> SessionController:
    session = Session(sample_rate=config.sample_rate, channels=config.channels)
    return SessionController(
        session=session,
        audio_source=create_capture(config),
        channel=create_channel(config),
        note_generator=create_note_generator(config),
        artifacts=FileArtifactStore(config.output_dir),
        display=TerminalDisplay(),
        credentials=config.required_credentials(),
        uploader=create_uploader(config),
    )


def create_server(config: VoiceNotesConfig):
    return create_app(JsonNoteStore(config.db_path))
