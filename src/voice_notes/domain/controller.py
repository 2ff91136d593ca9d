import asyncio
import logging
from collections.abc import Mapping
from datetime import datetime, timezone

from voice_notes.domain.events import (
    AudioSourceError,
    Begin,
    ChannelClosed,
    ChannelError,
    Fault,
    SessionEvent,
    ShutdownRequested,
    Termination,
    Turn,
    parse_event,
)
from voice_notes.domain.session import Session
from voice_notes.domain.state import SessionState, validate_transition
from voice_notes.domain.wav import EmptyRecordingError, encode_wav, pcm_duration_seconds
from voice_notes.ports.audio import AudioSourcePort
from voice_notes.ports.notes import (
    ArtifactStorePort,
    NoteGeneratorPort,
    TranscriptDisplayPort,
    TranscriptUploaderPort,
)
from voice_notes.ports.transcriber import TranscriptionChannelPort

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAULT = 1


class MissingCredentialsError(Exception):
    def __init__(self, missing: list[str]) -> None:
        self.missing = missing
        super().__init__(f"Missing credentials: {', '.join(missing)}")


def _format_timestamp(timestamp: float | None) -> str:
    if timestamp is None:
        return "unknown"
    try:
        return datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat()
    except (OverflowError, OSError, ValueError):
        return str(timestamp)


class SessionController:
    def __init__(
        self,
        session: Session,
        audio_source: AudioSourcePort,
        channel: TranscriptionChannelPort,
        note_generator: NoteGeneratorPort,
        artifacts: ArtifactStorePort,
        display: TranscriptDisplayPort,
        credentials: Mapping[str, str] | None = None,
        uploader: TranscriptUploaderPort | None = None,
    ) -> None:
        self._session = session
        self._audio_source = audio_source
        self._channel = channel
        self._note_generator = note_generator
        self._artifacts = artifacts
        self._display = display
        self._credentials = dict(credentials or {})
        self._uploader = uploader

        self._state = SessionState.IDLE
        self._exit_code = EXIT_OK
        self._interrupted = False
        self._audio_started = False
        self._finalize_lock = asyncio.Lock()
        self._finished = asyncio.Event()
        self._tasks: list[asyncio.Task] = []

    @property
    def session(self) -> Session:
        return self._session

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def exit_code(self) -> int:
        return self._exit_code

    @property
    def interrupted(self) -> bool:
        return self._interrupted

    @property
    def finished(self) -> bool:
        return self._finished.is_set()

    def _transition_to(self, target: SessionState) -> None:
        validate_transition(self._state, target)
        logger.info("State: %s -> %s", self._state.name, target.name)
        self._state = target

    def check_credentials(self) -> None:
        missing = [name for name, value in self._credentials.items() if not value]
        if missing:
            raise MissingCredentialsError(missing)

    async def run(self) -> int:
        try:
            await self.start()
            await self._finished.wait()
        except MissingCredentialsError:
            raise
        except Exception as exc:
            logger.exception("Uncaught error in voice session")
            await self.on_event(Fault(error=exc))
        finally:
            await self._cancel_tasks()
        return self._exit_code

    async def start(self) -> None:
        self.check_credentials()
        if self._session.stop_requested:
            return
        self._transition_to(SessionState.CONNECTING)

        try:
            await self._channel.connect()
        except Exception as exc:
            await self._dispatch(ChannelError(error=exc))
            return

        await self._on_channel_open()

    async def _on_channel_open(self) -> None:
        if self._session.stop_requested:
            logger.info("Channel opened after shutdown began, closing it")
            await self._close_channel()
            return

        logger.info("Transcription channel opened")
        self._transition_to(SessionState.STREAMING)
        self._tasks.append(asyncio.create_task(self._message_loop()))

        try:
            await self._audio_source.start()
        except Exception as exc:
            await self._dispatch(AudioSourceError(error=exc))
            return

        self._audio_started = True
        if self._session.stop_requested:
            await self._stop_audio_source()
            return
        self._tasks.append(asyncio.create_task(self._audio_loop()))
        logger.info("Microphone stream opened, speak now (Ctrl+C stops and generates notes)")

    def request_shutdown(self, reason: str) -> asyncio.Task | None:
        if self._interrupted:
            logger.info("Shutdown already in progress (%s)", reason)
            return None
        self._interrupted = True
        task = asyncio.get_running_loop().create_task(
            self._dispatch(ShutdownRequested(reason=reason))
        )
        self._tasks.append(task)
        return task

    def report_fault(self, error: BaseException) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(self._dispatch(Fault(error=error)))
        self._tasks.append(task)
        return task

    async def on_event(self, event: SessionEvent) -> None:
        if isinstance(event, Begin):
            logger.info(
                "Session began: id=%s, expires_at=%s",
                event.session_id,
                _format_timestamp(event.expires_at),
            )
        elif isinstance(event, Turn):
            self._handle_turn(event)
        elif isinstance(event, Termination):
            logger.info(
                "Session terminated: audio duration=%ss, session duration=%ss",
                event.audio_duration_seconds,
                event.session_duration_seconds,
            )
            await self.finalize()
        elif isinstance(event, ChannelClosed):
            logger.info(
                "Transcription channel disconnected: status=%s, reason=%s",
                event.code,
                event.reason or "-",
            )
            await self.finalize()
        elif isinstance(event, ChannelError):
            logger.error("Transcription channel error: %s", event.error)
            await self.finalize()
        elif isinstance(event, AudioSourceError):
            logger.error("Audio source error: %s", event.error)
            await self.finalize()
        elif isinstance(event, ShutdownRequested):
            self._interrupted = True
            logger.info("Shutdown requested (%s), stopping and generating notes", event.reason)
            await self.finalize()
        elif isinstance(event, Fault):
            self._interrupted = True
            self._exit_code = EXIT_FAULT
            logger.error("Uncaught error: %s", event.error)
            await self.finalize()

    def _handle_turn(self, turn: Turn) -> None:
        if not turn.is_final:
            self._display.show_interim(turn.text)
            return
        logger.debug("Turn: %s", turn.text)
        self._session.append_final_turn(turn.text)
        self._display.show_final(turn.text)

    async def _dispatch(self, event: SessionEvent) -> None:
        try:
            await self.on_event(event)
        except Exception as exc:
            logger.exception("Error while handling %s", type(event).__name__)
            if not isinstance(event, Fault):
                await self.on_event(Fault(error=exc))

    async def _message_loop(self) -> None:
        try:
            async for message in self._channel.messages():
                event = parse_event(message)
                if event is not None:
                    await self._dispatch(event)
        except Exception as exc:
            await self._dispatch(ChannelError(error=exc))
            return

        await self._dispatch(
            ChannelClosed(code=self._channel.close_code, reason=self._channel.close_reason)
        )

    async def _audio_loop(self) -> None:
        try:
            async for frame in self._audio_source.read_frames():
                if self._session.stop_requested:
                    break
                if not self._channel.is_open:
                    continue
                self._session.record_frame(frame)
                try:
                    await self._channel.send_audio(frame)
                except Exception as exc:
                    await self._dispatch(ChannelError(error=exc))
                    return
        except Exception as exc:
            await self._dispatch(AudioSourceError(error=exc))

    async def _cancel_tasks(self) -> None:
        current = asyncio.current_task()
        pending = [task for task in self._tasks if task is not current]
        for task in pending:
            if not task.done():
                task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        self._tasks.clear()

    async def finalize(self) -> None:
        async with self._finalize_lock:
            self._session.stop_requested = True
            if self._state not in (SessionState.FINALIZING, SessionState.CLOSED):
                self._transition_to(SessionState.FINALIZING)

            await self._save_notes()
            await self._upload_transcript()
            self._save_audio()
            await self._stop_audio_source()
            await self._close_channel()

            if self._state == SessionState.FINALIZING:
                self._transition_to(SessionState.CLOSED)
                logger.info("Cleanup complete")
            self._finished.set()

    async def _save_notes(self) -> None:
        if self._session.notes_attempted:
            return
        if not self._session.has_transcript:
            logger.info("No transcript to process")
            return

        self._session.notes_attempted = True
        logger.info("Generating structured notes...")
        try:
            notes = await self._note_generator.generate(self._session.full_transcript)
        except Exception:
            logger.exception("Error generating notes")
            return

        self._session.notes_generated = True
        self._display.show_notes(notes)
        try:
            path = self._artifacts.save_notes(notes)
        except Exception:
            logger.exception("Error saving notes")
            return
        logger.info("Notes saved to: %s", path)

    async def _upload_transcript(self) -> None:
        if self._uploader is None or self._session.transcript_uploaded:
            return
        if not self._session.has_transcript:
            return

        self._session.transcript_uploaded = True
        try:
            note = await self._uploader.upload(self._session.full_transcript.strip())
        except Exception:
            logger.exception("Error uploading transcript to notes API")
            return
        logger.info("Transcript uploaded to notes API (note id=%s)", note.get("id"))

    def _save_audio(self) -> None:
        if self._session.audio_saved:
            return

        try:
            wav_data = encode_wav(
                self._session.recorded_frames,
                self._session.sample_rate,
                self._session.channels,
            )
        except EmptyRecordingError:
            logger.warning("No audio data recorded")
            return

        self._session.audio_saved = True
        try:
            path = self._artifacts.save_audio(wav_data)
        except Exception:
            logger.exception("Error saving WAV file")
            return

        duration = pcm_duration_seconds(
            self._session.recorded_bytes,
            self._session.sample_rate,
            self._session.channels,
        )
        logger.info("Audio saved to: %s (%.2f seconds)", path, duration)

    async def _stop_audio_source(self) -> None:
        if not self._audio_started:
            return
        self._audio_started = False
        try:
            await self._audio_source.stop()
        except Exception:
            logger.exception("Error stopping microphone")

    async def _close_channel(self) -> None:
        if self._channel.is_open:
            try:
                logger.info('Sending termination message: {"type": "Terminate"}')
                await self._channel.send_terminate()
            except Exception:
                logger.exception("Error sending termination message")
        try:
            await self._channel.close()
        except Exception:
            logger.exception("Error closing transcription channel")
