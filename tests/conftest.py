import asyncio
import json
from collections.abc import AsyncIterator, Callable
from datetime import datetime, timedelta, timezone

import numpy as np
import pytest

from voice_notes.adapters.file_artifacts import FileArtifactStore
from voice_notes.domain.controller import SessionController
from voice_notes.domain.session import Session


SAMPLE_RATE = 16000
FRAME_DURATION_MS = 50

SAMPLE_NOTES = "## TODO\n- [ ] Buy milk\n- [ ] Call mom\n"


def generate_silence(duration_ms: int = FRAME_DURATION_MS, sample_rate: int = SAMPLE_RATE) -> bytes:
    num_samples = int(sample_rate * duration_ms / 1000)
    return np.zeros(num_samples, dtype=np.int16).tobytes()


def generate_sine_wave(
    frequency: float = 440.0,
    duration_ms: int = FRAME_DURATION_MS,
    amplitude: float = 0.8,
    sample_rate: int = SAMPLE_RATE,
) -> bytes:
    num_samples = int(sample_rate * duration_ms / 1000)
    t = np.arange(num_samples) / sample_rate
    signal = np.sin(2 * np.pi * frequency * t) * amplitude
    return (signal * 32767).astype(np.int16).tobytes()


def begin_message(session_id: str = "session-1", expires_at: float = 1_700_000_000) -> dict:
    return {"type": "Begin", "id": session_id, "expires_at": expires_at}


def turn_message(text: str, final: bool) -> dict:
    return {
        "type": "Turn",
        "transcript": text,
        "end_of_turn": final,
        "turn_is_formatted": final,
    }


def termination_message(audio_seconds: float = 3.0, session_seconds: float = 3.5) -> dict:
    return {
        "type": "Termination",
        "audio_duration_seconds": audio_seconds,
        "session_duration_seconds": session_seconds,
    }


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("Condition not met before timeout")
        await asyncio.sleep(0.01)


class FakeAudioSource:
    def __init__(
        self,
        frames: list[bytes] | None = None,
        start_error: Exception | None = None,
        read_error: Exception | None = None,
    ) -> None:
        self._frames = frames or []
        self._start_error = start_error
        self._read_error = read_error
        self._stopped = asyncio.Event()
        self.started = False
        self.stop_count = 0
        self.frames_read = 0

    @property
    def sample_rate(self) -> int:
        return SAMPLE_RATE

    @property
    def channels(self) -> int:
        return 1

    async def start(self) -> None:
        if self._start_error:
            raise self._start_error
        self.started = True

    async def stop(self) -> None:
        self.started = False
        self.stop_count += 1
        self._stopped.set()

    async def read_frames(self) -> AsyncIterator[bytes]:
        for frame in self._frames:
            if self._stopped.is_set():
                return
            self.frames_read += 1
            yield frame
            await asyncio.sleep(0)
        if self._read_error:
            raise self._read_error
        await self._stopped.wait()


_CLOSED = object()


class FakeChannel:
    def __init__(self, connect_error: Exception | None = None) -> None:
        self._connect_error = connect_error
        self._queue: asyncio.Queue = asyncio.Queue()
        self._open = False
        self._close_code: int | None = None
        self._close_reason = ""
        self.sent_audio: list[bytes] = []
        self.terminate_count = 0
        self.close_count = 0
        self.send_error: Exception | None = None

    @property
    def is_open(self) -> bool:
        return self._open

    @property
    def close_code(self) -> int | None:
        return self._close_code

    @property
    def close_reason(self) -> str:
        return self._close_reason

    async def connect(self) -> None:
        if self._connect_error:
            raise self._connect_error
        self._open = True

    async def send_audio(self, frame: bytes) -> None:
        if self.send_error:
            raise self.send_error
        self.sent_audio.append(frame)

    async def send_terminate(self) -> None:
        self.terminate_count += 1

    async def messages(self) -> AsyncIterator[str | bytes]:
        while True:
            item = await self._queue.get()
            if item is _CLOSED:
                return
            if isinstance(item, BaseException):
                raise item
            yield item

    async def close(self) -> None:
        self.close_count += 1
        if self._open:
            self.disconnect(code=1000, reason="closed by client")

    def push(self, *messages: dict | str) -> None:
        for message in messages:
            if isinstance(message, dict):
                message = json.dumps(message)
            self._queue.put_nowait(message)

    def disconnect(self, code: int = 1000, reason: str = "") -> None:
        self._open = False
        self._close_code = code
        self._close_reason = reason
        self._queue.put_nowait(_CLOSED)

    def fail(self, error: Exception) -> None:
        self._open = False
        self._queue.put_nowait(error)


class FakeNoteGenerator:
    def __init__(self, notes: str = SAMPLE_NOTES, error: Exception | None = None) -> None:
        self._notes = notes
        self._error = error
        self.calls: list[str] = []

    async def generate(self, transcript: str) -> str:
        self.calls.append(transcript)
        await asyncio.sleep(0)
        if self._error:
            raise self._error
        return self._notes


class FakeDisplay:
    def __init__(self) -> None:
        self.interim: list[str] = []
        self.final: list[str] = []
        self.notes: list[str] = []

    def show_interim(self, text: str) -> None:
        self.interim.append(text)

    def show_final(self, text: str) -> None:
        self.final.append(text)

    def show_notes(self, notes: str) -> None:
        self.notes.append(notes)


class FakeUploader:
    def __init__(self, error: Exception | None = None) -> None:
        self._error = error
        self.uploads: list[str] = []

    async def upload(self, transcript: str) -> dict:
        self.uploads.append(transcript)
        if self._error:
            raise self._error
        return {"id": "note-1", "transcript": transcript}


class TickingClock:
    def __init__(self, start: datetime | None = None) -> None:
        self._now = start or datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        current = self._now
        self._now += timedelta(seconds=1)
        return current


def notes_files(directory) -> list:
    return sorted(directory.glob("notes_*.md"))


def audio_files(directory) -> list:
    return sorted(directory.glob("recorded_audio_*.wav"))


@pytest.fixture
def speech_frames():
    return [generate_sine_wave(frequency=220.0 + 20 * i) for i in range(5)]


@pytest.fixture
def fake_audio(speech_frames):
    return FakeAudioSource(frames=speech_frames)


@pytest.fixture
def fake_channel():
    return FakeChannel()


@pytest.fixture
def fake_generator():
    return FakeNoteGenerator()


@pytest.fixture
def fake_display():
    return FakeDisplay()


@pytest.fixture
def artifact_store(tmp_path):
    return FileArtifactStore(tmp_path, clock=TickingClock())


@pytest.fixture
def session():
    return Session(sample_rate=SAMPLE_RATE, channels=1)


@pytest.fixture
def controller(session, fake_audio, fake_channel, fake_generator, artifact_store, fake_display):
    return SessionController(
        session=session,
        audio_source=fake_audio,
        channel=fake_channel,
        note_generator=fake_generator,
        artifacts=artifact_store,
        display=fake_display,
        credentials={"ASSEMBLYAI_API_KEY": "aai-key", "OPENAI_API_KEY": "sk-test"},
    )
