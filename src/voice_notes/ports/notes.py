from pathlib import Path
from typing import Protocol


class NoteGeneratorPort(Protocol):
    async def generate(self, transcript: str) -> str: ...


class ArtifactStorePort(Protocol):
    def save_notes(self, notes: str) -> Path: ...
    def save_audio(self, wav_data: bytes) -> Path: ...


class TranscriptUploaderPort(Protocol):
    async def upload(self, transcript: str) -> dict: ...


class TranscriptDisplayPort(Protocol):
    def show_interim(self, text: str) -> None: ...
    def show_final(self, text: str) -> None: ...
    def show_notes(self, notes: str) -> None: ...
