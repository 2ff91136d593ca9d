from dataclasses import dataclass, field


@dataclass
class Session:
    sample_rate: int = 16000
    channels: int = 1
    stop_requested: bool = False
    full_transcript: str = ""
    recorded_frames: list[bytes] = field(default_factory=list)
    notes_attempted: bool = False
    notes_generated: bool = False
    transcript_uploaded: bool = False
    audio_saved: bool = False

    @property
    def has_transcript(self) -> bool:
        return bool(self.full_transcript.strip())

    @property
    def recorded_bytes(self) -> int:
        return sum(len(frame) for frame in self.recorded_frames)

    def append_final_turn(self, text: str) -> None:
        self.full_transcript += text + " "

    def record_frame(self, frame: bytes) -> None:
        self.recorded_frames.append(bytes(frame))
