from typing import Protocol, AsyncIterator


class TranscriptionChannelPort(Protocol):
    @property
    def is_open(self) -> bool: ...
    @property
    def close_code(self) -> int | None: ...
    @property
    def close_reason(self) -> str: ...
    async def connect(self) -> None: ...
    async def send_audio(self, frame: bytes) -> None: ...
    async def send_terminate(self) -> None: ...
    def messages(self) -> AsyncIterator[str | bytes]: ...
    async def close(self) -> None: ...
