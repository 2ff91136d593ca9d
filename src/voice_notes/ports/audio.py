from typing import Protocol, AsyncIterator


class AudioSourcePort(Protocol):
    @property
    def sample_rate(self) -> int: ...
    @property
    def channels(self) -> int: ...
    async def start(self) -> None: ...
    async def stop(self) -> None: ...
    def read_frames(self) -> AsyncIterator[bytes]: ...
