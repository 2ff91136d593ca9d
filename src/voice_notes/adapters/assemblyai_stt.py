import json
import logging
from collections.abc import AsyncIterator
from urllib.parse import urlencode

from websockets.asyncio.client import ClientConnection, connect
from websockets.protocol import State

logger = logging.getLogger(__name__)

DEFAULT_STREAMING_URL = "wss://streaming.assemblyai.com/v3/ws"
TERMINATE_MESSAGE = json.dumps({"type": "Terminate"})


class AssemblyAIStreamingChannel:
    def __init__(
        self,
        api_key: str,
        sample_rate: int = 16000,
        format_turns: bool = True,
        base_url: str = DEFAULT_STREAMING_URL,
    ) -> None:
        self._api_key = api_key
        self._sample_rate = sample_rate
        self._format_turns = format_turns
        self._base_url = base_url
        self._connection: ClientConnection | None = None

    @property
    def url(self) -> str:
        params = {
            "sample_rate": self._sample_rate,
            "format_turns": "true" if self._format_turns else "false",
        }
        return f"{self._base_url}?{urlencode(params)}"

    @property
    def is_open(self) -> bool:
        return self._connection is not None and self._connection.state is State.OPEN

    @property
    def close_code(self) -> int | None:
        return self._connection.close_code if self._connection else None

    @property
    def close_reason(self) -> str:
        if not self._connection:
            return ""
        return self._connection.close_reason or ""

    async def connect(self) -> None:
        self._connection = await connect(
            self.url,
            additional_headers={"Authorization": self._api_key},
        )
        logger.info("Connected to: %s", self.url)

    async def send_audio(self, frame: bytes) -> None:
        if self.is_open:
            await self._connection.send(frame)

    async def send_terminate(self) -> None:
        if self.is_open:
            await self._connection.send(TERMINATE_MESSAGE)

    async def messages(self) -> AsyncIterator[str | bytes]:
        if not self._connection:
            return
        async for message in self._connection:
            yield message

    async def close(self) -> None:
        if self._connection and self._connection.state is not State.CLOSED:
            await self._connection.close()
            logger.info("Transcription channel closed")
