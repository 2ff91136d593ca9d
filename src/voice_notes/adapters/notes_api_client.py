import logging

import httpx

logger = logging.getLogger(__name__)


class NotesApiClient:
    def __init__(
        self,
        base_url: str,
        token: str = "",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._token = token
        self._timeout = httpx.Timeout(timeout)
        self._transport = transport

    def _auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._token}"} if self._token else {}

    async def upload(self, transcript: str) -> dict:
        async with httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            transport=self._transport,
        ) as client:
            response = await client.post(
                "/notes",
                json={"transcript": transcript},
                headers=self._auth_headers(),
            )
            if response.status_code != 201:
                logger.error(
                    "Notes API rejected transcript: %s %s",
                    response.status_code,
                    response.text[:200],
                )
            response.raise_for_status()
            return response.json()
