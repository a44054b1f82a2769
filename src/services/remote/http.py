"""HTTP remote progress gateway (users/progress endpoints)."""

from typing import Optional

import httpx
from pydantic import ValidationError

from src.api.schemas import ProgressPayload
from src.core.logging import get_logger
from src.core.progression.errors import RemoteSyncError
from src.core.progression.models import ProgressSnapshot
from src.services.remote.base import RemoteProgressGateway

logger = get_logger(__name__)

PROGRESS_PATH = "users/progress"


class HttpProgressGateway(RemoteProgressGateway):
    """Gateway talking to the progress server over HTTP."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        """Initialize the HTTP gateway.

        Args:
            base_url: Root URL of the progress server.
            timeout: Request timeout in seconds.
            client: Optional preconfigured client (tests inject a MockTransport).
        """
        self._base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)
        logger.info("HttpProgressGateway initialized: %s", self._base_url)

    @property
    def name(self) -> str:
        """Return the gateway name."""
        return "http"

    def _url(self) -> str:
        return f"{self._base_url}/{PROGRESS_PATH}"

    @staticmethod
    def _headers(identity: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {identity}"}

    async def load_progress(self, identity: str) -> ProgressSnapshot:
        """GET users/progress → snapshot."""
        try:
            response = await self._client.get(self._url(), headers=self._headers(identity))
            response.raise_for_status()
            payload = ProgressPayload.model_validate(response.json())
        except (httpx.HTTPError, ValueError, ValidationError) as e:
            logger.debug("Remote progress load failed: %s", e)
            raise RemoteSyncError(f"Failed to load progress: {e}") from e

        return payload.to_snapshot()

    async def save_progress(self, identity: str, snapshot: ProgressSnapshot) -> None:
        """POST users/progress with the full snapshot."""
        body = ProgressPayload.from_snapshot(snapshot).model_dump(
            mode="json", by_alias=True
        )
        try:
            response = await self._client.post(
                self._url(), json=body, headers=self._headers(identity)
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.debug("Remote progress save failed: %s", e)
            raise RemoteSyncError(f"Failed to save progress: {e}") from e

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
