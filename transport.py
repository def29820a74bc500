import enum
from typing import Optional, Protocol

import httpx

from constants import PUSH_TIMEOUT
from logging_config import get_logger

logger = get_logger(__name__)


class DeliveryResult(enum.Enum):
    DELIVERED = "delivered"
    NOT_FOUND = "not_found"
    FAILED = "failed"


class PushTransport(Protocol):
    async def send(self, url: str, body: str) -> DeliveryResult:
        ...


class HttpPushTransport:
    """Delivers a JSON message by POSTing it to a peer's push-bridge url.

    The bridge answers 404 once the peer's socket is gone. Any other error
    status, network failure or unusable url is reported as FAILED and never raised.
    """

    def __init__(self, client: Optional[httpx.AsyncClient] = None, timeout: float = PUSH_TIMEOUT):
        self.client = client or httpx.AsyncClient(timeout=timeout)

    async def send(self, url: str, body: str) -> DeliveryResult:
        try:
            response = await self.client.post(
                url,
                content=body.encode(),
                headers={"content-type": "text/plain;charset=UTF-8"},
            )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.warning(f"Push to {url} failed: {e!r}")
            return DeliveryResult.FAILED

        if response.status_code == 404:
            logger.info(f"Push target {url} not found")
            return DeliveryResult.NOT_FOUND
        if response.is_error:
            logger.warning(f"Push to {url} returned {response.status_code}")
            return DeliveryResult.FAILED
        return DeliveryResult.DELIVERED

    async def close(self):
        await self.client.aclose()
