"""
Webhook Sink

Delivers BlockUpdate payloads to the consumer with an HTTP POST.
Any non-2xx status or transport error is a TransportError.
"""

import asyncio
import logging
from typing import Dict, Optional

import aiohttp

from .errors import TransportError
from .types import BlockUpdate


class WebhookSink:
    """
    HTTP webhook notification sink.

    Usage:
        sink = WebhookSink("http://network-utxos:5557/hook")
        await sink.start()
        await sink.deliver(update)
        await sink.stop()
    """

    def __init__(self, url: str, request_timeout: float = 30.0):
        self._url = url
        self._request_timeout = request_timeout
        self._logger = logging.getLogger("WebhookSink")

        self._session: Optional[aiohttp.ClientSession] = None

        # Stats
        self._delivered = 0
        self._failed = 0

    @property
    def url(self) -> str:
        return self._url

    async def start(self):
        """Open the HTTP session."""
        self._session = aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=self._request_timeout)
        )

    async def stop(self):
        """Close the HTTP session."""
        if self._session:
            await self._session.close()
            self._session = None

    async def deliver(self, update: BlockUpdate) -> None:
        """
        POST a block update.

        Raises:
            TransportError: non-success status or transport failure
        """
        if self._session is None:
            raise TransportError("Webhook sink not started")

        try:
            async with self._session.post(self._url, json=update.to_dict()) as response:
                if not 200 <= response.status < 300:
                    self._failed += 1
                    raise TransportError(
                        f"Webhook failed for block {update.height}: Status code: {response.status}"
                    )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self._failed += 1
            raise TransportError(f"Webhook failed for block {update.height}: {e!r}") from e

        self._delivered += 1
        self._logger.debug(
            f"Delivered block {update.height} ({len(update.utxo_updates)} updates)"
        )

    def get_stats(self) -> Dict:
        """Get sink statistics."""
        return {
            "url": self._url,
            "delivered": self._delivered,
            "failed": self._failed,
        }
