"""HTTP probe: send a message on the origin API and wait for it on the destination.

The origin answers ``POST {origin}`` with ``{"message_id": ..., "cost": ...}``.
The destination exposes ``GET {destination}/{message_id}`` which returns 404
until the message is relayed and ``{"relayed": true, "cost": ...}`` after.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

from core.config_models import ProbeCredentials, ProbeEndpoints
from core.observations import Observation, RelayErrorKind, SendErrorKind
from tracking.transport import TransportError

LOGGER = logging.getLogger(__name__)


def _auth_headers(token: Optional[str]) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"} if token else {}


def _cost(payload: Dict[str, Any]) -> Optional[int]:
    value = payload.get("cost")
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


@dataclass(slots=True)
class SentMessage:
    message_id: str
    sent_at: float
    cost: Optional[int]


@dataclass
class ProbeClients:
    """Injectable HTTP and timing dependencies for :class:`HttpProbeSource`."""

    http_factory: Callable[[], httpx.AsyncClient] = lambda: httpx.AsyncClient(timeout=10.0)
    now: Callable[[], float] = time.time
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep


class HttpProbeSource:
    def __init__(
        self,
        endpoints: ProbeEndpoints,
        credentials: Optional[ProbeCredentials] = None,
        clients: Optional[ProbeClients] = None,
    ) -> None:
        self.endpoints = endpoints
        self.credentials = credentials or ProbeCredentials()
        self._clients = clients or ProbeClients()

    async def _send(self, client: httpx.AsyncClient) -> SentMessage:
        nonce = uuid.uuid4().hex
        try:
            response = await client.post(
                self.endpoints.origin.url,
                json={"payload": nonce},
                headers=_auth_headers(self.credentials.origin_token),
            )
            response.raise_for_status()
        except httpx.TimeoutException as exc:
            raise TransportError(SendErrorKind.SEND_TIMEOUT, f"origin timed out: {exc}") from exc
        except httpx.HTTPStatusError as exc:
            raise TransportError(
                SendErrorKind.SEND_REJECTED,
                f"origin rejected message: HTTP {exc.response.status_code}",
            ) from exc
        except httpx.HTTPError as exc:
            raise TransportError(SendErrorKind.SEND_ERROR, f"origin request failed: {exc}") from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise TransportError(
                SendErrorKind.SEND_CONFIRMATION_FAILED, "origin returned a non-JSON confirmation"
            ) from exc
        if not isinstance(payload, dict) or not payload.get("message_id"):
            raise TransportError(
                SendErrorKind.SEND_EVENT_MISSING, "origin confirmation has no message_id"
            )
        sent = SentMessage(
            message_id=str(payload["message_id"]),
            sent_at=self._clients.now(),
            cost=_cost(payload),
        )
        LOGGER.info("Probe message %s sent via %s", sent.message_id, self.endpoints.origin.name)
        return sent

    async def _wait_for_relay(self, client: httpx.AsyncClient, sent: SentMessage) -> Observation:
        url = f"{self.endpoints.destination.url.rstrip('/')}/{sent.message_id}"
        headers = _auth_headers(self.credentials.destination_token)
        deadline = sent.sent_at + self.endpoints.relay_timeout_seconds
        while True:
            try:
                response = await client.get(url, headers=headers)
                if response.status_code != 404:
                    response.raise_for_status()
            except httpx.HTTPError as exc:
                raise TransportError(
                    RelayErrorKind.RELAY_WATCH_FAILED, f"destination poll failed: {exc}"
                ) from exc

            if response.status_code != 404:
                try:
                    payload = response.json()
                except ValueError as exc:
                    raise TransportError(
                        RelayErrorKind.RELAY_RECEIPT_FAILED, "destination returned a non-JSON receipt"
                    ) from exc
                if isinstance(payload, dict) and payload.get("relayed"):
                    received_at = self._clients.now()
                    latency_ms = max(0.0, (received_at - sent.sent_at) * 1000)
                    LOGGER.info("Probe message %s relayed after %.0f ms", sent.message_id, latency_ms)
                    return Observation.succeeded(
                        timestamp=received_at,
                        latency_ms=latency_ms,
                        send_cost=sent.cost,
                        relay_cost=_cost(payload),
                    )

            if self._clients.now() >= deadline:
                raise TransportError(
                    RelayErrorKind.RELAY_TIMEOUT,
                    f"message {sent.message_id} not relayed within "
                    f"{self.endpoints.relay_timeout_seconds:g}s",
                )
            await self._clients.sleep(self.endpoints.poll_interval_seconds)

    async def produce(self) -> Observation:
        async with self._clients.http_factory() as client:
            sent = await self._send(client)
            return await self._wait_for_relay(client, sent)


__all__ = ["HttpProbeSource", "ProbeClients", "SentMessage"]
