import asyncio
import sys
from pathlib import Path

import httpx
import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from core.config_models import ProbeCredentials, ProbeEndpoints
from core.observations import RelayErrorKind, SendErrorKind
from tracking.http_probe import HttpProbeSource, ProbeClients
from tracking.transport import TransportError, observe


class _Clock:
    def __init__(self, now: float = 100.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def _endpoints() -> ProbeEndpoints:
    return ProbeEndpoints.from_dict(
        {
            "origin": {"name": "origin", "base_url": "http://origin"},
            "destination": {"name": "destination", "base_url": "http://dest"},
            "relay_timeout_seconds": 10,
            "poll_interval_seconds": 5,
        }
    )


def _source(handler, clock: _Clock, credentials=None) -> HttpProbeSource:
    async def _sleep(seconds: float) -> None:
        clock.now += seconds

    clients = ProbeClients(
        http_factory=lambda: httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        now=clock,
        sleep=_sleep,
    )
    return HttpProbeSource(_endpoints(), credentials, clients)


def test_probe_measures_relay_latency():
    polls = []
    auth = []

    def _handler(request: httpx.Request) -> httpx.Response:
        if request.method == "POST":
            assert request.url == "http://origin/messages"
            auth.append(request.headers.get("Authorization"))
            return httpx.Response(200, json={"message_id": "abc", "cost": 21000})
        assert request.url == "http://dest/messages/abc"
        polls.append(request.url)
        if len(polls) == 1:
            return httpx.Response(404)
        return httpx.Response(200, json={"relayed": True, "cost": 50000})

    clock = _Clock()
    source = _source(_handler, clock, ProbeCredentials(origin_token="tok"))
    observation = asyncio.run(source.produce())

    assert observation.success
    assert observation.latency_ms == 5000
    assert observation.timestamp == 105
    assert observation.send_cost == 21000
    assert observation.relay_cost == 50000
    assert auth == ["Bearer tok"]


def test_origin_rejection_is_a_send_failure():
    def _handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500)

    clock = _Clock()
    observation = asyncio.run(observe(_source(_handler, clock), clock))
    assert observation.success is False
    assert observation.error_kind is SendErrorKind.SEND_REJECTED


def test_origin_timeout_and_missing_id():
    def _timeout(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("too slow", request=request)

    def _no_id(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"cost": 1})

    clock = _Clock()
    with pytest.raises(TransportError) as timeout_info:
        asyncio.run(_source(_timeout, clock).produce())
    assert timeout_info.value.kind is SendErrorKind.SEND_TIMEOUT

    with pytest.raises(TransportError) as missing_info:
        asyncio.run(_source(_no_id, clock).produce())
    assert missing_info.value.kind is SendErrorKind.SEND_EVENT_MISSING


def test_relay_timeout_after_deadline():
    def _handler(request: httpx.Request) -> httpx.Response:
        if request.method == "POST":
            return httpx.Response(200, json={"message_id": "abc"})
        return httpx.Response(404)

    clock = _Clock()
    with pytest.raises(TransportError) as info:
        asyncio.run(_source(_handler, clock).produce())
    assert info.value.kind is RelayErrorKind.RELAY_TIMEOUT
    assert clock.now == 110


def test_destination_errors_are_relay_failures():
    def _handler(request: httpx.Request) -> httpx.Response:
        if request.method == "POST":
            return httpx.Response(200, json={"message_id": "abc"})
        return httpx.Response(503)

    clock = _Clock()
    with pytest.raises(TransportError) as info:
        asyncio.run(_source(_handler, clock).produce())
    assert info.value.kind is RelayErrorKind.RELAY_WATCH_FAILED
