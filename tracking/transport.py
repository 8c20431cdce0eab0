"""Boundary between probe transports and the metrics pipeline."""

from __future__ import annotations

import logging
import time
from typing import Callable, Protocol

from core.observations import ErrorKind, Observation, SendErrorKind

LOGGER = logging.getLogger(__name__)


class TransportError(Exception):
    """A probe failed in a known way; ``kind`` says which leg and how."""

    def __init__(self, kind: ErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message


class ObservationSource(Protocol):
    """Anything able to run one probe and report it as an observation."""

    async def produce(self) -> Observation:
        """Run one probe; may raise :class:`TransportError`."""


async def observe(source: ObservationSource, now_func: Callable[[], float] = time.time) -> Observation:
    """Run ``source`` once, turning every failure into a failed observation."""

    try:
        return await source.produce()
    except TransportError as exc:
        LOGGER.warning("Probe failed (%s): %s", exc.kind.value, exc.message)
        return Observation.failed(now_func(), exc.kind, exc.message)
    except Exception as exc:
        LOGGER.exception("Unexpected probe failure: %s", exc)
        return Observation.failed(now_func(), SendErrorKind.SEND_ERROR, str(exc))


__all__ = ["ObservationSource", "TransportError", "observe"]
