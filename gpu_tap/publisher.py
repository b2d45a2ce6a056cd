from __future__ import annotations

from functools import lru_cache
from importlib import metadata
import json
import logging
import socket
from typing import Any, Protocol

from gpu_tap.events import Event

BEAT_NAME = "gpu-tap"


@lru_cache(maxsize=1)
def beat_info() -> tuple[tuple[str, str], ...]:
    """Name, hostname and version of this collector, looked up once."""
    try:
        version = metadata.version(BEAT_NAME)
    except metadata.PackageNotFoundError:
        version = "unknown"
    return (("name", BEAT_NAME), ("hostname", socket.gethostname()), ("version", version))


def serialize_event(event: Event) -> dict[str, Any]:
    """Return the wire form of an event, annotated with the publishing host."""
    payload = event.to_dict()
    payload["beat"] = dict(beat_info())
    return payload


class Publisher(Protocol):
    def connect(self) -> None: ...

    def publish_event(self, event: Event) -> bool: ...

    def disconnect(self) -> None: ...


class LogPublisher:
    """Publisher used for dry runs: logs events instead of sending them."""

    def __init__(self) -> None:
        self.logger = logging.getLogger(self.__class__.__name__)

    def connect(self) -> None:
        self.logger.info("Dry run enabled; events will be logged, not published.")

    def publish_event(self, event: Event) -> bool:
        self.logger.info("%s event: %s", event.type, json.dumps(serialize_event(event)))
        return True

    def disconnect(self) -> None:
        self.logger.debug("Dry run publisher closed.")
