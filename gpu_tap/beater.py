from __future__ import annotations

import logging
import threading
import time

from gpu_tap.config import CollectorConfig, PublishConfig
from gpu_tap.errors import CommandFailed, DecodeFailed
from gpu_tap.events import build_events
from gpu_tap.publisher import Publisher, serialize_event
from gpu_tap.schema import validate_event
from gpu_tap.snapshot import SnapshotParser


class GpuTap:
    """Runs the poll-parse-emit cycle on a fixed period until stopped.

    The publisher is owned by the tap: it is connected when ``run`` starts
    and disconnected exactly once when ``run`` returns. Cycles run on the
    calling thread, so they never overlap; a cycle that overruns the period
    delays the next tick instead of queueing ticks.
    """

    def __init__(
        self,
        collector: CollectorConfig,
        publish: PublishConfig,
        publisher: Publisher,
        parser: SnapshotParser | None = None,
    ) -> None:
        self.collector = collector
        self.period_s = publish.period_s
        self.publisher = publisher
        self.parser = parser or SnapshotParser(collector)
        self.logger = logging.getLogger(self.__class__.__name__)
        self._done = threading.Event()
        self._started = False

    @property
    def running(self) -> bool:
        return self._started and not self._done.is_set()

    def stop(self) -> None:
        if not self._done.is_set():
            self.logger.info("Stop requested.")
        self._done.set()

    def run(self) -> None:
        if self._done.is_set():
            self.logger.info("gpu-tap already stopped; not starting.")
            return
        self._started = True
        self.logger.info(
            "gpu-tap is running, polling every %s seconds. Hit CTRL-C to stop it.",
            self.period_s,
        )
        self.publisher.connect()
        try:
            next_tick = time.monotonic() + self.period_s
            # wait() returns True as soon as stop() is called, even mid-wait
            while not self._done.wait(max(0.0, next_tick - time.monotonic())):
                self.run_cycle()
                next_tick += self.period_s
                now = time.monotonic()
                if next_tick < now:
                    self.logger.warning(
                        "Cycle overran the %ss period; next tick delayed.", self.period_s
                    )
                    next_tick = now
        finally:
            self._done.set()
            self.publisher.disconnect()
            self.logger.info("gpu-tap stopped.")

    def run_cycle(self) -> int:
        """Poll nvidia-smi once and publish the resulting events.

        Returns the number of events published; 0 when the command or the
        decode failed.
        """
        try:
            snapshot = self.parser.collect()
        except CommandFailed as e:
            self.logger.error("Failed to run nvidia-smi: %s", e)
            return 0
        except DecodeFailed as e:
            self.logger.error("Failed to decode nvidia-smi output: %s", e)
            return 0

        events = build_events(snapshot, track_processes=self.collector.track_processes)
        published = 0
        for event in events:
            schema_errors = validate_event(serialize_event(event))
            if schema_errors:
                self.logger.warning(
                    "Schema validation failed for %s event with %s errors.",
                    event.type,
                    len(schema_errors),
                )
                self.logger.debug("Schema errors: %s", schema_errors)
            if self.publisher.publish_event(event):
                published += 1
                self.logger.debug("GPU metric event sent")
        self.logger.info("Published %s of %s events.", published, len(events))
        return published
