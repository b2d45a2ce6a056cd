from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Mapping

from gpu_tap.snapshot import Device, Process, Snapshot
from gpu_tap.units import unit_value

GPU_EVENT = "gpu"
GPU_PROCESS_EVENT = "gpu_process"


@dataclass(frozen=True)
class Event:
    timestamp: datetime
    type: str
    fields: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))

    def to_dict(self) -> dict[str, Any]:
        return {
            "@timestamp": self.timestamp.isoformat(timespec="milliseconds"),
            "type": self.type,
            self.type: dict(self.fields),
        }


def _now() -> datetime:
    return datetime.now(timezone.utc)


def build_gpu_event(device: Device) -> Event:
    return Event(
        timestamp=_now(),
        type=GPU_EVENT,
        fields={
            "id": device.id,
            "frame_buffer_total_mb": unit_value(device.fb_memory_total),
            "frame_buffer_free_mb": unit_value(device.fb_memory_free),
            "frame_buffer_used_mb": unit_value(device.fb_memory_used),
            "bar1_total_mb": unit_value(device.bar1_memory_total),
            "bar1_free_mb": unit_value(device.bar1_memory_free),
            "bar1_used_mb": unit_value(device.bar1_memory_used),
            "processor_utilization_pct": unit_value(device.gpu_util),
            "memory_utilization_pct": unit_value(device.memory_util),
            "process_count": len(device.processes),
        },
    )


def build_process_event(device: Device, process: Process) -> Event:
    return Event(
        timestamp=_now(),
        type=GPU_PROCESS_EVENT,
        fields={
            "gpu_id": device.id,
            "process_id": process.pid,
            "process": process.process_name,
            "memory_used_mb": unit_value(process.used_memory),
        },
    )


def build_events(snapshot: Snapshot, track_processes: bool = True) -> list[Event]:
    """Flatten a snapshot into events.

    Each device yields one ``gpu`` event, followed by one ``gpu_process``
    event per process when ``track_processes`` is set. Every event is
    stamped with its own build time.
    """
    events: list[Event] = []
    for device in snapshot.gpus:
        events.append(build_gpu_event(device))
        if not track_processes:
            continue
        for process in device.processes:
            events.append(build_process_event(device, process))
    return events
