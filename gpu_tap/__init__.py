"""gpu-tap NVIDIA GPU metrics collector."""

from gpu_tap.beater import GpuTap
from gpu_tap.config import AppConfig, load_config
from gpu_tap.errors import CommandFailed, DecodeFailed, GpuTapError, MalformedUnitString
from gpu_tap.events import Event, build_events
from gpu_tap.mqtt_client import MqttPublisher
from gpu_tap.schema import validate_event
from gpu_tap.snapshot import Snapshot, SnapshotParser, decode_snapshot

__all__ = [
    "AppConfig",
    "CommandFailed",
    "DecodeFailed",
    "Event",
    "GpuTap",
    "GpuTapError",
    "MalformedUnitString",
    "MqttPublisher",
    "Snapshot",
    "SnapshotParser",
    "build_events",
    "decode_snapshot",
    "load_config",
    "validate_event",
]
