from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import configparser

MIN_PERIOD_S = 0.1


@dataclass(frozen=True)
class MqttConfig:
    host: str
    port: int
    base_topic: str
    client_id: str
    username: str | None
    password: str | None
    qos: int
    retain: bool
    tls_enabled: bool
    ca_cert: str | None
    keepalive: int


@dataclass(frozen=True)
class PublishConfig:
    period_s: float


@dataclass(frozen=True)
class CollectorConfig:
    nvidia_smi_path: str
    command_timeout_s: float
    track_processes: bool


@dataclass(frozen=True)
class AppConfig:
    mqtt: MqttConfig
    publish: PublishConfig
    collector: CollectorConfig


def _get_optional(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value if value else None


def load_config(path: str | Path) -> AppConfig:
    parser = configparser.ConfigParser()
    read_files = parser.read(path)
    if not read_files:
        raise FileNotFoundError(f"Config file not found: {path}")

    mqtt_section = parser["mqtt"]

    mqtt = MqttConfig(
        host=mqtt_section.get("host", "localhost"),
        port=mqtt_section.getint("port", 1883),
        base_topic=mqtt_section.get("base_topic", "telemetry/gpu"),
        client_id=mqtt_section.get("client_id", "gpu-tap"),
        username=_get_optional(mqtt_section.get("username")),
        password=_get_optional(mqtt_section.get("password")),
        qos=mqtt_section.getint("qos", 0),
        retain=mqtt_section.getboolean("retain", False),
        tls_enabled=mqtt_section.getboolean("tls", False),
        ca_cert=_get_optional(mqtt_section.get("ca_cert")),
        keepalive=mqtt_section.getint("keepalive", 60),
    )

    # Use parser.get* with fallback to handle missing [publish]/[collector] sections
    publish = PublishConfig(
        period_s=max(
            MIN_PERIOD_S, parser.getfloat("publish", "period_s", fallback=1.0)
        ),
    )

    collector = CollectorConfig(
        nvidia_smi_path=parser.get("collector", "nvidia_smi_path", fallback="nvidia-smi"),
        command_timeout_s=parser.getfloat("collector", "command_timeout_s", fallback=10.0),
        track_processes=parser.getboolean("collector", "track_processes", fallback=True),
    )

    return AppConfig(mqtt=mqtt, publish=publish, collector=collector)
