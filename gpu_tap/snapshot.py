from __future__ import annotations

from dataclasses import dataclass, field, fields
import logging
import subprocess
from typing import Any, Callable, TypeVar

from lxml import etree

from gpu_tap.config import CollectorConfig
from gpu_tap.errors import CommandFailed, DecodeFailed
from gpu_tap.logging_utils import TRACE_LEVEL

ROOT_TAG = "nvidia_smi_log"
NVIDIA_SMI_ARGS = ("-q", "-x")

T = TypeVar("T")


def xml_field(
    path: str,
    *,
    default: Any = "",
    required: bool = False,
    convert: Callable[[str], Any] | None = None,
    many: type | None = None,
) -> Any:
    """Declare a dataclass field decoded from an XML path.

    ``path`` is relative to the record's element: ``@name`` reads an
    attribute, ``a/b`` reads nested element text, and with ``many`` every
    element matching the path is decoded into a record of that type.
    """
    metadata = {"xml": path, "required": required, "convert": convert, "many": many}
    if many is not None:
        return field(default=(), metadata=metadata)
    return field(default=default, metadata=metadata)


@dataclass(frozen=True)
class Process:
    pid: str = xml_field("pid")
    process_name: str = xml_field("process_name")
    used_memory: str = xml_field("used_memory")


@dataclass(frozen=True)
class Device:
    id: str = xml_field("@id", required=True)
    fb_memory_total: str = xml_field("fb_memory_usage/total")
    fb_memory_free: str = xml_field("fb_memory_usage/free")
    fb_memory_used: str = xml_field("fb_memory_usage/used")
    bar1_memory_total: str = xml_field("bar1_memory_usage/total")
    bar1_memory_free: str = xml_field("bar1_memory_usage/free")
    bar1_memory_used: str = xml_field("bar1_memory_usage/used")
    gpu_util: str = xml_field("utilization/gpu_util")
    memory_util: str = xml_field("utilization/memory_util")
    processes: tuple[Process, ...] = xml_field("processes/process_info", many=Process)


@dataclass(frozen=True)
class Snapshot:
    timestamp: str = xml_field("timestamp")
    driver_version: str = xml_field("driver_version")
    attached_gpus: int = xml_field("attached_gpus", default=0, convert=int)
    gpus: tuple[Device, ...] = xml_field("gpu", many=Device)


def _decode(cls: type[T], element: etree._Element) -> T:
    values: dict[str, Any] = {}
    for f in fields(cls):
        path = f.metadata["xml"]
        many = f.metadata["many"]
        if many is not None:
            values[f.name] = tuple(_decode(many, child) for child in element.iterfind(path))
            continue

        if path.startswith("@"):
            raw = element.get(path[1:])
        else:
            node = element.find(path)
            raw = node.text if node is not None else None
        raw = raw.strip() if raw else ""

        if not raw:
            if f.metadata["required"]:
                raise DecodeFailed(f"<{element.tag}> is missing {path!r}")
            values[f.name] = f.default
            continue

        convert = f.metadata["convert"]
        if convert is None:
            values[f.name] = raw
            continue
        try:
            values[f.name] = convert(raw)
        except ValueError as e:
            raise DecodeFailed(f"<{element.tag}> has invalid {path!r}: {raw!r}") from e
    return cls(**values)


def decode_snapshot(data: bytes) -> Snapshot:
    """Decode ``nvidia-smi -q -x`` output into a Snapshot.

    Raises DecodeFailed if the output is not well-formed XML, is not an
    nvidia_smi_log document, or describes a device without a unique id.
    """
    if not data or not data.strip():
        raise DecodeFailed("nvidia-smi produced no output")
    # The output references an external DTD; never fetch or expand it.
    parser = etree.XMLParser(resolve_entities=False, no_network=True, load_dtd=False)
    try:
        root = etree.fromstring(data, parser)
    except (etree.XMLSyntaxError, ValueError) as e:
        raise DecodeFailed(f"nvidia-smi output is not well-formed XML: {e}") from e
    if root.tag != ROOT_TAG:
        raise DecodeFailed(f"Expected <{ROOT_TAG}> root element, got <{root.tag}>")

    snapshot = _decode(Snapshot, root)
    seen: set[str] = set()
    for device in snapshot.gpus:
        if device.id in seen:
            raise DecodeFailed(f"Duplicate GPU id {device.id!r}")
        seen.add(device.id)
    return snapshot


class SnapshotParser:
    def __init__(self, config: CollectorConfig) -> None:
        self.config = config
        self.logger = logging.getLogger(self.__class__.__name__)

    @property
    def command(self) -> list[str]:
        return [self.config.nvidia_smi_path, *NVIDIA_SMI_ARGS]

    def run_command(self) -> bytes:
        command = self.command
        try:
            result = subprocess.run(
                command,
                check=False,
                capture_output=True,
                timeout=self.config.command_timeout_s,
            )
        except FileNotFoundError as e:
            raise CommandFailed(command, "command not found") from e
        except subprocess.TimeoutExpired as e:
            raise CommandFailed(command, f"timed out after {e.timeout}s") from e
        except OSError as e:
            raise CommandFailed(command, str(e)) from e

        stderr = (result.stderr or b"").decode("utf-8", errors="replace").strip()
        if result.returncode != 0:
            if stderr:
                self.logger.log(TRACE_LEVEL, "stderr: %s", stderr)
            raise CommandFailed(
                command,
                f"exited with status {result.returncode}",
                returncode=result.returncode,
                stderr=stderr or None,
            )
        self.logger.log(
            TRACE_LEVEL,
            "stdout: %s",
            result.stdout.decode("utf-8", errors="replace").strip(),
        )
        return result.stdout

    def collect(self) -> Snapshot:
        self.logger.debug("Running %s", " ".join(self.command))
        snapshot = decode_snapshot(self.run_command())
        if snapshot.attached_gpus != len(snapshot.gpus):
            self.logger.warning(
                "nvidia-smi reports %s attached GPUs but listed %s",
                snapshot.attached_gpus,
                len(snapshot.gpus),
            )
        self.logger.debug(
            "Decoded snapshot at %s (driver %s, %s GPUs)",
            snapshot.timestamp,
            snapshot.driver_version,
            len(snapshot.gpus),
        )
        return snapshot
