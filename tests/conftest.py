"""Pytest configuration and shared fixtures."""
from __future__ import annotations

import pytest

from gpu_tap.config import CollectorConfig, MqttConfig, PublishConfig

# Trimmed `nvidia-smi -q -x` output from a two-GPU host
NVIDIA_SMI_XML = b"""<?xml version="1.0" ?>
<!DOCTYPE nvidia_smi_log SYSTEM "nvsmi_device_v12.dtd">
<nvidia_smi_log>
\t<timestamp>Mon Oct 19 16:39:02 2026</timestamp>
\t<driver_version>550.54.15</driver_version>
\t<cuda_version>12.4</cuda_version>
\t<attached_gpus>2</attached_gpus>
\t<gpu id="00000000:01:00.0">
\t\t<product_name>NVIDIA RTX A4000</product_name>
\t\t<fb_memory_usage>
\t\t\t<total>16376 MiB</total>
\t\t\t<reserved>248 MiB</reserved>
\t\t\t<used>4021 MiB</used>
\t\t\t<free>12106 MiB</free>
\t\t</fb_memory_usage>
\t\t<bar1_memory_usage>
\t\t\t<total>256 MiB</total>
\t\t\t<used>5 MiB</used>
\t\t\t<free>251 MiB</free>
\t\t</bar1_memory_usage>
\t\t<utilization>
\t\t\t<gpu_util>87 %</gpu_util>
\t\t\t<memory_util>41 %</memory_util>
\t\t\t<encoder_util>0 %</encoder_util>
\t\t\t<decoder_util>0 %</decoder_util>
\t\t</utilization>
\t\t<processes>
\t\t\t<process_info>
\t\t\t\t<gpu_instance_id>N/A</gpu_instance_id>
\t\t\t\t<compute_instance_id>N/A</compute_instance_id>
\t\t\t\t<pid>2231</pid>
\t\t\t\t<type>G</type>
\t\t\t\t<process_name>/usr/lib/xorg/Xorg</process_name>
\t\t\t\t<used_memory>12 MiB</used_memory>
\t\t\t</process_info>
\t\t\t<process_info>
\t\t\t\t<gpu_instance_id>N/A</gpu_instance_id>
\t\t\t\t<compute_instance_id>N/A</compute_instance_id>
\t\t\t\t<pid>48810</pid>
\t\t\t\t<type>C</type>
\t\t\t\t<process_name>python3</process_name>
\t\t\t\t<used_memory>4002 MiB</used_memory>
\t\t\t</process_info>
\t\t</processes>
\t</gpu>
\t<gpu id="00000000:02:00.0">
\t\t<product_name>NVIDIA RTX A4000</product_name>
\t\t<fb_memory_usage>
\t\t\t<total>16376 MiB</total>
\t\t\t<reserved>248 MiB</reserved>
\t\t\t<used>1 MiB</used>
\t\t\t<free>16126 MiB</free>
\t\t</fb_memory_usage>
\t\t<bar1_memory_usage>
\t\t\t<total>256 MiB</total>
\t\t\t<used>2 MiB</used>
\t\t\t<free>254 MiB</free>
\t\t</bar1_memory_usage>
\t\t<utilization>
\t\t\t<gpu_util>0 %</gpu_util>
\t\t\t<memory_util>0 %</memory_util>
\t\t</utilization>
\t\t<processes>
\t\t</processes>
\t</gpu>
</nvidia_smi_log>
"""


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "lifecycle: mark test as exercising the threaded run loop"
    )


@pytest.fixture
def nvidia_smi_xml():
    return NVIDIA_SMI_XML


@pytest.fixture
def collector_config():
    """Create a collector config for testing."""
    return CollectorConfig(
        nvidia_smi_path="nvidia-smi",
        command_timeout_s=5.0,
        track_processes=True,
    )


@pytest.fixture
def publish_config():
    return PublishConfig(period_s=0.01)


@pytest.fixture
def mqtt_config():
    return MqttConfig(
        host="broker.local",
        port=1883,
        base_topic="telemetry/gpu",
        client_id="gpu-tap-test",
        username=None,
        password=None,
        qos=1,
        retain=False,
        tls_enabled=False,
        ca_cert=None,
        keepalive=30,
    )
