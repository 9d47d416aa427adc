"""Pytest configuration and shared fixtures"""
import pytest
import os
import sys
from datetime import datetime, timezone

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from resperf.api.schemas import Inventory, Resource

GIB = 1024 ** 3
TIB = 1024 ** 4


def make_resource(device_id, device_type, node_ids=None, state="Enabled", health="OK",
                  available=True, **device_fields):
    """Build an inventory resource the way the configuration manager returns it"""
    return Resource.model_validate({
        "device": {
            "deviceID": device_id,
            "type": device_type,
            "status": {"state": state, "health": health},
            **device_fields,
        },
        "annotation": {"available": available},
        "nodeIDs": node_ids or [],
        "resourceGroupIDs": [],
    })


@pytest.fixture
def sample_resources():
    """Mixed inventory: processors, memory, storage and a network interface"""
    return [
        make_resource("cpu-1", "CPU", node_ids=["node-1"]),
        make_resource("cpu-2", "CPU", health="Warning"),
        make_resource("gpu-1", "GPU", node_ids=["node-1"], state="Disabled"),
        make_resource("mem-1", "memory", node_ids=["node-1"], capacityMiB=16384),
        make_resource("mem-2", "memory", capacityMiB=16384, health="Critical"),
        make_resource("sto-1", "storage", node_ids=["node-1"], driveCapacityBytes=2 * GIB),
        make_resource("sto-2", "storage", driveCapacityBytes=2 * GIB, available=False),
        make_resource("nic-1", "networkInterface", node_ids=["node-1"]),
    ]


@pytest.fixture
def sample_inventory(sample_resources):
    return Inventory(count=len(sample_resources), resources=sample_resources)


@pytest.fixture
def fixed_now():
    """Wall clock used instead of datetime.now() in tests"""
    return datetime(2023, 12, 6, 12, 30, tzinfo=timezone.utc)


@pytest.fixture
def range_response():
    """query_range response with energy, usage and network series"""
    return {
        "status": "success",
        "data": {
            "resultType": "matrix",
            "result": [
                {
                    "metric": {"data_label": "CPU_energy"},
                    "values": [[1701820800, "1"], [1701824400, "2"]],
                },
                {
                    "metric": {"data_label": "memory_energy"},
                    "values": [[1701824400, "3"], [1701828000, "4"]],
                },
                {
                    "metric": {"data_label": "all_energy"},
                    "values": [[1701820800, "10"], [1701824400, "20"]],
                },
                {
                    "metric": {"data_label": "CPU_usage"},
                    "values": [[1701820800, "12.5"], [1701824400, "NaN"]],
                },
                {
                    "metric": {"data_label": "networkInterface_usage"},
                    "values": [[1701820800, "1024"]],
                },
            ],
        },
    }


@pytest.fixture
def single_response():
    """Instant query response with usage samples and total storage used"""
    return {
        "status": "success",
        "data": {
            "resultType": "vector",
            "result": [
                {"metric": {"__name__": "CPU_usageRate", "data_label": "usage", "job": "cpu-1"},
                 "value": [1701755114.437, "0"]},
                {"metric": {"__name__": "CPU_usageRate", "data_label": "usage", "job": "cpu-2"},
                 "value": [1701755114.437, "45"]},
                {"metric": {"__name__": "GPU_usageRate", "data_label": "usage", "job": "gpu-1"},
                 "value": [1701755114.437, "100"]},
                {"metric": {"__name__": "memory_usedMemory", "data_label": "usage", "job": "mem-1"},
                 "value": [1701755114.437, "8388608"]},
                {"metric": {"data_label": "storage_usage"},
                 "value": [1701755114.437, str(1 * GIB)]},
            ],
        },
    }
