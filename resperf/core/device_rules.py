"""
Device type rules using a table-driven approach.

Every place that used to branch on the device type string (query building,
volume units, graph formatting) looks the type up in DEVICE_RULES instead.
Adding a device type means adding one row here.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Union


class DeviceType(str, Enum):
    """Closed set of device types reported by the configuration manager."""

    CPU = "CPU"
    GPU = "GPU"
    ACCELERATOR = "Accelerator"
    DSP = "DSP"
    FPGA = "FPGA"
    UNKNOWN_PROCESSOR = "UnknownProcessor"
    MEMORY = "memory"
    STORAGE = "storage"
    NETWORK_INTERFACE = "networkInterface"
    GRAPHIC_CONTROLLER = "graphicController"
    VIRTUAL_MEDIA = "virtualMedia"

    def __str__(self) -> str:
        return self.value


class UsageKind(str, Enum):
    """How the usage graph of a device type is computed and displayed."""

    PROCESSOR = "processor"    # <type>_usageRate, percent
    MEMORY = "memory"          # used KiB against capacityMiB, percent
    STORAGE = "storage"        # used bytes against driveCapacityBytes, percent
    NETWORK = "network"        # byte counters, bit/s
    NONE = "none"              # no usage graph


@dataclass(frozen=True)
class DeviceRule:
    usage: UsageKind
    # Inventory field holding the device volume and the number of bytes in one unit of it
    volume_key: Optional[str] = None
    volume_scale: int = 1
    # Energy graphs are not drawn for these types
    has_energy_graph: bool = True

    @property
    def is_processor(self) -> bool:
        return self.usage is UsageKind.PROCESSOR


_PROCESSOR = DeviceRule(usage=UsageKind.PROCESSOR)

DEVICE_RULES: Dict[DeviceType, DeviceRule] = {
    DeviceType.ACCELERATOR: _PROCESSOR,
    DeviceType.CPU: _PROCESSOR,
    DeviceType.DSP: _PROCESSOR,
    DeviceType.FPGA: _PROCESSOR,
    DeviceType.GPU: _PROCESSOR,
    DeviceType.UNKNOWN_PROCESSOR: _PROCESSOR,
    DeviceType.MEMORY: DeviceRule(usage=UsageKind.MEMORY, volume_key="capacityMiB", volume_scale=1024 ** 2),
    DeviceType.STORAGE: DeviceRule(usage=UsageKind.STORAGE, volume_key="driveCapacityBytes", volume_scale=1),
    DeviceType.NETWORK_INTERFACE: DeviceRule(usage=UsageKind.NETWORK),
    DeviceType.GRAPHIC_CONTROLLER: DeviceRule(usage=UsageKind.NONE, has_energy_graph=False),
    DeviceType.VIRTUAL_MEDIA: DeviceRule(usage=UsageKind.NONE, has_energy_graph=False),
}

# Display order used by the dashboard tabs
DEVICE_TYPE_ORDER: List[DeviceType] = [
    DeviceType.ACCELERATOR,
    DeviceType.CPU,
    DeviceType.DSP,
    DeviceType.FPGA,
    DeviceType.GPU,
    DeviceType.UNKNOWN_PROCESSOR,
    DeviceType.MEMORY,
    DeviceType.STORAGE,
    DeviceType.NETWORK_INTERFACE,
    DeviceType.GRAPHIC_CONTROLLER,
    DeviceType.VIRTUAL_MEDIA,
]

PROCESSOR_TYPES: List[DeviceType] = [t for t in DEVICE_TYPE_ORDER if DEVICE_RULES[t].is_processor]


def to_device_type(value: Union[str, DeviceType, None]) -> Optional[DeviceType]:
    """Return the DeviceType for a raw type string, or None if it is not a known type."""
    if isinstance(value, DeviceType):
        return value
    try:
        return DeviceType(value)
    except ValueError:
        return None


def get_rule(value: Union[str, DeviceType, None]) -> Optional[DeviceRule]:
    device_type = to_device_type(value)
    return DEVICE_RULES.get(device_type) if device_type else None


def type_name(value: Union[str, DeviceType]) -> str:
    """Plain type string as used in metric names and data labels."""
    return value.value if isinstance(value, DeviceType) else str(value)


def is_processor_type(value: Union[str, DeviceType, None]) -> bool:
    rule = get_rule(value)
    return bool(rule and rule.is_processor)


def upper_first(value: Union[str, DeviceType]) -> str:
    """Column title for a type: 'memory' -> 'Memory', 'CPU' stays 'CPU'."""
    name = type_name(value)
    return name[:1].upper() + name[1:]
