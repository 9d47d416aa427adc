"""
data_label naming and job filters.

The data_label injected by label_replace is the only join key between a
built query and the parsed response, so both sides build it here.
"""

from enum import Enum
from typing import Iterable, Union

from ...core.device_rules import DeviceType, type_name
from ..schemas import Resource


class MetricKind(str, Enum):
    ENERGY = "energy"
    USAGE = "usage"

    def __str__(self) -> str:
        return self.value


# Pseudo type covering every device in the "all energy" series
ALL_TYPES = "all"
# Label shared by every sample of the summary instant usage query
SINGLE_USAGE_LABEL = "usage"


def metric_label(device_type: Union[str, DeviceType], kind: Union[str, MetricKind]) -> str:
    """
    Build the data_label for a device type and metric kind.

    Examples:
        >>> metric_label(DeviceType.CPU, MetricKind.ENERGY)
        'CPU_energy'
        >>> metric_label('networkInterface', 'usage')
        'networkInterface_usage'
    """
    kind_name = kind.value if isinstance(kind, MetricKind) else str(kind)
    return f"{type_name(device_type)}_{kind_name}"


def job_filter_for(resources: Iterable[Resource]) -> str:
    """Pipe-joined device IDs restricting a query to the given resources."""
    return "|".join(resource.device.deviceID for resource in resources)
