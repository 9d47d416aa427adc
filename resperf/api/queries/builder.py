"""
PromQL query building.

Every expression is wrapped in label_replace(...) so the response series
carries a data_label built by metric_label(). Sub-queries that do not apply
to the inventory come back as '' and are dropped by combine_queries().
None of these functions raise on odd inventory; they just build less.
"""

import logging
from typing import Iterable, List, Optional, Sequence, Union

from ...core.device_rules import (
    DeviceType,
    UsageKind,
    get_rule,
    is_processor_type,
    to_device_type,
    type_name,
)
from ..schemas import Resource
from .constants import (
    ALL_ENERGY_METRIC,
    DEFAULT_STEP,
    ENERGY_METRIC,
    GLOBAL_JOB_FILTER,
    KIB,
    MEMORY_USED_METRIC,
    NETWORK_BYTES_RECV,
    NETWORK_BYTES_SENT,
    PERCENT,
    SECONDS_PER_HOUR,
    SINGLE_USAGE_METRICS,
    STORAGE_USED_METRIC,
    USAGE_RATE_METRIC,
)
from .labels import ALL_TYPES, SINGLE_USAGE_LABEL, MetricKind, job_filter_for, metric_label

logger = logging.getLogger("resperf.queries")

TypeLike = Union[str, DeviceType]


def label_replace(expression: str, data_label: str) -> str:
    """Attach a stable data_label to the series produced by `expression`."""
    return f'label_replace({expression},"data_label","{data_label}","","")'


def selector(metric_pattern: str, job_filter: str) -> str:
    return f'{{__name__=~"{metric_pattern}",job=~"{job_filter}"}}'


def round_percent(expression: str) -> str:
    """Round a ratio*100 expression to 2 decimal places."""
    return f"round(({expression})*{PERCENT})/{PERCENT}"


def combine_queries(queries: Iterable[str]) -> str:
    """Join non-empty sub-queries with ' or '; all empty gives ''."""
    return " or ".join(query for query in queries if query)


def _unique_types(types: Iterable[TypeLike]) -> List[str]:
    names: List[str] = []
    for device_type in types:
        name = type_name(device_type)
        if name and name not in names:
            names.append(name)
    return names


def _resources_of_type(resources: Iterable[Resource], device_type: DeviceType) -> List[Resource]:
    return [resource for resource in resources if resource.device.type == device_type.value]


def build_energy_query(types: Iterable[TypeLike], job_filter: str = GLOBAL_JOB_FILTER, step: str = DEFAULT_STEP) -> str:
    """Energy in Wh per step window for each type (joules increase / 3600)."""
    queries = []
    for name in _unique_types(types):
        expression = (
            f"sum(increase({selector(ENERGY_METRIC.format(type=name), job_filter)}[{step}])"
            f"/{SECONDS_PER_HOUR})"
        )
        queries.append(label_replace(expression, metric_label(name, MetricKind.ENERGY)))
    return combine_queries(queries)


def build_all_energy_query(job_filter: str = GLOBAL_JOB_FILTER, step: str = DEFAULT_STEP) -> str:
    """Energy in Wh per step window summed over every device type."""
    expression = f"sum(increase({selector(ALL_ENERGY_METRIC, job_filter)}[{step}])/{SECONDS_PER_HOUR})"
    return label_replace(expression, metric_label(ALL_TYPES, MetricKind.ENERGY))


def build_usage_query(types: Iterable[TypeLike], job_filter: str = GLOBAL_JOB_FILTER, step: str = DEFAULT_STEP) -> str:
    """Average usage rate for each processor type; other types are skipped."""
    queries = []
    for name in _unique_types(types):
        if not is_processor_type(name):
            continue
        expression = f"avg({selector(USAGE_RATE_METRIC.format(type=name), job_filter)}[{step}])"
        queries.append(label_replace(expression, metric_label(name, MetricKind.USAGE)))
    return combine_queries(queries)


def build_network_query(
    job_filter: str = GLOBAL_JOB_FILTER,
    step: str = DEFAULT_STEP,
    device_types: Optional[Iterable[TypeLike]] = None,
) -> str:
    """
    Network transfer in bytes/s: increase of sent+received counters per window / 3600.

    When `device_types` is given, the query is only built if it contains a network interface.
    """
    if device_types is not None and DeviceType.NETWORK_INTERFACE.value not in _unique_types(device_types):
        return ""
    counters = f"{NETWORK_BYTES_SENT}|{NETWORK_BYTES_RECV}"
    expression = f"sum(increase({selector(counters, job_filter)}[{step}]))/{SECONDS_PER_HOUR}"
    return label_replace(expression, metric_label(DeviceType.NETWORK_INTERFACE, MetricKind.USAGE))


def _sum_volume(resources: Iterable[Resource], device_type: DeviceType) -> float:
    key = get_rule(device_type).volume_key
    total = 0.0
    for resource in _resources_of_type(resources, device_type):
        total += getattr(resource.device, key, None) or 0
    return total


def _number(value: float) -> str:
    """Render a capacity without a trailing .0 for whole numbers."""
    return str(int(value)) if float(value).is_integer() else str(value)


def build_memory_usage_query(resources: Sequence[Resource], job_filter: Optional[str] = None) -> str:
    """
    Memory usage percent across the memory resources (used KiB / capacity).

    Returns '' when the summed capacityMiB is 0.
    """
    capacity_mib = _sum_volume(resources, DeviceType.MEMORY)
    if not capacity_mib:
        return ""
    job_filter = job_filter if job_filter is not None else job_filter_for(resources)
    ratio = f"sum({selector(MEMORY_USED_METRIC, job_filter)})/({_number(capacity_mib)}*{KIB})*{PERCENT}"
    return label_replace(round_percent(ratio), metric_label(DeviceType.MEMORY, MetricKind.USAGE))


def build_storage_usage_query(resources: Sequence[Resource], job_filter: Optional[str] = None) -> str:
    """
    Storage usage percent across the storage resources (used bytes / drive capacity).

    Returns '' when there is no storage device or the summed capacity is 0.
    """
    if not _resources_of_type(resources, DeviceType.STORAGE):
        return ""
    capacity_bytes = _sum_volume(resources, DeviceType.STORAGE)
    if not capacity_bytes:
        return ""
    job_filter = job_filter if job_filter is not None else job_filter_for(resources)
    ratio = f"sum({selector(STORAGE_USED_METRIC, job_filter)})/({_number(capacity_bytes)})*{PERCENT}"
    return label_replace(round_percent(ratio), metric_label(DeviceType.STORAGE, MetricKind.USAGE))


def device_types_of(resources: Iterable[Resource]) -> List[str]:
    """Distinct device types in inventory order."""
    return _unique_types(resource.device.type for resource in resources)


def build_scoped_performance_query(resources: Sequence[Resource], step: str = DEFAULT_STEP) -> str:
    """
    Performance query restricted to a set of resources (node, rack or CXL switch view).

    Energy per type, processor usage per type, memory, storage and network usage.
    """
    if not resources:
        return ""
    job_filter = job_filter_for(resources)
    types = device_types_of(resources)
    query = combine_queries([
        build_energy_query(types, job_filter, step),
        build_usage_query(types, job_filter, step),
        build_memory_usage_query(resources, job_filter),
        build_storage_usage_query(resources, job_filter),
        build_network_query(job_filter, step, device_types=types),
    ])
    logger.debug(f"Scoped performance query for {len(resources)} resources: {len(query)} chars")
    return query


def build_summary_range_query(types: Iterable[TypeLike], step: str = DEFAULT_STEP) -> str:
    """Summary page time-range query: energy per type, total energy and network transfer."""
    types = _unique_types(types)
    if not types:
        return ""
    return combine_queries([
        build_energy_query(types, GLOBAL_JOB_FILTER, step),
        build_all_energy_query(GLOBAL_JOB_FILTER, step),
        build_network_query(GLOBAL_JOB_FILTER, step),
    ])


def build_summary_single_query() -> str:
    """Summary page instant query: per-device usage samples plus total storage used."""
    usage = label_replace(selector(SINGLE_USAGE_METRICS, GLOBAL_JOB_FILTER), SINGLE_USAGE_LABEL)
    storage = label_replace(
        f"sum({selector(STORAGE_USED_METRIC, GLOBAL_JOB_FILTER)})",
        metric_label(DeviceType.STORAGE, MetricKind.USAGE),
    )
    return combine_queries([usage, storage])


def build_resource_usage_query(resource: Resource, step: str = DEFAULT_STEP) -> str:
    """Usage query for a single resource, by its device type rule."""
    device = resource.device
    device_type = to_device_type(device.type)
    rule = get_rule(device_type)
    if rule is None:
        logger.debug(f"No usage query for unknown device type {device.type!r}")
        return ""

    job_filter = device.deviceID
    data_label = metric_label(device.type, MetricKind.USAGE)
    if rule.usage is UsageKind.MEMORY:
        if not device.capacityMiB:
            return ""
        ratio = f"{selector(MEMORY_USED_METRIC, job_filter)}/({_number(device.capacityMiB)}*{KIB})*{PERCENT}"
        return label_replace(round_percent(ratio), data_label)
    if rule.usage is UsageKind.STORAGE:
        if not device.driveCapacityBytes:
            return ""
        ratio = f"{selector(STORAGE_USED_METRIC, job_filter)}/({_number(device.driveCapacityBytes)})*{PERCENT}"
        return label_replace(round_percent(ratio), data_label)
    if rule.usage is UsageKind.NETWORK:
        return build_network_query(job_filter, step)
    if rule.usage is UsageKind.PROCESSOR:
        return label_replace(selector(USAGE_RATE_METRIC.format(type=device.type), job_filter), data_label)
    return ""


def build_resource_query(resource: Optional[Resource], step: str = DEFAULT_STEP) -> str:
    """Resource detail query: the resource's energy plus its usage."""
    if resource is None or to_device_type(resource.device.type) is None:
        return ""
    device = resource.device
    energy = label_replace(
        f"increase({selector(ENERGY_METRIC.format(type=device.type), device.deviceID)}[{step}])/{SECONDS_PER_HOUR}",
        metric_label(device.type, MetricKind.ENERGY),
    )
    return combine_queries([energy, build_resource_usage_query(resource, step)])
