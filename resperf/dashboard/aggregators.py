"""
Aggregations over instant query responses and the inventory snapshot.

Usage histograms, the storage gauge triple, number cards and allocated
device/volume figures. Missing inputs give None rather than errors.
"""

import logging
import math
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from ..api.queries import find_samples, metric_label, to_single_response
from ..api.queries.constants import KIB, PERCENT
from ..api.queries.labels import MetricKind
from ..api.schemas import APIPromQLSingle, Inventory, Resource
from ..core.device_rules import DeviceType, get_rule, type_name, upper_first
from .config import (
    CRITICAL_HEALTH,
    DISABLED_STATE,
    HISTOGRAM_BUCKET_WIDTH,
    HISTOGRAM_RANGES,
    SUMMARY_TAB,
    WARNING_HEALTH,
    ResourceCategory,
)
from .formatters import bytes_to_unit, format_unit_value, type_to_unit

logger = logging.getLogger("resperf.dashboard")

HistogramRow = Dict[str, Union[str, int]]
TypeLike = Union[str, DeviceType]


def _parse_int(value: Any) -> int:
    """Integer part of a sample value; unparseable values count as 0."""
    try:
        number = float(value)
    except (ValueError, TypeError):
        return 0
    return int(number) if math.isfinite(number) else 0


def _find_resource(inventory: Optional[Inventory], device_id: Optional[str]) -> Optional[Resource]:
    if inventory is None or device_id is None:
        return None
    for resource in inventory.resources:
        if resource.device.deviceID == device_id:
            return resource
    return None


def histogram_bucket(usage: float) -> int:
    """Index into HISTOGRAM_RANGES: 0 only for exactly 0, 100 and above in the last bucket."""
    if usage == 0:
        return 0
    index = math.floor(usage / HISTOGRAM_BUCKET_WIDTH) + 1
    return max(0, min(index, len(HISTOGRAM_RANGES) - 1))


def parse_histogram_data(
    single: Union[APIPromQLSingle, Mapping, None],
    types: Iterable[TypeLike],
    inventory: Optional[Inventory],
) -> Optional[List[HistogramRow]]:
    """
    Count devices per usage bucket and type from an instant usage response.

    The type of a sample is the first part of its metric name. Memory usage is
    computed against the capacityMiB of the resource whose deviceID equals the
    sample job; samples without that capacity are skipped.

    Returns:
        One row per bucket, {"name": "<range>", "<Type>": count, ...},
        or None when no sample matched the requested types
    """
    response = to_single_response(single)
    if response is None:
        return None

    names = [type_name(t) for t in types]
    histogram: List[HistogramRow] = [{"name": bucket} for bucket in HISTOGRAM_RANGES]
    for row in histogram:
        for name in names:
            row[upper_first(name)] = 0

    found = False
    for sample in response.data.result:
        metric_name = sample.metric.name or ""
        device_type = metric_name.split("_")[0]
        if device_type not in names or sample.value is None:
            continue

        if device_type == DeviceType.MEMORY.value:
            resource = _find_resource(inventory, sample.metric.job)
            capacity_mib = resource.device.capacityMiB if resource else None
            if not capacity_mib:
                logger.debug(f"Skipping memory sample without capacity: job={sample.metric.job}")
                continue
            usage = _parse_int(sample.value[1]) / (capacity_mib * KIB) * PERCENT
        else:
            usage = _parse_int(sample.value[1])

        row = histogram[histogram_bucket(usage)]
        column = upper_first(device_type)
        row[column] = int(row.get(column, 0)) + 1
        found = True

    return histogram if found else None


def _sum_drive_capacity(resources: Iterable[Resource]) -> float:
    return sum(resource.device.driveCapacityBytes or 0 for resource in resources)


def parse_storage_graph_data(
    inventory: Optional[Inventory],
    single: Union[APIPromQLSingle, Mapping, None],
) -> Dict[str, Optional[float]]:
    """
    Storage gauge values in bytes: {"used", "allocated", "overall"}.

    `used` comes from the storage_usage instant sample, `allocated` and `overall`
    from drive capacities in the inventory. Each is None when its source is missing.
    """
    used = None
    samples = find_samples(to_single_response(single), metric_label(DeviceType.STORAGE, MetricKind.USAGE))
    if samples and samples[0].value is not None:
        used = _parse_int(samples[0].value[1])

    allocated = overall = None
    if inventory is not None:
        storage = [r for r in inventory.resources if r.device.type == DeviceType.STORAGE.value]
        allocated = _sum_drive_capacity(r for r in storage if r.is_allocated)
        overall = _sum_drive_capacity(storage)

    return {"used": used, "allocated": allocated, "overall": overall}


def _in_tab(resource: Resource, tab: Optional[TypeLike]) -> bool:
    if tab is None or type_name(tab) == SUMMARY_TAB:
        return True
    return resource.device.type == type_name(tab)


def _matches_category(resource: Resource, category: ResourceCategory) -> bool:
    status = resource.device.status
    if category is ResourceCategory.TOTAL:
        return True
    if category is ResourceCategory.UNALLOCATED:
        return not resource.is_allocated
    if category is ResourceCategory.DISABLED:
        return status.state == DISABLED_STATE
    if category is ResourceCategory.WARNING:
        return status.health == WARNING_HEALTH
    if category is ResourceCategory.CRITICAL:
        return status.health == CRITICAL_HEALTH
    return not resource.annotation.available


def count_resources(
    inventory: Optional[Inventory],
    tab: Optional[TypeLike],
    category: Union[str, ResourceCategory] = ResourceCategory.TOTAL,
) -> Optional[int]:
    """Number of resources of a tab (device type or 'summary') in a category."""
    if inventory is None:
        return None
    category = ResourceCategory(category)
    return sum(
        1 for resource in inventory.resources
        if _in_tab(resource, tab) and _matches_category(resource, category)
    )


def count_by_category(inventory: Optional[Inventory], tab: Optional[TypeLike]) -> Dict[str, Optional[int]]:
    """All number cards of a tab."""
    return {category.value: count_resources(inventory, tab, category) for category in ResourceCategory}


def count_by_type(inventory: Optional[Inventory], types: Iterable[TypeLike]) -> Dict[str, int]:
    """Resources per device type; types absent from the inventory count 0."""
    counts = {type_name(t): 0 for t in types}
    if inventory is None:
        return counts
    for resource in inventory.resources:
        if resource.device.type in counts:
            counts[resource.device.type] += 1
    return counts


def allocated_item(inventory: Optional[Inventory], tab: TypeLike) -> Optional[Dict[str, Dict[str, Any]]]:
    """
    Allocated vs all figures for a tab.

    Always has "device" counts; memory and storage tabs also get "volume" figures
    formatted in the unit picked for the total volume.
    """
    if inventory is None:
        return None

    in_tab = [r for r in inventory.resources if _in_tab(r, tab)]
    item: Dict[str, Dict[str, Any]] = {
        "device": {
            "allocated": sum(1 for r in in_tab if r.is_allocated),
            "all": len(in_tab),
        },
    }

    rule = get_rule(tab)
    if rule is not None and rule.volume_key:
        def volume(resources: Iterable[Resource]) -> float:
            return sum(getattr(r.device, rule.volume_key) or 0 for r in resources)

        all_volume = volume(in_tab)
        allocated_volume = volume(r for r in in_tab if r.is_allocated)
        unit = type_to_unit(tab, all_volume)
        item["volume"] = {
            "allocated": format_unit_value(tab, allocated_volume, unit),
            "all": format_unit_value(tab, all_volume, unit),
            "unit": unit,
        }
    return item


def _gauge_values(value: Optional[float], total: Optional[float]) -> Dict[str, str]:
    if value is None or not total:
        return {"bytes": "B", "percentage": "-"}
    unit = bytes_to_unit(value)
    return {
        "bytes": f"{format_unit_value(DeviceType.STORAGE, value, unit)} {unit}",
        "percentage": f"{math.floor(PERCENT * value / total)}%",
    }


def summarize_storage(data: Mapping[str, Optional[float]]) -> Dict[str, Any]:
    """
    Display labels for the storage gauge.

    Examples:
        >>> summarize_storage({"used": 1024 ** 3, "allocated": None, "overall": 4 * 1024 ** 3})["used"]
        {'bytes': '1.00 GiB', 'percentage': '25%'}
    """
    overall = data.get("overall")
    if overall is None:
        overall_bytes = "- B"
    else:
        unit = bytes_to_unit(overall)
        overall_bytes = f"{format_unit_value(DeviceType.STORAGE, overall, unit)} {unit}"
    return {
        "used": _gauge_values(data.get("used"), overall),
        "allocated": _gauge_values(data.get("allocated"), overall),
        "overall": overall_bytes,
    }
