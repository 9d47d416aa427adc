"""
Dashboard Controller

Assembles the graph bundles of the summary, node-detail and resource-detail
views. All methods return plain dicts ready to be serialized as JSON.
"""

import logging
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from ..api.performance_client import BackendError, InventoryClient, PerformanceClient
from ..api.queries import (
    ALL_TYPES,
    MetricKind,
    build_resource_query,
    build_scoped_performance_query,
    build_summary_range_query,
    build_summary_single_query,
    create_query_params,
    default_date_range,
    device_types_of,
    get_step_from_range,
    is_end_today,
    merge_multi_graph_data,
    metric_label,
    normalize_date_range,
    parse_graph_data,
    to_iso,
)
from ..api.queries.step import current_time
from ..api.schemas import APIPromQL, APIPromQLSingle, Inventory, Resource
from ..core.config import ServerConfig
from ..core.device_rules import (
    DEVICE_TYPE_ORDER,
    PROCESSOR_TYPES,
    DeviceType,
    UsageKind,
    get_rule,
    type_name,
)
from .aggregators import (
    allocated_item,
    count_by_category,
    count_by_type,
    parse_histogram_data,
    parse_storage_graph_data,
    summarize_storage,
)
from .config import SUMMARY_GRAPHS, SUMMARY_TAB, GraphType, get_graph_title

logger = logging.getLogger("resperf.dashboard")


class GraphState(str, Enum):
    """Display state of one graph. Loading, no data and error are never merged."""

    LOADING = "loading"
    READY = "ready"
    NO_DATA = "no_data"
    ERROR = "error"

    def __str__(self) -> str:
        return self.value


def graph_state(data: Any, error: bool = False, loading: bool = False) -> GraphState:
    if loading:
        return GraphState.LOADING
    if error:
        return GraphState.ERROR
    if not data:
        return GraphState.NO_DATA
    return GraphState.READY


def make_graph(
    graph_type: str,
    data: Any,
    formatter: str,
    error: bool = False,
    kind: str = "graph",
    **extra: Any,
) -> Dict[str, Any]:
    """One graph bundle: title, state, formatter name and data."""
    graph = {
        "type": kind,
        "title": get_graph_title(graph_type),
        "state": graph_state(data, error).value,
        "formatter": formatter,
        "data": None if error else data,
    }
    graph.update(extra)
    return graph


def ordered_types(types: Sequence[str]) -> List[str]:
    """Known device types in display order, then unknown ones as found."""
    known = [t.value for t in DEVICE_TYPE_ORDER if t.value in types]
    return known + [t for t in types if t not in known]


class DashboardController:
    """
    Dashboard data preparation for every view.

    Inventory failures propagate as BackendError; metric query failures are
    logged and turn the affected graphs into the error state.
    """

    def __init__(
        self,
        performance: PerformanceClient,
        inventory: InventoryClient,
        config: Optional[ServerConfig] = None,
        clock: Callable[[], datetime] = current_time,
    ):
        self.performance = performance
        self.inventory = inventory
        self.config = config or ServerConfig()
        self.clock = clock

    # --- Fetch helpers ---

    def _resolve_range(self, start: Optional[str], end: Optional[str]) -> Tuple[Optional[str], Optional[str]]:
        """Caller days as whole-day ISO bounds; no range at all means the last month."""
        if not start and not end:
            return default_date_range(self.clock(), self.config.display_timezone)
        return normalize_date_range((start, end), self.config.display_timezone)

    def _fetch_range(
        self, query: str, start: Optional[str], end: Optional[str], step: str
    ) -> Tuple[Optional[APIPromQL], bool]:
        """Run a range query; returns (response, failed)."""
        if not query:
            return None, False
        params = create_query_params(query, start, end, step, now=self.clock())
        try:
            return self.performance.query_range(params), False
        except BackendError as e:
            logger.error(f"Range query failed: {e}")
            return None, True

    def _fetch_single(self, query: str, end: Optional[str]) -> Tuple[Optional[APIPromQLSingle], bool]:
        """Run an instant query at `end` (or now when `end` is today)."""
        now = self.clock()
        time = to_iso(now) if is_end_today(end, now) or not end else end
        try:
            return self.performance.query(query, time), False
        except BackendError as e:
            logger.error(f"Instant query failed: {e}")
            return None, True

    def _parse(self, response, data_label: str, locale: str, start, end):
        return parse_graph_data(response, data_label, locale, start, end, tz=self.config.display_timezone)

    def _merge_by_type(self, response, types: Sequence[str], kind: MetricKind, locale: str, start, end):
        """Stacked rows of one metric kind across device types; None if there is no response."""
        if response is None:
            return None
        series = [self._parse(response, metric_label(t, kind), locale, start, end) for t in types]
        return merge_multi_graph_data(series, types)

    def _range_meta(self, start, end, step) -> Dict[str, Any]:
        return {"start": start, "end": end, "step": step}

    # --- Summary ---

    def get_summary_data(
        self,
        start: Optional[str] = None,
        end: Optional[str] = None,
        locale: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Summary page: one tab for all devices plus one per device type.

        Raises:
            BackendError: If the inventory cannot be fetched
        """
        locale = locale or self.config.default_locale
        start, end = self._resolve_range(start, end)
        step = get_step_from_range(start, end)

        inventory = self.inventory.get_resources()
        types = ordered_types(device_types_of(inventory.resources))
        logger.debug(f"Summary for {len(inventory.resources)} resources, types={types}, step={step}")

        range_data, range_error = self._fetch_range(build_summary_range_query(types, step), start, end, step)
        single_data, single_error = (None, False)
        if types:
            single_data, single_error = self._fetch_single(build_summary_single_query(), end)

        context = {
            "inventory": inventory,
            "types": types,
            "locale": locale,
            "start": start,
            "end": end,
            "range": (range_data, range_error),
            "single": (single_data, single_error),
        }
        tabs = {SUMMARY_TAB: self._summary_tab(context)}
        for device_type in types:
            tabs[device_type] = self._type_tab(device_type, context)

        return {
            "range": self._range_meta(start, end, step),
            "locale": locale,
            "types": types,
            "tabs": tabs,
        }

    def _summary_tab(self, ctx: Dict[str, Any]) -> Dict[str, Any]:
        inventory: Inventory = ctx["inventory"]
        range_data, range_error = ctx["range"]
        single_data, single_error = ctx["single"]
        processors = [t for t in ctx["types"] if t in {p.value for p in PROCESSOR_TYPES}]

        graphs = {
            GraphType.ENERGY: make_graph(
                GraphType.ENERGY,
                self._parse(range_data, metric_label(ALL_TYPES, MetricKind.ENERGY), ctx["locale"], ctx["start"], ctx["end"]),
                "energy",
                range_error,
                full_width=True,
            ),
            GraphType.PROCESSOR: make_graph(
                GraphType.PROCESSOR,
                parse_histogram_data(single_data, processors, inventory),
                "count",
                single_error,
                kind="histogram",
                stack=True,
            ),
            GraphType.MEMORY: make_graph(
                GraphType.MEMORY,
                parse_histogram_data(single_data, [DeviceType.MEMORY], inventory),
                "count",
                single_error,
                kind="histogram",
            ),
            GraphType.STORAGE: self._storage_graph(inventory, single_data, single_error),
            GraphType.NETWORK: make_graph(
                GraphType.NETWORK,
                self._parse(range_data, metric_label(DeviceType.NETWORK_INTERFACE, MetricKind.USAGE),
                            ctx["locale"], ctx["start"], ctx["end"]),
                "network",
                range_error,
            ),
        }
        return {
            "counts": count_by_category(inventory, SUMMARY_TAB),
            "type_counts": count_by_type(inventory, ctx["types"]),
            "allocated": allocated_item(inventory, SUMMARY_TAB),
            "energy_by_type": make_graph(
                GraphType.ENERGY,
                self._merge_by_type(range_data, ctx["types"], MetricKind.ENERGY, ctx["locale"], ctx["start"], ctx["end"]),
                "energy",
                range_error,
                stack=True,
            ),
            "graphs": [graphs[graph_type] for graph_type in SUMMARY_GRAPHS],
        }

    def _type_tab(self, device_type: str, ctx: Dict[str, Any]) -> Dict[str, Any]:
        inventory: Inventory = ctx["inventory"]
        range_data, range_error = ctx["range"]
        single_data, single_error = ctx["single"]
        rule = get_rule(device_type)

        graphs: List[Dict[str, Any]] = []
        if rule is not None and rule.has_energy_graph:
            graphs.append(make_graph(
                GraphType.ENERGY,
                self._parse(range_data, metric_label(device_type, MetricKind.ENERGY), ctx["locale"], ctx["start"], ctx["end"]),
                "energy",
                range_error,
            ))
            if rule.usage in (UsageKind.PROCESSOR, UsageKind.MEMORY):
                graphs.append(make_graph(
                    device_type,
                    parse_histogram_data(single_data, [device_type], inventory),
                    "count",
                    single_error,
                    kind="histogram",
                ))
            elif rule.usage is UsageKind.STORAGE:
                graphs.append(self._storage_graph(inventory, single_data, single_error))
            elif rule.usage is UsageKind.NETWORK:
                graphs.append(make_graph(
                    GraphType.NETWORK,
                    self._parse(range_data, metric_label(device_type, MetricKind.USAGE), ctx["locale"], ctx["start"], ctx["end"]),
                    "network",
                    range_error,
                ))

        return {
            "counts": count_by_category(inventory, device_type),
            "allocated": allocated_item(inventory, device_type),
            "graphs": graphs,
        }

    def _storage_graph(self, inventory: Inventory, single_data, single_error: bool) -> Dict[str, Any]:
        data = parse_storage_graph_data(inventory, single_data)
        graph = make_graph(GraphType.STORAGE, data, "storage", single_error, kind="storage")
        # The gauge always has a triple, so only a missing "used" means no data
        if not single_error and data["used"] is None:
            graph["state"] = GraphState.NO_DATA.value
        graph["labels"] = summarize_storage(data)
        return graph

    # --- Node / resource detail ---

    def _performance_graphs(
        self, response, failed: bool, types: Sequence[str], locale: str, start, end
    ) -> List[Dict[str, Any]]:
        processors = [p.value for p in PROCESSOR_TYPES]
        return [
            make_graph(
                GraphType.ENERGY,
                self._merge_by_type(response, types, MetricKind.ENERGY, locale, start, end),
                "energy",
                failed,
                stack=True,
            ),
            make_graph(
                GraphType.PROCESSOR,
                self._merge_by_type(response, processors, MetricKind.USAGE, locale, start, end),
                "percent",
                failed,
            ),
            make_graph(
                GraphType.MEMORY,
                self._parse(response, metric_label(DeviceType.MEMORY, MetricKind.USAGE), locale, start, end),
                "percent",
                failed,
            ),
            make_graph(
                GraphType.STORAGE,
                self._parse(response, metric_label(DeviceType.STORAGE, MetricKind.USAGE), locale, start, end),
                "percent",
                failed,
            ),
            make_graph(
                GraphType.NETWORK,
                self._parse(response, metric_label(DeviceType.NETWORK_INTERFACE, MetricKind.USAGE), locale, start, end),
                "network",
                failed,
            ),
        ]

    def get_node_performance(
        self,
        node_id: str,
        start: Optional[str] = None,
        end: Optional[str] = None,
        locale: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Node detail performance graphs over the node's resources.

        Raises:
            BackendError: If the node cannot be fetched (status 404 for unknown nodes)
        """
        locale = locale or self.config.default_locale
        start, end = self._resolve_range(start, end)
        step = get_step_from_range(start, end)

        node = self.inventory.get_node(node_id)
        types = ordered_types(device_types_of(node.resources))
        query = build_scoped_performance_query(node.resources, step)
        response, failed = self._fetch_range(query, start, end, step)

        return {
            "node_id": node.id,
            "range": self._range_meta(start, end, step),
            "locale": locale,
            "types": types,
            "graphs": self._performance_graphs(response, failed, types, locale, start, end),
        }

    def get_resource_performance(
        self,
        resource_id: str,
        start: Optional[str] = None,
        end: Optional[str] = None,
        locale: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Resource detail energy and usage graphs.

        Raises:
            BackendError: If the resource cannot be fetched (status 404 for unknown resources)
        """
        locale = locale or self.config.default_locale
        start, end = self._resolve_range(start, end)
        step = get_step_from_range(start, end)

        resource: Resource = self.inventory.get_resource(resource_id)
        device_type = resource.device.type
        rule = get_rule(device_type)
        query = build_resource_query(resource, step) if rule is not None and rule.has_energy_graph else ""
        response, failed = self._fetch_range(query, start, end, step)

        graphs: List[Dict[str, Any]] = []
        if rule is not None and rule.has_energy_graph:
            graphs.append(make_graph(
                GraphType.ENERGY,
                self._parse(response, metric_label(device_type, MetricKind.ENERGY), locale, start, end),
                "energy",
                failed,
            ))
            if rule.usage is not UsageKind.NONE:
                graph_type = GraphType.PROCESSOR if rule.is_processor else device_type
                formatter = "network" if rule.usage is UsageKind.NETWORK else "percent"
                graphs.append(make_graph(
                    graph_type,
                    self._parse(response, metric_label(device_type, MetricKind.USAGE), locale, start, end),
                    formatter,
                    failed,
                ))

        return {
            "resource_id": resource.device.deviceID,
            "type": type_name(device_type),
            "range": self._range_meta(start, end, step),
            "locale": locale,
            "graphs": graphs,
        }
