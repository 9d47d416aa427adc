"""Unit tests for DashboardController

Tests the graph assembly layer in isolation with mocked backend clients.
"""
import pytest
from unittest.mock import Mock

from resperf.api.performance_client import BackendError, InventoryClient, PerformanceClient
from resperf.api.queries.timeseries import to_range_response, to_single_response
from resperf.api.schemas import APIPromQL, Node
from resperf.core.config import ServerConfig
from resperf.dashboard.controller import DashboardController, GraphState, graph_state, ordered_types
from conftest import make_resource


@pytest.fixture
def performance(range_response, single_response):
    client = Mock(spec=PerformanceClient)
    client.query_range.return_value = to_range_response(range_response)
    client.query.return_value = to_single_response(single_response)
    return client


@pytest.fixture
def inventory(sample_inventory, sample_resources):
    client = Mock(spec=InventoryClient)
    client.get_resources.return_value = sample_inventory
    client.get_node.return_value = Node(id="node-1", resources=[r for r in sample_resources if r.nodeIDs])
    client.get_resource.return_value = make_resource("cpu-1", "CPU", node_ids=["node-1"])
    return client


@pytest.fixture
def controller(performance, inventory, fixed_now):
    return DashboardController(performance, inventory, clock=lambda: fixed_now)


def graph_by_title(graphs, title):
    return next(g for g in graphs if g["title"] == title)


class TestGraphState:
    """Test graph state derivation"""

    def test_states_are_distinct(self):
        assert graph_state([{"date": "d1", "value": 1.0}]) is GraphState.READY
        assert graph_state(None) is GraphState.NO_DATA
        assert graph_state([]) is GraphState.NO_DATA
        assert graph_state([1], error=True) is GraphState.ERROR
        assert graph_state(None, loading=True) is GraphState.LOADING

    def test_ordered_types(self):
        assert ordered_types(["memory", "toaster", "CPU", "Accelerator"]) == ["Accelerator", "CPU", "memory", "toaster"]


class TestSummaryData:
    """Test summary page assembly"""

    def test_tabs_follow_inventory_types(self, controller):
        data = controller.get_summary_data()
        assert data["types"] == ["CPU", "GPU", "memory", "storage", "networkInterface"]
        assert list(data["tabs"]) == ["summary"] + data["types"]

    def test_default_range_and_step(self, controller, performance):
        data = controller.get_summary_data()
        assert data["range"]["start"] == "2023-11-06T00:00:00.000Z"
        assert data["range"]["end"] == "2023-12-06T12:30:00.000Z"
        assert data["range"]["step"] == "3h"
        params = performance.query_range.call_args[0][0]
        assert params.step == "3h"
        assert "all_energy" in params.query

    def test_instant_query_at_now_for_today(self, controller, performance):
        controller.get_summary_data()
        query, time = performance.query.call_args[0]
        assert "storage_usage" in query
        assert time == "2023-12-06T12:30:00.000Z"

    def test_summary_graphs_ready(self, controller):
        summary = controller.get_summary_data(locale="en")["tabs"]["summary"]
        energy = graph_by_title(summary["graphs"], "Energy Consumptions")
        assert energy["state"] == "ready"
        assert [p["value"] for p in energy["data"]] == [10.0, 20.0]
        assert energy["full_width"] is True

        processor = graph_by_title(summary["graphs"], "Processor Usage")
        assert processor["type"] == "histogram"
        assert processor["state"] == "ready"

        network = graph_by_title(summary["graphs"], "Network Transfer Speed")
        assert network["formatter"] == "network"
        assert network["data"][0]["value"] == 1024.0

    def test_summary_storage_gauge(self, controller):
        summary = controller.get_summary_data()["tabs"]["summary"]
        storage = graph_by_title(summary["graphs"], "Storage Usage")
        assert storage["state"] == "ready"
        assert storage["labels"]["used"] == {"bytes": "1.00 GiB", "percentage": "25%"}
        assert storage["labels"]["overall"] == "4.00 GiB"

    def test_energy_by_type_is_stacked(self, controller):
        stacked = controller.get_summary_data()["tabs"]["summary"]["energy_by_type"]
        assert stacked["state"] == "ready"
        assert stacked["data"] == [
            {"date": "12/06/2023 00:00", "CPU": 1.0},
            {"date": "12/06/2023 01:00", "CPU": 2.0, "memory": 3.0},
            {"date": "12/06/2023 02:00", "memory": 4.0},
        ]

    def test_counts_and_allocated(self, controller):
        tabs = controller.get_summary_data()["tabs"]
        assert tabs["summary"]["counts"]["total"] == 8
        assert tabs["memory"]["allocated"]["volume"]["unit"] == "GiB"

    def test_type_tabs(self, controller):
        tabs = controller.get_summary_data()["tabs"]
        assert [g["type"] for g in tabs["CPU"]["graphs"]] == ["graph", "histogram"]
        assert [g["type"] for g in tabs["storage"]["graphs"]] == ["graph", "storage"]
        assert [g["formatter"] for g in tabs["networkInterface"]["graphs"]] == ["energy", "network"]

    def test_range_query_failure_is_error_not_no_data(self, controller, performance):
        performance.query_range.side_effect = BackendError("metrics backend down")
        summary = controller.get_summary_data()["tabs"]["summary"]
        energy = graph_by_title(summary["graphs"], "Energy Consumptions")
        assert energy["state"] == "error"
        assert energy["data"] is None
        # Instant query graphs are unaffected
        assert graph_by_title(summary["graphs"], "Processor Usage")["state"] == "ready"

    def test_empty_response_is_no_data(self, controller, performance):
        performance.query_range.return_value = APIPromQL(status="success")
        performance.query.return_value = None
        summary = controller.get_summary_data()["tabs"]["summary"]
        assert {g["state"] for g in summary["graphs"]} == {"no_data"}
        assert summary["energy_by_type"]["state"] == "no_data"

    def test_inventory_failure_propagates(self, controller, inventory):
        inventory.get_resources.side_effect = BackendError("inventory down")
        with pytest.raises(BackendError):
            controller.get_summary_data()

    def test_explicit_past_range_passes_end_through(self, controller, performance):
        end = "2023-12-05T23:59:59.999Z"
        controller.get_summary_data("2023-12-01T00:00:00.000Z", end)
        assert performance.query_range.call_args[0][0].end == end
        assert performance.query.call_args[0][1] == end

    def test_selected_days_become_whole_day_bounds(self, controller, performance):
        data = controller.get_summary_data("2023-12-01", "2023-12-03")
        assert data["range"]["start"] == "2023-12-01T00:00:00.000Z"
        assert data["range"]["end"] == "2023-12-03T23:59:59.999Z"
        assert data["range"]["step"] == "30m"
        params = performance.query_range.call_args[0][0]
        assert params.start == "2023-12-01T00:00:00.000Z"
        assert params.end == "2023-12-03T23:59:59.999Z"

    def test_selected_today_follows_the_clock(self, controller, performance):
        data = controller.get_summary_data("2023-12-06", "2023-12-06")
        assert data["range"]["end"] == "2023-12-06T23:59:59.999Z"
        assert performance.query_range.call_args[0][0].end == "2023-12-06T12:30:00.000Z"
        assert performance.query.call_args[0][1] == "2023-12-06T12:30:00.000Z"

    def test_days_are_read_in_display_timezone(self, performance, inventory, fixed_now):
        controller = DashboardController(
            performance, inventory, ServerConfig(display_timezone="Asia/Tokyo"), clock=lambda: fixed_now
        )
        data = controller.get_node_performance("node-1", "2023-12-01", "2023-12-01")
        assert data["range"]["start"] == "2023-11-30T15:00:00.000Z"
        assert data["range"]["end"] == "2023-12-01T14:59:59.999Z"

    def test_summary_graph_order_and_type_counts(self, controller):
        summary = controller.get_summary_data()["tabs"]["summary"]
        assert [g["title"] for g in summary["graphs"]] == [
            "Energy Consumptions", "Processor Usage", "Memory Usage", "Storage Usage", "Network Transfer Speed",
        ]
        assert summary["type_counts"] == {
            "CPU": 2, "GPU": 1, "memory": 2, "storage": 2, "networkInterface": 1,
        }


class TestNodePerformance:
    """Test node detail assembly"""

    def test_query_is_scoped_to_node_resources(self, controller, performance):
        controller.get_node_performance("node-1")
        query = performance.query_range.call_args[0][0].query
        assert 'job=~"cpu-1|gpu-1|mem-1|sto-1|nic-1"' in query
        assert "cpu-2" not in query

    def test_graphs(self, controller):
        data = controller.get_node_performance("node-1", locale="en")
        assert data["node_id"] == "node-1"
        titles = [g["title"] for g in data["graphs"]]
        assert titles == ["Energy Consumptions", "Processor Usage", "Memory Usage",
                          "Storage Usage", "Network Transfer Speed"]

        processor = graph_by_title(data["graphs"], "Processor Usage")
        assert processor["formatter"] == "percent"
        assert processor["data"] == [
            {"date": "12/06/2023 00:00", "CPU": 12.5},
            {"date": "12/06/2023 01:00", "CPU": 0.0},
        ]
        assert graph_by_title(data["graphs"], "Memory Usage")["state"] == "no_data"

    def test_unknown_node_propagates(self, controller, inventory):
        inventory.get_node.side_effect = BackendError("not found", status=404)
        with pytest.raises(BackendError) as exc_info:
            controller.get_node_performance("missing")
        assert exc_info.value.is_not_found


class TestResourcePerformance:
    """Test resource detail assembly"""

    def test_processor_resource(self, controller, performance):
        data = controller.get_resource_performance("cpu-1")
        assert data["type"] == "CPU"
        assert [g["formatter"] for g in data["graphs"]] == ["energy", "percent"]
        assert data["graphs"][0]["state"] == "ready"
        assert 'job=~"cpu-1"' in performance.query_range.call_args[0][0].query

    def test_network_resource_uses_network_formatter(self, controller, inventory):
        inventory.get_resource.return_value = make_resource("nic-1", "networkInterface")
        data = controller.get_resource_performance("nic-1")
        assert [g["formatter"] for g in data["graphs"]] == ["energy", "network"]
        assert data["graphs"][1]["state"] == "ready"

    def test_graphic_controller_has_no_graphs(self, controller, inventory, performance):
        inventory.get_resource.return_value = make_resource("gc-1", "graphicController")
        data = controller.get_resource_performance("gc-1")
        assert data["graphs"] == []
        performance.query_range.assert_not_called()
