"""Unit tests for histogram, storage and inventory aggregations"""
import pytest

from resperf.api.schemas import Inventory
from resperf.dashboard.aggregators import (
    allocated_item,
    count_by_category,
    count_by_type,
    count_resources,
    histogram_bucket,
    parse_histogram_data,
    parse_storage_graph_data,
    summarize_storage,
)
from resperf.dashboard.config import HISTOGRAM_RANGES
from conftest import GIB, make_resource


def instant(*samples):
    return {"status": "success", "data": {"resultType": "vector", "result": list(samples)}}


def usage_sample(name, job, value):
    return {"metric": {"__name__": name, "data_label": "usage", "job": job}, "value": [1701755114.437, value]}


class TestHistogramBucket:
    """Test usage bucket selection"""

    @pytest.mark.parametrize("usage,index", [
        (0, 0), (0.5, 1), (19.9, 1), (20, 2), (45, 3), (99.9, 5), (100, 6), (150, 6),
    ])
    def test_bucket_index(self, usage, index):
        assert histogram_bucket(usage) == index


class TestParseHistogramData:
    """Test usage histograms from instant samples"""

    def test_processor_histogram(self, single_response, sample_inventory):
        histogram = parse_histogram_data(single_response, ["CPU", "GPU"], sample_inventory)
        assert [row["name"] for row in histogram] == HISTOGRAM_RANGES
        assert histogram[0] == {"name": "0%", "CPU": 1, "GPU": 0}
        assert histogram[3] == {"name": "40 - 59%", "CPU": 1, "GPU": 0}
        assert histogram[6] == {"name": "100%", "CPU": 0, "GPU": 1}

    def test_memory_usage_uses_capacity(self, single_response, sample_inventory):
        histogram = parse_histogram_data(single_response, ["memory"], sample_inventory)
        # 8388608 KiB used of 16384 MiB is 50%
        assert histogram[3]["Memory"] == 1
        assert sum(row["Memory"] for row in histogram) == 1

    def test_memory_without_capacity_is_skipped(self):
        inventory = Inventory(resources=[make_resource("mem-1", "memory")])
        single = instant(usage_sample("memory_usedMemory", "mem-1", "1024"))
        assert parse_histogram_data(single, ["memory"], inventory) is None

    def test_memory_without_inventory_is_skipped(self):
        single = instant(usage_sample("memory_usedMemory", "mem-1", "1024"))
        assert parse_histogram_data(single, ["memory"], None) is None

    def test_no_matching_type_returns_none(self, single_response, sample_inventory):
        assert parse_histogram_data(single_response, ["FPGA"], sample_inventory) is None

    def test_missing_response_returns_none(self, sample_inventory):
        assert parse_histogram_data(None, ["CPU"], sample_inventory) is None

    def test_unparseable_value_counts_as_zero(self, sample_inventory):
        single = instant(usage_sample("CPU_usageRate", "cpu-1", "n/a"))
        histogram = parse_histogram_data(single, ["CPU"], sample_inventory)
        assert histogram[0]["CPU"] == 1


class TestParseStorageGraphData:
    """Test the storage gauge triple"""

    def test_used_allocated_overall(self, sample_inventory, single_response):
        data = parse_storage_graph_data(sample_inventory, single_response)
        assert data == {"used": GIB, "allocated": 2 * GIB, "overall": 4 * GIB}

    def test_missing_instant_data(self, sample_inventory):
        data = parse_storage_graph_data(sample_inventory, None)
        assert data["used"] is None
        assert data["overall"] == 4 * GIB

    def test_missing_everything(self):
        assert parse_storage_graph_data(None, None) == {"used": None, "allocated": None, "overall": None}

    def test_no_storage_devices(self):
        inventory = Inventory(resources=[make_resource("cpu-1", "CPU")])
        data = parse_storage_graph_data(inventory, None)
        assert data["allocated"] == 0
        assert data["overall"] == 0


class TestResourceCounts:
    """Test number cards and per-type counts"""

    @pytest.mark.parametrize("category,expected", [
        ("total", 8),
        ("unallocated", 3),
        ("disabled", 1),
        ("warning", 1),
        ("critical", 1),
        ("excluded", 1),
    ])
    def test_summary_counts(self, sample_inventory, category, expected):
        assert count_resources(sample_inventory, "summary", category) == expected

    def test_counts_for_one_type(self, sample_inventory):
        counts = count_by_category(sample_inventory, "CPU")
        assert counts["total"] == 2
        assert counts["unallocated"] == 1
        assert counts["warning"] == 1
        assert counts["critical"] == 0

    def test_counts_without_inventory(self):
        assert count_resources(None, "CPU") is None

    def test_count_by_type(self, sample_inventory):
        assert count_by_type(sample_inventory, ["CPU", "memory", "DSP"]) == {"CPU": 2, "memory": 2, "DSP": 0}


class TestAllocatedItem:
    """Test allocated device and volume figures"""

    def test_memory_tab_has_volume(self, sample_inventory):
        item = allocated_item(sample_inventory, "memory")
        assert item["device"] == {"allocated": 1, "all": 2}
        assert item["volume"] == {"allocated": "16.00", "all": "32.00", "unit": "GiB"}

    def test_storage_tab_has_volume(self, sample_inventory):
        item = allocated_item(sample_inventory, "storage")
        assert item["volume"] == {"allocated": "2.00", "all": "4.00", "unit": "GiB"}

    def test_summary_tab_has_devices_only(self, sample_inventory):
        item = allocated_item(sample_inventory, "summary")
        assert item == {"device": {"allocated": 5, "all": 8}}

    def test_without_inventory(self):
        assert allocated_item(None, "memory") is None


class TestSummarizeStorage:
    """Test storage gauge labels"""

    def test_labels(self):
        labels = summarize_storage({"used": 1 * GIB, "allocated": 2 * GIB, "overall": 4 * GIB})
        assert labels["used"] == {"bytes": "1.00 GiB", "percentage": "25%"}
        assert labels["allocated"] == {"bytes": "2.00 GiB", "percentage": "50%"}
        assert labels["overall"] == "4.00 GiB"

    def test_missing_overall(self):
        labels = summarize_storage({"used": GIB, "allocated": None, "overall": None})
        assert labels["used"] == {"bytes": "B", "percentage": "-"}
        assert labels["overall"] == "- B"

    def test_zero_overall(self):
        labels = summarize_storage({"used": 0, "allocated": 0, "overall": 0})
        assert labels["allocated"] == {"bytes": "B", "percentage": "-"}
        assert labels["overall"] == "0.00 B"
