"""
Dashboard Configuration

Histogram buckets, graph titles and resource count categories.
"""

from enum import Enum
from typing import Dict, List

# Usage histogram buckets, lowest first
HISTOGRAM_RANGES: List[str] = [
    "0%",
    "1 - 19%",
    "20 - 39%",
    "40 - 59%",
    "60 - 79%",
    "80 - 99%",
    "100%",
]
HISTOGRAM_BUCKET_WIDTH = 20


class GraphType(str, Enum):
    ENERGY = "energyConsumption"
    PROCESSOR = "processor"
    MEMORY = "memory"
    STORAGE = "storage"
    NETWORK = "networkInterface"

    def __str__(self) -> str:
        return self.value


GRAPH_TITLES: Dict[GraphType, str] = {
    GraphType.ENERGY: "Energy Consumptions",
    GraphType.PROCESSOR: "Processor Usage",
    GraphType.MEMORY: "Memory Usage",
    GraphType.STORAGE: "Storage Usage",
    GraphType.NETWORK: "Network Transfer Speed",
}
DEFAULT_GRAPH_TITLE = "Usage"

# Graphs on the summary tab, in display order
SUMMARY_GRAPHS: List[GraphType] = [
    GraphType.ENERGY,
    GraphType.PROCESSOR,
    GraphType.MEMORY,
    GraphType.STORAGE,
    GraphType.NETWORK,
]


class ResourceCategory(str, Enum):
    """Number cards shown per tab."""

    TOTAL = "total"
    UNALLOCATED = "unallocated"
    DISABLED = "disabled"
    WARNING = "warning"
    CRITICAL = "critical"
    EXCLUDED = "excluded"

    def __str__(self) -> str:
        return self.value


# Inventory values matched by the status categories
DISABLED_STATE = "Disabled"
WARNING_HEALTH = "Warning"
CRITICAL_HEALTH = "Critical"

# Pseudo tab covering every device type
SUMMARY_TAB = "summary"


def get_graph_title(graph_type: str) -> str:
    try:
        return GRAPH_TITLES[GraphType(graph_type)]
    except ValueError:
        return DEFAULT_GRAPH_TITLE
