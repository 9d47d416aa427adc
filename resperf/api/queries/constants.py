"""
Query constants and metric name mappings.

Centralized metric names exported by the hardware performance exporter.
"""

# Job filter matching every device
GLOBAL_JOB_FILTER = ".*"

DEFAULT_STEP = "1h"

# Upper bound on points per series for a chart
MAX_GRAPH_POINTS = 250

# Step ladder, finest first: (step string, seconds)
STEP_LADDER = [
    ("1m", 60),
    ("5m", 5 * 60),
    ("15m", 15 * 60),
    ("30m", 30 * 60),
    ("1h", 3600),
    ("3h", 3 * 3600),
    ("6h", 6 * 3600),
    ("12h", 12 * 3600),
    ("1d", 86400),
    ("7d", 7 * 86400),
]

# Joules to watt-hours
SECONDS_PER_HOUR = 3600

KIB = 1024
PERCENT = 100

# Metric names
ENERGY_METRIC = "{type}_metricEnergyJoules_reading"
ALL_ENERGY_METRIC = ".*_metricEnergyJoules_reading"
USAGE_RATE_METRIC = "{type}_usageRate"
MEMORY_USED_METRIC = "memory_usedMemory"
STORAGE_USED_METRIC = "storage_disk_amountUsedDisk"
NETWORK_BYTES_SENT = "networkInterface_networkInterfaceInformation_networkTraffic_bytesSent"
NETWORK_BYTES_RECV = "networkInterface_networkInterfaceInformation_networkTraffic_bytesRecv"

# Instant query: every processor usage rate plus memory used, all labelled "usage"
SINGLE_USAGE_METRICS = ".*_usageRate|memory_usedMemory"
