"""
Metric Query Modules

Query synthesis and time-series normalization split by concern:
- step.py: Step resolution, today-tracking and query_range parameters
- labels.py: data_label key builder and job filters
- builder.py: PromQL query building per device type
- timeseries.py: Response parsing and multi-series merging
"""

from .step import (
    create_query_params,
    default_date_range,
    get_step_from_range,
    is_end_today,
    normalize_date_range,
    parse_timestamp,
    step_to_seconds,
    to_iso,
)
from .labels import ALL_TYPES, SINGLE_USAGE_LABEL, MetricKind, job_filter_for, metric_label
from .builder import (
    build_all_energy_query,
    build_energy_query,
    build_memory_usage_query,
    build_network_query,
    build_resource_query,
    build_scoped_performance_query,
    build_storage_usage_query,
    build_summary_range_query,
    build_summary_single_query,
    build_usage_query,
    combine_queries,
    device_types_of,
)
from .timeseries import (
    find_samples,
    merge_multi_graph_data,
    parse_graph_data,
    to_range_response,
    to_single_response,
)
from .constants import DEFAULT_STEP, GLOBAL_JOB_FILTER, MAX_GRAPH_POINTS

__all__ = [
    # Step resolution
    'create_query_params',
    'default_date_range',
    'get_step_from_range',
    'is_end_today',
    'normalize_date_range',
    'parse_timestamp',
    'step_to_seconds',
    'to_iso',

    # Labels
    'ALL_TYPES',
    'SINGLE_USAGE_LABEL',
    'MetricKind',
    'job_filter_for',
    'metric_label',

    # Query building
    'build_all_energy_query',
    'build_energy_query',
    'build_memory_usage_query',
    'build_network_query',
    'build_resource_query',
    'build_scoped_performance_query',
    'build_storage_usage_query',
    'build_summary_range_query',
    'build_summary_single_query',
    'build_usage_query',
    'combine_queries',
    'device_types_of',

    # Response parsing
    'find_samples',
    'merge_multi_graph_data',
    'parse_graph_data',
    'to_range_response',
    'to_single_response',

    # Constants
    'DEFAULT_STEP',
    'GLOBAL_JOB_FILTER',
    'MAX_GRAPH_POINTS',
]
