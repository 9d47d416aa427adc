"""
resperf - resource performance graphs

Query synthesis and time-series normalization for the CXL switch, node,
rack and resource performance dashboard.
"""

__version__ = "0.1.0"
