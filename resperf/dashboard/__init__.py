"""
resperf Dashboard Module

Graph bundles for the summary, node-detail and resource-detail views.
All dashboard logic returns plain Python data for easy testing.
"""

from .controller import DashboardController, GraphState

__all__ = ["DashboardController", "GraphState"]
