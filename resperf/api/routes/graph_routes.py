#!/usr/bin/env python3
"""
Graph Routes - Summary, Node and Resource Performance Data
"""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Query

from ...dashboard import DashboardController
from ..performance_client import BackendError

logger = logging.getLogger("resperf.api")


def _raise_for_backend(e: BackendError, what: str) -> None:
    if e.is_not_found:
        raise HTTPException(status_code=404, detail=f"{what} not found") from e
    logger.error(f"Inventory backend error: {e}")
    raise HTTPException(status_code=502, detail="Inventory backend unavailable") from e


def create_graph_routes(controller: DashboardController) -> APIRouter:
    """Create graph data routes."""
    router = APIRouter()

    @router.get("/health")
    def health():
        return {"status": "ok"}

    @router.get("/api/summary")
    def summary(
        start: Optional[str] = Query(None, description="First day of the range"),
        end: Optional[str] = Query(None, description="Last day of the range, included whole"),
        lng: Optional[str] = Query(None),
    ):
        """Summary page graphs, counts and allocated figures per device type tab."""
        try:
            return controller.get_summary_data(start, end, lng)
        except BackendError as e:
            _raise_for_backend(e, "Resources")

    @router.get("/api/nodes/{node_id}/performance")
    def node_performance(
        node_id: str,
        start: Optional[str] = Query(None, description="First day of the range"),
        end: Optional[str] = Query(None, description="Last day of the range, included whole"),
        lng: Optional[str] = Query(None),
    ):
        """Node detail performance graphs."""
        try:
            return controller.get_node_performance(node_id, start, end, lng)
        except BackendError as e:
            _raise_for_backend(e, f"Node {node_id}")

    @router.get("/api/resources/{resource_id}/performance")
    def resource_performance(
        resource_id: str,
        start: Optional[str] = Query(None, description="First day of the range"),
        end: Optional[str] = Query(None, description="Last day of the range, included whole"),
        lng: Optional[str] = Query(None),
    ):
        """Resource detail energy and usage graphs."""
        try:
            return controller.get_resource_performance(resource_id, start, end, lng)
        except BackendError as e:
            _raise_for_backend(e, f"Resource {resource_id}")

    return router
