"""HTTP route factories."""

from .graph_routes import create_graph_routes

__all__ = ["create_graph_routes"]
