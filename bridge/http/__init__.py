"""
Bridge HTTP subsystem.

This package provides the health/metrics endpoint.
"""

from bridge.http.server import HealthServer

__all__ = [
    "HealthServer",
]
