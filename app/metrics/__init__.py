"""
Metrics Module

Pageview ingestion over the POST JSON and GET pixel transports.
"""

from .factory import create_metrics_module

__all__ = ["create_metrics_module"]
