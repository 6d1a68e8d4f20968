"""
Visitor Stats Module

Real-time visitor count and service health for dashboards and monitoring.
"""

from .factory import create_visitor_stats_module

__all__ = ["create_visitor_stats_module"]
