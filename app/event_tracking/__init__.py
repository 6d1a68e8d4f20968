"""
Event Tracking Subsystem

Custom events (clicks, scroll milestones, ...) linked to a session and,
optionally, to the pageview they happened on.
"""

from .event_tracker import EventTracker

__all__ = ['EventTracker']
