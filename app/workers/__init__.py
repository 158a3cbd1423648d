"""
Workers module for background scheduling.

This module contains:
- unified_scheduler: Interval scheduler for periodic work (weather refresh)
"""

__all__ = [
    "UnifiedScheduler",
]

from app.workers.unified_scheduler import UnifiedScheduler
