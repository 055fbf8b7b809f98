"""
Scheduling primitives: fixed-interval background tasks with explicit cancellation.
"""

from backend_passport.scheduler.engine import PeriodicTask

__all__ = ["PeriodicTask"]
