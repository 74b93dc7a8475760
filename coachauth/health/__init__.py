"""
coachauth health module.

Background session checks and recovery.
"""

from .monitor import HealthCheckResult, SessionHealthMonitor

__all__ = [
    "SessionHealthMonitor",
    "HealthCheckResult",
]
