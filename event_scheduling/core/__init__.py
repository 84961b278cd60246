"""Infrastructure shared by the scheduling domain."""

from .clock import Clock, SystemClock, VirtualClock

__all__ = ["Clock", "SystemClock", "VirtualClock"]
