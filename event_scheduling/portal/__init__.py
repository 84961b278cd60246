"""Portal backend collaborators."""

from .client import PortalClient
from .protocols import AttendanceCounter, AttendanceTokenIssuer, EventStore

__all__ = ["AttendanceCounter", "AttendanceTokenIssuer", "EventStore", "PortalClient"]
