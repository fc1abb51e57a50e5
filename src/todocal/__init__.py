"""todocal - daily task calendar with recurrence and time tracking."""

__version__ = "0.1.0"
