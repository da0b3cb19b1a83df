"""
errors.py
─────────
Exception hierarchy shared by the alarm backend.

Unknown alarm / sound ids are not errors: lookups return None (or False for
deletes) and the HTTP layer turns that into a 404.
"""


class ChronosError(Exception):
    """Base class for every error raised by the backend."""


class PersistenceError(ChronosError):
    """The JSON store could not be read or written."""


class SchedulerError(ChronosError):
    """A notification registration or cancellation failed."""


class AlarmLimitError(ChronosError):
    """Creating another alarm would exceed the allowed number of alarms."""
