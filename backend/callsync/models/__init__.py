from callsync.models.call_log import CallLog

__all__ = ["CallLog"]
