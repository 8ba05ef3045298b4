from . import analytics, auth, jobs, ws

__all__ = ["analytics", "auth", "jobs", "ws"]
