"""API routers for the account management platform."""

from . import auth, accounts, tasks, realtime

__all__ = ["auth", "accounts", "tasks", "realtime"]
