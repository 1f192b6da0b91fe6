"""Authentication package: session state and credential refresh.

AuthService (login/register/logout flows) lives in shopgo.auth.service and is
imported from there; it depends on the API and cart packages.
"""
from .refresh import RefreshCoordinator, RefreshPhase
from .session import Durable, Session, SessionStore, Volatile

__all__ = [
    "RefreshCoordinator",
    "RefreshPhase",
    "Session",
    "SessionStore",
    "Durable",
    "Volatile",
]
