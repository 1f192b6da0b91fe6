"""Cart package: models, guest storage, backends and sync engine."""
from .models import CartLine, is_guest_line_id, new_guest_line_id
from .storage import GuestCartStore
from .backends import CartBackend, CartMode, GuestBackend, ServerBackend
from .service import CartSyncEngine, merge_payload

__all__ = [
    "CartLine",
    "is_guest_line_id",
    "new_guest_line_id",
    "GuestCartStore",
    "CartBackend",
    "CartMode",
    "GuestBackend",
    "ServerBackend",
    "CartSyncEngine",
    "merge_payload",
]
