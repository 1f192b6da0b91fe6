"""Wishlist package."""
from .store import WishlistMembership, toggled
from .service import WishlistSyncEngine

__all__ = [
    "WishlistMembership",
    "WishlistSyncEngine",
    "toggled",
]
