"""Namespaced keys for persisted client state."""


class StorageKeys:
    """Keys in the persistent key-value store, one blob per concern."""

    GUEST_CART = "shopgo-guest-cart"
    WISHLIST = "shopgo-wishlist"
    AUTH = "shopgo-auth"  # durable session subset (user profile only)
    RECENTLY_VIEWED = "shopgo-recently-viewed"
