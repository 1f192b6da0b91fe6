"""ShopGo API client and endpoint wrappers."""
from .client import ApiClient, is_auth_endpoint, unwrap_response
from .auth import AuthApi
from .cart import CartApi
from .wishlist import WishlistApi

__all__ = [
    "ApiClient",
    "AuthApi",
    "CartApi",
    "WishlistApi",
    "is_auth_endpoint",
    "unwrap_response",
]
