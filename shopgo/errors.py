"""
Common Errors

Centralized error messages and the exception hierarchy raised by the client.
"""

from typing import Any

# Session errors
ERROR_UNAUTHORIZED = "Unauthorized"
ERROR_REFRESH_FAILED = "Session expired, please log in again"
ERROR_LOGIN_REQUIRED = "Please log in to use the wishlist"

# Transport errors
ERROR_NETWORK = "Network unavailable"
ERROR_INVALID_RESPONSE = "Invalid response from server"
ERROR_REQUEST_FAILED = "Request failed"

# Cart errors
ERROR_CART_FETCH = "Failed to load cart"
ERROR_CART_UPDATE = "Failed to update cart"
ERROR_CART_MERGE = "Failed to merge guest cart"
ERROR_GUEST_LINE_ID = "Guest cart lines cannot be changed on the server"

# Wishlist errors
ERROR_WISHLIST_FETCH = "Failed to load wishlist"
ERROR_WISHLIST_UPDATE = "Failed to update wishlist"

# Storage errors
ERROR_STORAGE = "Local storage unavailable"

# Error codes used when the server does not supply one
CODE_INVALID_RESPONSE = "INVALID_RESPONSE"
CODE_NETWORK = "NETWORK_ERROR"
CODE_UNAUTHORIZED = "UNAUTHORIZED"
CODE_REFRESH_FAILED = "REFRESH_FAILED"
CODE_VALIDATION = "VALIDATION_ERROR"
CODE_GUEST_LINE_ID = "GUEST_LINE_ID"
CODE_LOGIN_REQUIRED = "LOGIN_REQUIRED"


class ShopGoError(Exception):
    """Base error for everything raised by the client."""

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code


class TransportError(ShopGoError):
    """Network unreachable or timed out. Never retried by the client."""

    def __init__(self, message: str = ERROR_NETWORK) -> None:
        super().__init__(message, code=CODE_NETWORK)


class ApiError(ShopGoError):
    """Server answered with an error envelope or an unusable body."""

    def __init__(
        self,
        message: str = ERROR_REQUEST_FAILED,
        code: str | None = None,
        status_code: int | None = None,
        payload: Any = None,
    ) -> None:
        super().__init__(message, code=code)
        self.status_code = status_code
        self.payload = payload


class Unauthorized(ApiError):
    """401 that could not be recovered by a credential refresh."""

    def __init__(
        self,
        message: str = ERROR_UNAUTHORIZED,
        code: str | None = CODE_UNAUTHORIZED,
        status_code: int | None = 401,
        payload: Any = None,
    ) -> None:
        super().__init__(message, code=code, status_code=status_code, payload=payload)


class RefreshFailed(Unauthorized):
    """The refresh endpoint rejected the session; it has been torn down."""

    def __init__(self, message: str = ERROR_REFRESH_FAILED) -> None:
        super().__init__(message, code=CODE_REFRESH_FAILED, status_code=401)


class ValidationError(ApiError):
    """Malformed input rejected by the server (or caught before sending)."""


class AuthenticationRequired(ShopGoError):
    """Action needs a logged-in user (e.g. wishlist toggles)."""

    def __init__(self, message: str = ERROR_LOGIN_REQUIRED) -> None:
        super().__init__(message, code=CODE_LOGIN_REQUIRED)


class FetchFailed(ShopGoError):
    """Loading server state failed; cached data left at its last good value."""


class MutationFailed(ShopGoError):
    """Optimistic mutation rejected; the local view has been rolled back."""


class MergeFailed(ShopGoError):
    """Guest cart could not be merged; guest items are kept for a later retry."""


class MergeConflict(MergeFailed):
    """Server refused the merge with 409 Conflict."""


class StorageError(ShopGoError):
    """Persistent key-value store could not be read or written."""

    def __init__(self, message: str = ERROR_STORAGE) -> None:
        super().__init__(message, code="STORAGE_ERROR")
