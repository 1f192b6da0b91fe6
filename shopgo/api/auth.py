"""Auth endpoints."""
from pydantic import ValidationError as PydanticValidationError

from shopgo.errors import CODE_INVALID_RESPONSE, ERROR_INVALID_RESPONSE, ApiError
from shopgo.models import AuthTokens, User

from .client import LOGOUT_PATH, ApiClient


def _parse(model, data):
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        raise ApiError(ERROR_INVALID_RESPONSE, code=CODE_INVALID_RESPONSE, payload=data) from e


class AuthApi:
    """Thin wrappers around /auth/*."""

    def __init__(self, client: ApiClient):
        self._client = client

    async def register(self, email: str, password: str, full_name: str) -> User:
        """Create an account. Does not log in."""
        data = await self._client.post(
            "/auth/register",
            json={"email": email, "password": password, "fullName": full_name},
        )
        return _parse(User, data)

    async def login(self, email: str, password: str) -> AuthTokens:
        """Returns the access credential; the refresh credential arrives as an http-only cookie."""
        data = await self._client.post("/auth/login", json={"email": email, "password": password})
        return _parse(AuthTokens, data)

    async def refresh_token(self) -> str:
        """Renew the access credential through the shared refresh (stored in the session)."""
        return await self._client.refresh_credential()

    async def logout(self) -> None:
        """Invalidate the refresh cookie server-side."""
        await self._client.post(LOGOUT_PATH)

    async def me(self) -> User:
        data = await self._client.get("/auth/me")
        return _parse(User, data)
