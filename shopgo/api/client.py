"""HTTP client with transparent credential renewal.

Every request carries the current access credential as a bearer header.
A 401 on an ordinary request triggers one shared refresh and a single
retry; when the refresh itself fails the session is torn down exactly once
and the redirect callback fires.
"""

import asyncio
from typing import Any, Callable, Dict, List, Optional, Set

import httpx
from pydantic import ValidationError as PydanticValidationError

from shopgo.auth.refresh import RefreshCoordinator
from shopgo.auth.session import SessionStore
from shopgo.config import DEFAULT_HTTP_TIMEOUT, DEFAULT_LOGIN_PATH
from shopgo.errors import (
    CODE_INVALID_RESPONSE,
    CODE_UNAUTHORIZED,
    CODE_VALIDATION,
    ERROR_INVALID_RESPONSE,
    ERROR_REQUEST_FAILED,
    ERROR_UNAUTHORIZED,
    ApiError,
    RefreshFailed,
    TransportError,
    Unauthorized,
    ValidationError,
)
from shopgo.logging import get_logger, sanitize_string_for_logging
from shopgo.models import ApiResponse, AuthTokens

logger = get_logger(__name__)

REFRESH_PATH = "/auth/refresh"
LOGOUT_PATH = "/auth/logout"

# 401 on these means the session (or the submitted password) is invalid;
# a refresh cannot help.
NO_REFRESH_PATHS = (REFRESH_PATH, LOGOUT_PATH, "/auth/login", "/auth/register")

SessionExpiredCallback = Callable[[str], None]


def is_auth_endpoint(url: str) -> bool:
    """True for endpoints whose 401 must never trigger a refresh."""
    return any(path in url for path in NO_REFRESH_PATHS)


def unwrap_response(response: httpx.Response) -> Any:
    """
    Unwrap the {success, data} envelope or raise the matching error.

    Raises:
        Unauthorized: 401
        ValidationError: 400 / 422
        ApiError: any other failure or an unusable body
    """
    try:
        payload = response.json()
    except ValueError:
        payload = None

    envelope: Optional[ApiResponse] = None
    if isinstance(payload, dict):
        try:
            envelope = ApiResponse.model_validate(payload)
        except PydanticValidationError:
            envelope = None

    if response.is_success and envelope is not None and envelope.success:
        return envelope.data

    code = envelope.error.code if envelope and envelope.error else None
    message = envelope.error.message if envelope and envelope.error else None

    if response.is_success:
        # 2xx but no usable envelope, or success: false
        raise ApiError(
            message or ERROR_INVALID_RESPONSE,
            code=code or CODE_INVALID_RESPONSE,
            status_code=response.status_code,
            payload=payload,
        )

    status = response.status_code
    if status == 401:
        raise Unauthorized(message or ERROR_UNAUTHORIZED, code=code or CODE_UNAUTHORIZED, payload=payload)
    if status in (400, 422):
        raise ValidationError(
            message or ERROR_REQUEST_FAILED,
            code=code or CODE_VALIDATION,
            status_code=status,
            payload=payload,
        )
    raise ApiError(message or ERROR_REQUEST_FAILED, code=code, status_code=status, payload=payload)


class ApiClient:
    """
    Outbound requests for the ShopGo API.

    Args:
        session: Source of the access credential
        coordinator: Shared refresh state machine
        base_url: API origin including the versioned base path
        timeout: Per-request timeout in seconds
        refresh_timeout: Upper bound for one refresh call (None = transport default)
        login_path: Login entry point passed to on_session_expired
        on_session_expired: Called once when the session cannot be renewed
        transport: Optional httpx transport (tests use httpx.MockTransport)
    """

    def __init__(
        self,
        session: SessionStore,
        coordinator: RefreshCoordinator,
        base_url: str,
        *,
        timeout: float = DEFAULT_HTTP_TIMEOUT,
        refresh_timeout: Optional[float] = None,
        login_path: str = DEFAULT_LOGIN_PATH,
        on_session_expired: Optional[SessionExpiredCallback] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._session = session
        self._coordinator = coordinator
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._refresh_timeout = refresh_timeout
        self._login_path = login_path
        self._on_session_expired = on_session_expired
        self._transport = transport
        self._http_client: Optional[httpx.AsyncClient] = None
        self._background: Set["asyncio.Task[Any]"] = set()
        self._teardown_hooks: List[Callable[[], None]] = []

    @property
    def coordinator(self) -> RefreshCoordinator:
        return self._coordinator

    def add_teardown_hook(self, hook: Callable[[], None]) -> None:
        """Register local cleanup run once when the session is torn down."""
        self._teardown_hooks.append(hook)

    def _get_http_client(self) -> httpx.AsyncClient:
        """Lazily create the shared httpx client; its cookie jar carries the refresh cookie."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=httpx.Timeout(self._timeout, connect=5.0),
                limits=httpx.Limits(max_connections=10, max_keepalive_connections=5),
                transport=self._transport,
            )
        return self._http_client

    async def aclose(self) -> None:
        """Wait for background work (logout notifications) and close the pool."""
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    # ==================== SENDING ====================

    async def _send(
        self,
        method: str,
        url: str,
        credential: Optional[str],
        json: Any = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        headers = {"Accept": "application/json"}
        if credential:
            headers["Authorization"] = f"Bearer {credential}"
        client = self._get_http_client()
        try:
            return await client.request(method, url, json=json, params=params, headers=headers)
        except httpx.RequestError as e:
            logger.warning("%s %s failed: %s", method, sanitize_string_for_logging(url), type(e).__name__)
            raise TransportError(f"Failed to reach the server: {type(e).__name__}") from e

    async def request(
        self,
        method: str,
        url: str,
        *,
        json: Any = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """
        Send a request and return the envelope's data.

        A 401 is retried at most once, with a renewed credential, unless the
        URL is an auth endpoint or the session has been torn down.
        """
        sent_credential = self._session.access_credential
        response = await self._send(method, url, sent_credential, json=json, params=params)

        if response.status_code == 401 and self._may_retry(url):
            credential = await self._renewed_credential(sent_credential)
            response = await self._send(method, url, credential, json=json, params=params)

        return unwrap_response(response)

    def _may_retry(self, url: str) -> bool:
        if is_auth_endpoint(url):
            return False
        if self._coordinator.is_torn_down:
            return False
        return True

    async def _renewed_credential(self, sent_credential: Optional[str]) -> str:
        current = self._session.access_credential
        if current and current != sent_credential:
            # A refresh settled while this request was in flight
            return current
        try:
            return await self.refresh_credential()
        except Exception as e:
            self._expire_session(e)
            raise RefreshFailed() from e

    # ==================== REFRESH ====================

    async def refresh_credential(self) -> str:
        """Renew the access credential (single-flight) and store it in the session."""
        return await self._coordinator.refresh(self._request_new_credential, timeout=self._refresh_timeout)

    async def _request_new_credential(self) -> str:
        # Goes around request(): a 401 here must never recurse into refresh.
        response = await self._send("POST", REFRESH_PATH, None)
        data = unwrap_response(response)
        try:
            tokens = AuthTokens.model_validate(data)
        except PydanticValidationError as e:
            raise ApiError("Missing access token", code=CODE_INVALID_RESPONSE) from e
        if not tokens.access_token:
            raise ApiError("Missing access token", code=CODE_INVALID_RESPONSE)
        self._session.set_credential(tokens.access_token)
        logger.debug("Access credential renewed")
        return tokens.access_token

    def _expire_session(self, cause: BaseException) -> None:
        """Logout and redirect, once, however many requests fail together."""
        if not self._coordinator.tear_down():
            return
        logger.warning("Credential refresh failed (%s), ending session", type(cause).__name__)
        self._session.clear()
        for hook in self._teardown_hooks:
            try:
                hook()
            except Exception:
                logger.exception("Teardown hook failed")
        self._spawn(self._session.logout())
        if self._on_session_expired is not None:
            try:
                self._on_session_expired(self._login_path)
            except Exception:
                logger.exception("Session-expired callback failed")

    def _spawn(self, coro) -> None:
        """Fire-and-forget; the reference is kept until the task finishes."""
        task = asyncio.ensure_future(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    # ==================== CONVENIENCE ====================

    async def get(self, url: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return await self.request("GET", url, params=params)

    async def post(self, url: str, json: Any = None) -> Any:
        return await self.request("POST", url, json=json)

    async def patch(self, url: str, json: Any = None) -> Any:
        return await self.request("PATCH", url, json=json)

    async def delete(self, url: str) -> Any:
        return await self.request("DELETE", url)


__all__ = [
    "ApiClient",
    "NO_REFRESH_PATHS",
    "REFRESH_PATH",
    "LOGOUT_PATH",
    "is_auth_endpoint",
    "unwrap_response",
]
