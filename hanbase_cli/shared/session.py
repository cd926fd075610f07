"""Session context: the admin token and the authorized HTTP channel to Hanbase."""

from __future__ import annotations

from typing import Any, Callable

import httpx

from .config import AppConfig
from .credentials import CredentialStore
from .exceptions import AuthError, SessionExpiredError, TransportError
from .logging import Logger, get_logger

InvalidationListener = Callable[["Session"], None]


def extract_error(response: httpx.Response, default: str) -> str:
    """Return the service's ``error`` field from a failed response, else ``default``."""
    try:
        payload = response.json()
    except ValueError:
        return default
    if isinstance(payload, dict):
        message = payload.get("error")
        if isinstance(message, str) and message.strip():
            return message
    return default


class Session:
    """Owns the credential token and every request made on its behalf.

    The token is loaded from the credential store on construction, replaced on
    ``sign_in`` and forgotten on ``sign_out``. A token the service later rejects
    is marked invalid (``valid`` turns False and listeners are notified) but is
    not deleted from disk; re-authenticating is the caller's decision.
    """

    def __init__(
        self,
        config: AppConfig,
        *,
        store: CredentialStore | None = None,
        logger: Logger | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = config.api.base_url
        self.logger = logger or get_logger()
        self._store = store or CredentialStore(config.session.token_path)
        self._token: str | None = self._store.load()
        self._valid = self._token is not None
        self._listeners: list[InvalidationListener] = []
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=config.api.timeout,
            transport=transport,
        )

    async def __aenter__(self) -> Session:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    @property
    def token(self) -> str | None:
        return self._token

    @property
    def authenticated(self) -> bool:
        return self._token is not None

    @property
    def valid(self) -> bool:
        """True while a token is held and the service has not rejected it."""
        return self._token is not None and self._valid

    def on_invalidated(self, listener: InvalidationListener) -> None:
        self._listeners.append(listener)

    def invalidate(self) -> None:
        """Mark the current token as rejected and notify listeners."""
        if not self._valid:
            return
        self._valid = False
        self.logger.debug("Admin token rejected by the service; session marked invalid.")
        for listener in list(self._listeners):
            listener(self)

    async def sign_in(self, email: str, password: str) -> str:
        """Exchange admin credentials for a token and persist it."""
        response = await self._send("POST", "/auth/signin", json={"email": email, "password": password})
        if not response.is_success:
            # The service's message is deliberately not surfaced.
            raise AuthError("Login failed.")
        try:
            payload = response.json()
        except ValueError as exc:
            raise AuthError("Login failed.") from exc
        token = payload.get("token") if isinstance(payload, dict) else None
        if not isinstance(token, str) or not token:
            raise AuthError("Login failed.")

        self._token = token
        self._valid = True
        self._store.save(token)
        return token

    def sign_out(self) -> None:
        self._token = None
        self._valid = False
        self._store.clear()

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        authorized: bool = True,
    ) -> httpx.Response:
        """Send a request to the service.

        Authorized requests carry the bearer token and are refused up front
        when no valid token is held. A 401 answer invalidates the session and
        raises ``SessionExpiredError``; every other status is returned to the
        caller for interpretation.
        """
        headers: dict[str, str] = {}
        if authorized:
            if self._token is None:
                raise AuthError("Not signed in. Run `hanbase login` first.")
            if not self._valid:
                raise SessionExpiredError("Session expired. Sign in again.")
            headers["Authorization"] = f"Bearer {self._token}"

        response = await self._send(method, path, json=json, headers=headers)
        if authorized and response.status_code == httpx.codes.UNAUTHORIZED:
            self.invalidate()
            raise SessionExpiredError("Session expired. Sign in again.")
        return response

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _send(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        try:
            response = await self._client.request(method, path, json=json, headers=headers)
        except httpx.RequestError as exc:
            self.logger.request(method, path, None)
            raise TransportError(f"Could not reach Hanbase at {self.base_url}: {exc}") from exc
        self.logger.request(method, path, response.status_code)
        return response
