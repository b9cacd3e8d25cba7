"""Session management for the Salesforce REST API.

Performs the OAuth2 password-grant login and owns the resulting Session
(bearer token, instance URL, API version) that every other request reads.
"""

import threading
import time
from collections.abc import Mapping
from typing import Any

import httpx
import pydantic
import structlog

from . import responses
from .errors import ApiError, ArgumentError, AuthError, PreconditionError
from .types import Credentials, Session, TokenResponse

logger = structlog.get_logger(__name__)

DEFAULT_API_VERSION = "35.0"

DEFAULT_TIMEOUT = 60.0
DEFAULT_CONNECT_TIMEOUT = 2.0

LOGIN_PATH = "/services/oauth2/token"


class SessionManager:
    """Owns credentials and the current Session.

    The Session is replaced wholesale by :meth:`login`, :meth:`relogin` and
    :meth:`install`; replacement is serialized by a lock while readers
    simply take the current reference. Requests already in flight keep
    whatever Session they started with.
    """

    def __init__(
        self,
        login_url: str,
        client_id: str,
        client_secret: str,
        api_version: str | int = DEFAULT_API_VERSION,
        timeout: float = DEFAULT_TIMEOUT,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize the session manager.

        Args:
            login_url: Base URL of the token endpoint host
                (e.g., "https://login.salesforce.com").
            client_id: Consumer key of the connected app.
            client_secret: Consumer secret of the connected app.
            api_version: REST API version without the "v" (default: 35.0).
            timeout: Total request timeout in seconds (default: 60.0).
            connect_timeout: Connect timeout in seconds (default: 2.0).
            transport: Optional httpx transport, shared with request clients.

        Raises:
            ArgumentError: If login_url is empty or a timeout is not positive.
        """
        if not login_url:
            msg = "login_url cannot be empty"
            raise ArgumentError(msg)
        if timeout <= 0 or connect_timeout <= 0:
            msg = "timeouts must be positive"
            raise ArgumentError(msg)

        self.login_url = login_url.rstrip("/")
        self.api_version = str(api_version).removeprefix("v")
        self._client_id = client_id
        self._client_secret = client_secret
        self.timeout = httpx.Timeout(timeout, connect=connect_timeout)
        self.transport = transport

        self._lock = threading.Lock()
        self._session: Session | None = None
        self._credentials: Credentials | None = None

    @property
    def session(self) -> Session | None:
        """The current Session, or None before the first login."""
        return self._session

    def require_session(self) -> Session:
        """Return the current Session.

        Raises:
            PreconditionError: If no login has succeeded yet.
        """
        session = self._session
        if session is None:
            msg = "You have not logged in yet"
            raise PreconditionError(msg)
        return session

    def login(self, username: str, password: str, security_token: str = "") -> Session:
        """Log in with the OAuth2 password grant.

        Args:
            username: Salesforce username.
            password: Salesforce password.
            security_token: User security token, appended to the password.

        Returns:
            The new Session.

        Raises:
            AuthError: On transport failure, credential rejection or a
                token response without access_token/instance_url.
        """
        credentials = Credentials(
            client_id=self._client_id,
            client_secret=self._client_secret,
            username=username,
            password=password,
            security_token=security_token,
        )
        return self._login(credentials)

    def relogin(self) -> Session:
        """Repeat the password grant with the last successful credentials.

        Raises:
            PreconditionError: If no login has succeeded yet.
            AuthError: As for :meth:`login`.
        """
        credentials = self._credentials
        if credentials is None:
            msg = "Cannot re-login before a successful login"
            raise PreconditionError(msg)
        return self._login(credentials)

    def install(self, token_response: TokenResponse | Mapping[str, Any]) -> Session:
        """Install a Session from an already obtained token response.

        Raises:
            ArgumentError: If access_token or instance_url is missing.
        """
        try:
            token = TokenResponse.model_validate(token_response)
        except pydantic.ValidationError as exc:
            msg = f"Invalid token response: {exc}"
            raise ArgumentError(msg) from exc
        return self._replace(token)

    def _login(self, credentials: Credentials) -> Session:
        url = f"{self.login_url}{LOGIN_PATH}"
        start_time = time.time()
        logger.debug("Requesting access token", url=url, username=credentials.username)

        http = httpx.Client(timeout=self.timeout, transport=self.transport)
        try:
            response = http.post(
                url,
                data=credentials.grant_form(),
                headers={"Accept": "application/json"},
            )
        except httpx.HTTPError as exc:
            msg = f"Login request failed: {exc}"
            raise AuthError(msg) from exc
        finally:
            # A shared transport stays open for the request clients using it.
            if self.transport is None:
                http.close()

        logger.debug(
            "Token request completed",
            status=response.status_code,
            duration_seconds=round(time.time() - start_time, 3),
        )

        try:
            payload = responses.classify(response)
        except ApiError as exc:
            raise AuthError(exc.message, status_code=exc.status_code) from exc

        try:
            token = TokenResponse.model_validate(payload)
        except pydantic.ValidationError as exc:
            msg = "Token response is missing access_token or instance_url"
            raise AuthError(msg, status_code=response.status_code) from exc

        return self._replace(token, credentials)

    def _replace(
        self,
        token: TokenResponse,
        credentials: Credentials | None = None,
    ) -> Session:
        session = Session(
            access_token=token.access_token,
            instance_url=token.instance_url.rstrip("/"),
            api_version=self.api_version,
        )
        with self._lock:
            self._session = session
            if credentials is not None:
                self._credentials = credentials
        logger.info(
            "Session established",
            instance_url=session.instance_url,
            api_version=session.api_version,
        )
        return session
