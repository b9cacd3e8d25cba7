"""Salesforce REST API client.

Provides one method per REST operation. All of them funnel into a single
request-building routine that reads the current Session, encodes
parameters and classifies the response.
"""

import datetime
import json
import threading
import time
import urllib.parse
from collections.abc import Mapping, Sequence
from email.utils import format_datetime
from typing import Any

import httpx
import structlog

from . import responses
from .errors import ArgumentError, TransportError
from .session import SessionManager
from .types import DATA_PATH, Method, RequestSpec, Session

logger = structlog.get_logger(__name__)

OBJECT_PATH = "sobjects/"
JSON_CONTENT_TYPE = "application/json"


def format_http_date(value: datetime.date) -> str:
    """Format a date as an RFC 1123 HTTP date in GMT.

    Naive datetimes are taken to be UTC; plain dates mean midnight UTC.

    Raises:
        ArgumentError: If value is not a date or datetime.
    """
    if isinstance(value, datetime.datetime):
        moment = value if value.tzinfo else value.replace(tzinfo=datetime.timezone.utc)
    elif isinstance(value, datetime.date):
        moment = datetime.datetime(
            value.year, value.month, value.day, tzinfo=datetime.timezone.utc
        )
    else:
        msg = f"Expected a date or datetime, got {type(value).__name__}"
        raise ArgumentError(msg)
    return format_datetime(moment.astimezone(datetime.timezone.utc), usegmt=True)


def encode_query(params: Mapping[str, Any]) -> str:
    """Percent-encode query parameters, spaces as %20 rather than '+'."""
    return urllib.parse.urlencode(params, quote_via=urllib.parse.quote, safe="")


def _is_json(content_type: str) -> bool:
    return content_type.split(";", 1)[0].strip().lower() == JSON_CONTENT_TYPE


class RequestClient:
    """HTTP client for the Salesforce REST API.

    Reads the bearer token and instance URL from a :class:`SessionManager`
    on every call, so a re-login takes effect for the next request. Every
    operation raises :class:`~salesforce_rest_api.errors.PreconditionError`
    before the first login.

    Thread-safe through thread-local storage of httpx.Client instances.
    Can be used as a context manager for automatic cleanup.
    """

    def __init__(
        self,
        sessions: SessionManager,
        transport: httpx.BaseTransport | None = None,
        timeout: httpx.Timeout | None = None,
    ):
        """Initialize the request client.

        Args:
            sessions: Session manager providing the authenticated context.
            transport: Optional httpx transport (default: the manager's).
            timeout: Optional timeout (default: the manager's).
        """
        self.sessions = sessions
        self._transport = transport if transport is not None else sessions.transport
        self._timeout = timeout if timeout is not None else sessions.timeout
        self.last_response: httpx.Response | None = None

        # Use thread-local storage for httpx.Client (thread safety)
        self._local = threading.local()

    @property
    def client(self) -> httpx.Client:
        """Get or create the thread-local httpx client."""
        if not hasattr(self._local, "client") or self._local.client.is_closed:
            self._local.client = httpx.Client(
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._local.client

    def __enter__(self):
        """Enter context manager."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Exit context manager and cleanup resources."""
        self.close()

    def close(self):
        """Close the thread-local HTTP client if open.

        A transport passed in by the caller is left open.
        """
        if hasattr(self._local, "client") and not self._local.client.is_closed:
            if self._transport is None:
                self._local.client.close()
            else:
                del self._local.client

    def build_request(self, session: Session, spec: RequestSpec) -> httpx.Request:
        """Turn a RequestSpec into an httpx request for the given Session.

        GET parameters go into the query string. For other methods they
        become a JSON body, or a form body if the caller overrode
        Content-Type with a non-JSON type.
        """
        if spec.versioned:
            url = session.data_url + spec.path
        else:
            url = f"{session.instance_url}/{spec.path.lstrip('/')}"

        headers = httpx.Headers(session.headers)
        headers.update(spec.headers)

        content: bytes | None = None
        if spec.params:
            if spec.method == "GET":
                url = f"{url}?{encode_query(spec.params)}"
            elif _is_json(headers.get("Content-Type", "")):
                content = json.dumps(spec.params).encode()
            else:
                content = encode_query(spec.params).encode()

        return self.client.build_request(
            spec.method,
            url,
            headers=headers,
            content=content,
        )

    def _make_request(self, spec: RequestSpec) -> Any:
        """Send one request and classify its response.

        Raises:
            PreconditionError: If no Session exists.
            TransportError: On connection, TLS or timeout failure.
            ApiError: If the response is classified as a failure.
        """
        session = self.sessions.require_session()
        request = self.build_request(session, spec)

        start_time = time.time()
        logger.debug("Making API request", method=request.method, url=str(request.url))
        try:
            response = self.client.send(request)
        except httpx.RequestError as exc:
            logger.debug(
                "API request did not complete",
                method=request.method,
                url=str(request.url),
                error=str(exc),
            )
            raise TransportError(exc) from exc

        self.last_response = response
        logger.debug(
            "API request completed",
            status=response.status_code,
            duration_seconds=round(time.time() - start_time, 3),
        )
        return responses.classify(response)

    def request(
        self,
        path: str,
        params: Mapping[str, Any] | None = None,
        method: Method = "GET",
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        """Call an arbitrary path below the versioned API root."""
        return self._make_request(
            RequestSpec(
                method=method,
                path=path,
                params=dict(params) if params else None,
                headers=dict(headers or {}),
            ),
        )

    def get_api_versions(self) -> Any:
        """List the API versions available on the instance."""
        return self._make_request(RequestSpec("GET", DATA_PATH, versioned=False))

    def get_org_limits(self) -> Any:
        """List the organization's limits."""
        return self.request("limits/")

    def get_available_resources(self) -> Any:
        """List the resources available at the versioned API root."""
        return self.request("")

    def get_all_objects(self) -> Any:
        """List all objects available to the organization."""
        return self.request(OBJECT_PATH)

    def get_object_metadata(
        self,
        object_name: str,
        describe: bool = False,
        since: datetime.date | None = None,
    ) -> Any:
        """Get metadata about an object.

        Args:
            object_name: API name of the object (e.g., "Account").
            describe: Return the full describe result, including fields,
                URLs and child relationships.
            since: Only return metadata modified since this time. If the
                object has not changed, the result is
                ``{"message": NOT_MODIFIED_MESSAGE}``.

        Raises:
            ArgumentError: If since is given but is not a date.
        """
        headers = {}
        if since is not None:
            headers["IF-Modified-Since"] = format_http_date(since)

        path = f"{OBJECT_PATH}{object_name}"
        if describe:
            path += "/describe/"
        return self.request(path, headers=headers)

    def create(self, object_name: str, data: Mapping[str, Any]) -> Any:
        """Create a new record."""
        return self.request(f"{OBJECT_PATH}{object_name}", data, "POST")

    def upsert(self, object_name: str, data: Mapping[str, Any]) -> Any:
        """Insert or update a record by external ID.

        object_name takes the form ``Object/ExternalIdField/value``.
        """
        return self.request(f"{OBJECT_PATH}{object_name}", data, "PATCH")

    def update(self, object_name: str, record_id: str, data: Mapping[str, Any]) -> Any:
        """Update an existing record."""
        return self.request(f"{OBJECT_PATH}{object_name}/{record_id}", data, "PATCH")

    def delete(self, object_name: str, record_id: str) -> Any:
        """Delete a record."""
        return self.request(f"{OBJECT_PATH}{object_name}/{record_id}", method="DELETE")

    def get(
        self,
        object_name: str,
        record_id: str,
        fields: Sequence[str] | None = None,
    ) -> Any:
        """Get a record, optionally restricted to the given fields."""
        params = {}
        if fields:
            params["fields"] = ",".join(fields)
        return self.request(f"{OBJECT_PATH}{object_name}/{record_id}", params)

    def search_soql(
        self,
        query: str,
        include_deleted: bool = False,
        explain: bool = False,
    ) -> Any:
        """Run a SOQL query.

        Args:
            query: The SOQL query string.
            include_deleted: Use queryAll, which also returns deleted and
                merged records.
            explain: Return the query plan instead of the results.
        """
        params = {"explain": query} if explain else {"q": query}
        path = "queryAll/" if include_deleted else "query/"
        return self.request(path, params)

    def get_query_from_url(self, path: str) -> Any:
        """GET an instance-relative URL, such as a query's nextRecordsUrl."""
        return self._make_request(RequestSpec("GET", path, versioned=False))
