"""Salesforce REST API client.

Thin synchronous wrapper around the Salesforce REST API: OAuth2 password
grant login, object CRUD, metadata retrieval and SOQL queries. Responses
are returned as decoded JSON; failures are raised as one of the errors in
:mod:`salesforce_rest_api.errors`.

Exports:
    SessionManager: Performs the login handshake and owns the Session.
    RequestClient: Issues one HTTP request per REST operation.
    ClientConfig: Pydantic configuration model.
    errors: Module containing the error taxonomy.
    types: Module containing the session and request models.
"""

from . import errors, types
from .client import RequestClient
from .config import ClientConfig, connect, create_client, load_config
from .errors import (
    ApiError,
    ArgumentError,
    AuthError,
    PreconditionError,
    SalesforceError,
    TransportError,
)
from .session import DEFAULT_API_VERSION, SessionManager

__version__ = "0.1.0"

__all__ = [
    "DEFAULT_API_VERSION",
    "ApiError",
    "ArgumentError",
    "AuthError",
    "ClientConfig",
    "PreconditionError",
    "RequestClient",
    "SalesforceError",
    "SessionManager",
    "TransportError",
    "connect",
    "create_client",
    "errors",
    "load_config",
    "types",
]
