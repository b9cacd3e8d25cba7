"""Configuration and wiring for the Salesforce REST API client."""

import json
import logging
import os
import pathlib

import httpx
import pydantic
import structlog

from .client import RequestClient
from .session import (
    DEFAULT_API_VERSION,
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_TIMEOUT,
    SessionManager,
)

CONFIG_ENV_VAR = "SALESFORCE_CONFIG_PATH"
logger = structlog.get_logger(__name__)


class ClientConfig(pydantic.BaseModel):
    """Configuration for a Salesforce REST API connection."""

    instance_url: str = pydantic.Field(
        description="Login host, e.g. https://login.salesforce.com",
    )
    api_version: str = pydantic.Field(
        DEFAULT_API_VERSION,
        description="REST API version without the leading 'v'",
    )
    client_id: str = pydantic.Field(description="Connected app consumer key")
    client_secret: str = pydantic.Field(
        description="Connected app consumer secret",
        repr=False,
    )
    username: str = pydantic.Field(description="Salesforce username")
    password: str = pydantic.Field(description="Salesforce password", repr=False)
    security_token: str = pydantic.Field(
        "",
        description="User security token appended to the password",
        repr=False,
    )
    connect_timeout: float = pydantic.Field(
        DEFAULT_CONNECT_TIMEOUT,
        description="Connect timeout in seconds",
        gt=0,
    )
    timeout: float = pydantic.Field(
        DEFAULT_TIMEOUT,
        description="Total request timeout in seconds",
        gt=0,
    )
    log_level: str = pydantic.Field("INFO", description="Logging level")


def configure_logging(log_level_name: str) -> None:
    """Configure structlog for logfmt output."""
    log_level = getattr(logging, log_level_name.upper(), logging.INFO)
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.EventRenamer("msg"),
            structlog.processors.format_exc_info,
            structlog.processors.LogfmtRenderer(
                key_order=("timestamp", "level", "msg"),
            ),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def load_config(config_path: str | pathlib.Path) -> ClientConfig:
    """Load configuration from JSON file."""
    path = pathlib.Path(config_path)
    if not path.exists():
        msg = f"Configuration file not found: {config_path}"
        raise FileNotFoundError(msg)

    with path.open("r") as f:
        data = json.load(f)

    return ClientConfig(**data)


def create_client(
    config: ClientConfig,
    transport: httpx.BaseTransport | None = None,
) -> tuple[SessionManager, RequestClient]:
    """Build a session manager and a request client sharing it."""
    sessions = SessionManager(
        login_url=config.instance_url,
        client_id=config.client_id,
        client_secret=config.client_secret,
        api_version=config.api_version,
        timeout=config.timeout,
        connect_timeout=config.connect_timeout,
        transport=transport,
    )
    return sessions, RequestClient(sessions)


def connect(
    config_path: str | None = None,
    transport: httpx.BaseTransport | None = None,
) -> tuple[SessionManager, RequestClient]:
    """Load config, configure logging and log in.

    The config path defaults to the SALESFORCE_CONFIG_PATH environment
    variable, then ``salesforce.json`` in the working directory.
    """
    resolved_path = config_path or os.environ.get(CONFIG_ENV_VAR, "salesforce.json")
    config = load_config(resolved_path)
    configure_logging(config.log_level)

    sessions, client = create_client(config, transport=transport)
    sessions.login(config.username, config.password, config.security_token)
    logger.info("Connected", instance_url=sessions.require_session().instance_url)
    return sessions, client
