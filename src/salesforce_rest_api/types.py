"""Session and request types for the Salesforce REST API.

Pydantic models for the values exchanged during login, plus the
per-call request description consumed by the request client.
"""

from dataclasses import dataclass, field
from typing import Any, Literal, TypeAlias

from pydantic import BaseModel, ConfigDict, Field

Method: TypeAlias = Literal["GET", "POST", "PATCH", "DELETE"]

DATA_PATH = "/services/data"


class Credentials(BaseModel):
    """Password-grant credentials.

    Frozen once built. Secret fields are excluded from ``repr``.
    """

    model_config = ConfigDict(frozen=True)

    client_id: str
    client_secret: str = Field(repr=False)
    username: str
    password: str = Field(repr=False)
    security_token: str = Field("", repr=False)

    def grant_form(self) -> dict[str, str]:
        """Form fields for the OAuth2 password grant.

        The security token is appended to the password with no separator.
        """
        return {
            "grant_type": "password",
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "username": self.username,
            "password": self.password + self.security_token,
        }


class TokenResponse(BaseModel):
    """Body returned by the OAuth2 token endpoint."""

    model_config = ConfigDict(extra="allow")

    access_token: str = Field(repr=False)
    instance_url: str
    id: str | None = None
    token_type: str | None = None
    issued_at: str | None = None
    signature: str | None = Field(None, repr=False)


class Session(BaseModel):
    """Authenticated request context produced by a successful login."""

    model_config = ConfigDict(frozen=True)

    access_token: str = Field(repr=False)
    instance_url: str
    api_version: str

    @property
    def data_url(self) -> str:
        """Root of the versioned REST API, always ending in a slash."""
        return f"{self.instance_url}{DATA_PATH}/v{self.api_version}/"

    @property
    def headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }


@dataclass(frozen=True)
class RequestSpec:
    """Description of a single REST call.

    ``path`` is relative to the versioned API root unless ``versioned`` is
    False, in which case it is relative to the instance URL.
    """

    method: Method
    path: str
    params: dict[str, Any] | None = None
    headers: dict[str, str] = field(default_factory=dict)
    versioned: bool = True
