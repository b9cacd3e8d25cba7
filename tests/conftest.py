"""Shared fixtures: a fake Salesforce served through httpx.MockTransport."""

import httpx
import pytest

from salesforce_rest_api import client, session

LOGIN_URL = "https://login.salesforce.com"


class FakeSalesforce:
    """Records requests and answers them from a queue.

    The token endpoint issues ``token-N`` for ``https://naN.salesforce.com``
    on the N-th login unless ``token_reply`` is set. Other requests pop
    ``replies`` (a response or an exception to raise), defaulting to an
    empty 200.
    """

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.replies: list[httpx.Response | Exception] = []
        self.token_reply: httpx.Response | Exception | None = None
        self.logins = 0

    @property
    def api_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path != session.LOGIN_PATH]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path == session.LOGIN_PATH:
            self.logins += 1
            reply = self.token_reply or httpx.Response(
                200,
                json={
                    "access_token": f"token-{self.logins}",
                    "instance_url": f"https://na{self.logins}.salesforce.com",
                    "token_type": "Bearer",
                },
            )
        else:
            reply = self.replies.pop(0) if self.replies else httpx.Response(200)
        if isinstance(reply, Exception):
            raise reply
        return reply


@pytest.fixture
def fake() -> FakeSalesforce:
    return FakeSalesforce()


@pytest.fixture
def sessions(fake: FakeSalesforce) -> session.SessionManager:
    return session.SessionManager(
        login_url=LOGIN_URL,
        client_id="consumer-key",
        client_secret="consumer-secret",
        api_version="35.0",
        transport=httpx.MockTransport(fake.handler),
    )


@pytest.fixture
def api(sessions: session.SessionManager):
    with client.RequestClient(sessions) as request_client:
        yield request_client


@pytest.fixture
def logged_in(sessions: session.SessionManager, api: client.RequestClient):
    """Request client whose session manager has logged in once."""
    sessions.login("user@example.com", "p", "t")
    return api
