"""Shared fixtures for create_request tests."""

import inspect

import pytest
from create_request.core.context import ClientConfig
from create_request.http.static import StaticResponse


class FakeTransport:
    """
    Scripted transport.

    Each call consumes the next outcome (the last one repeats). An outcome
    is a StaticResponse, an exception to raise, or a callable receiving the
    TransportRequest and returning either of those (sync or async).
    """

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes) or [lambda request: StaticResponse("ok")]
        self.requests = []

    @property
    def calls(self) -> int:
        return len(self.requests)

    async def __call__(self, request):
        self.requests.append(request)
        outcome = self.outcomes[min(len(self.requests), len(self.outcomes)) - 1]
        if callable(outcome):
            outcome = outcome(request)
            if inspect.isawaitable(outcome):
                outcome = await outcome
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


class TrackedResponse(StaticResponse):
    """StaticResponse that records how often its connection was released."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.releases = 0

    def release(self):
        self.releases += 1


class TrackedResponses:
    """Outcome factory producing TrackedResponse objects and keeping every one it made."""

    def __init__(self, body="failure", status=500):
        self.body = body
        self.status = status
        self.made = []

    def __call__(self, request):
        response = TrackedResponse(self.body, status=self.status, url=request.url)
        self.made.append(response)
        return response


def ok_json(data, status=200):
    """Outcome factory returning a fresh JSON response per call."""
    return lambda request: StaticResponse(data, status=status, url=request.url)


def failing(status):
    """Outcome factory returning a fresh error-status response per call."""
    return lambda request: StaticResponse("failure", status=status, url=request.url)


@pytest.fixture
def client_config():
    """Fresh client configuration."""
    return ClientConfig()
